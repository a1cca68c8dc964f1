"""Cookie value decoding: JSON cookies and HMAC-signed cookies.

Value formats:
- "j:<json>"             JSON cookie, decoded to the JSON value
- "s:<value>.<sig>"      signed cookie; sig is unpadded base64 HMAC-SHA256 of
                         <value> keyed by the cookie secret
"""

import base64
import hashlib
import hmac
import json
from typing import Any

JSON_PREFIX = "j:"
SIGNED_PREFIX = "s:"


def sign(value: str, secret: str) -> str:
    """Return `value.signature` for the given secret."""
    digest = hmac.new(secret.encode("utf-8"), value.encode("utf-8"), hashlib.sha256).digest()
    signature = base64.b64encode(digest).decode("ascii").rstrip("=")
    return f"{value}.{signature}"


def unsign(signed_value: str, secret: str) -> str | None:
    """Verify `value.signature` and return value, or None if it does not verify."""
    value, sep, _ = signed_value.rpartition(".")
    if not sep:
        return None
    expected = sign(value, secret)
    if hmac.compare_digest(expected.encode("utf-8"), signed_value.encode("utf-8")):
        return value
    return None


def decode_json_cookie(value: str) -> Any:
    """Decode a `j:` cookie; anything else is returned unchanged."""
    if not value.startswith(JSON_PREFIX):
        return value
    try:
        return json.loads(value[len(JSON_PREFIX) :])
    except ValueError:
        return value


def split_signed_cookies(
    cookies: dict[str, str], secret: str
) -> tuple[dict[str, Any], dict[str, Any]]:
    """Separate signed cookies from plain ones.

    Returns:
        (plain, signed). Signed cookies that fail verification map to False.
    """
    plain: dict[str, Any] = {}
    signed: dict[str, Any] = {}
    for name, value in cookies.items():
        if value.startswith(SIGNED_PREFIX):
            unsigned = unsign(value[len(SIGNED_PREFIX) :], secret)
            signed[name] = decode_json_cookie(unsigned) if unsigned is not None else False
        else:
            plain[name] = value
    return plain, signed
