"""Email sequence route group, mounted at /api/v1/email.

Sequence handlers register on this router; the app factory mounts it.
"""

from fastapi import APIRouter

router = APIRouter()
