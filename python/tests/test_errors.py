"""Tests for error handling and response envelopes.

Verifies:
- Error envelope shape is correct
- Every error code maps to correct HTTP status
- Unknown exceptions return 500 without leaking details
- Route parameter validation failures return 400
"""

import pytest
from fastapi import APIRouter
from fastapi.testclient import TestClient
from limits.aio.storage import MemoryStorage

from salesmail.app import create_app
from salesmail.errors import (
    ERROR_CODE_TO_STATUS,
    ApiError,
    ApiErrorCode,
    DatabaseUnavailableError,
    InvalidRequestError,
    NotFoundError,
    PayloadTooLargeError,
)
from salesmail.responses import error_response


class TestErrorResponse:
    """Tests for error response envelope format."""

    def test_error_response_has_correct_shape(self):
        assert error_response("Not Found", "/x") == {"error": "Not Found", "path": "/x"}


class TestErrorCodeMapping:
    """Every error code maps to correct HTTP status."""

    @pytest.mark.parametrize(
        "code,expected_status",
        [
            (ApiErrorCode.E_INVALID_REQUEST, 400),
            (ApiErrorCode.E_CORS_ORIGIN_DENIED, 403),
            (ApiErrorCode.E_NOT_FOUND, 404),
            (ApiErrorCode.E_PAYLOAD_TOO_LARGE, 413),
            (ApiErrorCode.E_UNSUPPORTED_MEDIA_TYPE, 415),
            (ApiErrorCode.E_RATE_LIMITED, 429),
            (ApiErrorCode.E_INTERNAL, 500),
            (ApiErrorCode.E_DATABASE_UNAVAILABLE, 503),
        ],
    )
    def test_error_code_maps_to_status(self, code: ApiErrorCode, expected_status: int):
        assert ERROR_CODE_TO_STATUS[code] == expected_status

    def test_all_error_codes_have_status_mapping(self):
        for code in ApiErrorCode:
            assert code in ERROR_CODE_TO_STATUS


class TestApiErrorClasses:
    def test_api_error_derives_status(self):
        error = ApiError(ApiErrorCode.E_RATE_LIMITED, "slow down")

        assert error.status_code == 429
        assert error.message == "slow down"
        assert str(error) == "slow down"

    @pytest.mark.parametrize(
        "error_cls,status,message",
        [
            (NotFoundError, 404, "Not Found"),
            (InvalidRequestError, 400, "Invalid request"),
            (PayloadTooLargeError, 413, "Payload too large"),
            (DatabaseUnavailableError, 503, "Database unavailable"),
        ],
    )
    def test_subclass_defaults(self, error_cls, status: int, message: str):
        error = error_cls()

        assert error.status_code == status
        assert error.message == message


class TestErrorHandlers:
    def test_unhandled_exception_returns_500_envelope(self, make_client):
        client = make_client(raise_server_exceptions=False)

        response = client.get("/api/v1/email/boom")

        assert response.status_code == 500
        assert response.json() == {
            "error": "Internal server error",
            "path": "/api/v1/email/boom",
        }
        assert "boom" not in response.text.replace("/api/v1/email/boom", "")

    def test_api_error_raised_in_route_uses_envelope(self, settings):
        router = APIRouter()

        @router.get("/gone")
        async def gone() -> dict:
            raise NotFoundError(message="Sequence not found")

        app = create_app(
            settings,
            route_groups={"/api/v1/email": router},
            rate_limit_storage=MemoryStorage(),
        )
        with TestClient(app) as client:
            response = client.get("/api/v1/email/gone")

        assert response.status_code == 404
        assert response.json() == {"error": "Sequence not found", "path": "/api/v1/email/gone"}

    def test_validation_error_returns_400(self, settings):
        router = APIRouter()

        @router.get("/sequences/{sequence_id}")
        async def get_sequence(sequence_id: int) -> dict:
            return {"id": sequence_id}

        app = create_app(
            settings,
            route_groups={"/api/v1/email": router},
            rate_limit_storage=MemoryStorage(),
        )
        with TestClient(app) as client:
            response = client.get("/api/v1/email/sequences/abc")

        assert response.status_code == 400
        assert response.json() == {
            "error": "Invalid request body",
            "path": "/api/v1/email/sequences/abc",
        }
