"""Tests for Result/Message error responses."""

import json

import pytest

from leasehold.api.errors import (
    Message,
    MessageType,
    NotFoundError,
    Result,
    internal_error_response,
    status_for,
    value_error_handler,
)
from leasehold.errors import (
    LeaseExpiredError,
    LockBusyError,
    LockTimeoutError,
    NotOwnerError,
    StoreUnavailableError,
)


class TestMessage:
    """Test Message model."""

    def test_message_types(self) -> None:
        assert MessageType.ERROR.value == "Error"
        assert MessageType.EXCEPTION.value == "Exception"

    def test_serializes_with_alias(self) -> None:
        msg = Message(code="Busy", message_type=MessageType.ERROR, text="held")

        data = Result(messages=[msg]).model_dump(by_alias=True)

        assert data["messages"][0]["messageType"] == MessageType.ERROR
        assert data["messages"][0]["code"] == "Busy"


class TestLockApiErrors:
    """Test API error classes."""

    def test_not_found(self) -> None:
        error = NotFoundError("orders")

        assert error.status_code == 404
        result = error.to_result()
        assert result.messages[0].code == "NotFound"
        assert "orders" in result.messages[0].text
        assert result.messages[0].timestamp is not None

    @pytest.mark.asyncio
    async def test_value_error_is_bad_request(self) -> None:
        response = await value_error_handler(None, ValueError("ttl must be positive, got 0"))

        assert response.status_code == 400
        assert json.loads(response.body)["messages"][0]["code"] == "BadRequest"

    def test_internal_error_hides_details(self) -> None:
        response = internal_error_response()

        assert response.status_code == 500
        message = json.loads(response.body)["messages"][0]
        assert message["code"] == "InternalServerError"
        assert message["messageType"] == "Exception"


class TestStatusFor:
    """Test lock error to HTTP status mapping."""

    @pytest.mark.parametrize(
        ("error", "status"),
        [
            (LockBusyError("R"), 423),
            (LockTimeoutError("R", 1.0, 3), 423),
            (NotOwnerError("R", "a"), 409),
            (LeaseExpiredError("R", "a"), 409),
            (StoreUnavailableError("R", "down"), 503),
        ],
    )
    def test_mapping(self, error, status: int) -> None:
        assert status_for(error) == status

    def test_codes(self) -> None:
        assert LockBusyError("R").code == "Busy"
        assert LockTimeoutError("R", 1.0, 3).code == "Timeout"
        assert NotOwnerError("R", "a").code == "NotOwner"
        assert LeaseExpiredError("R", "a").code == "Expired"
