"""Error responses for the lock API.

Every error is rendered as a Result/Message document:

    {"messages": [{"code": "Busy", "messageType": "Error", "text": "...",
                   "timestamp": "..."}]}

Lock errors raised by the manager are translated here and nowhere else.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from leasehold.errors import (
    LockBusyError,
    LockError,
    LockLostError,
    LockTimeoutError,
    StoreUnavailableError,
)


class MessageType(str, Enum):
    """Type of message in error response."""

    ERROR = "Error"
    WARNING = "Warning"
    INFO = "Info"
    EXCEPTION = "Exception"


class Message(BaseModel):
    """A single error message."""

    model_config = {"extra": "forbid", "populate_by_name": True}

    code: str
    message_type: MessageType = Field(alias="messageType")
    text: str
    timestamp: str | None = None


class Result(BaseModel):
    """Result wrapper for errors."""

    model_config = {"extra": "forbid"}

    messages: list[Message]


def _result(code: str, text: str, message_type: MessageType = MessageType.ERROR) -> Result:
    return Result(
        messages=[
            Message(
                code=code,
                messageType=message_type,
                text=text,
                timestamp=datetime.now(UTC).isoformat(),
            )
        ]
    )


class LockApiError(HTTPException):
    """Base exception for lock API errors."""

    def __init__(
        self,
        status_code: int,
        code: str,
        text: str,
        message_type: MessageType = MessageType.ERROR,
    ):
        self.code = code
        self.text = text
        self.message_type = message_type
        super().__init__(status_code=status_code, detail=text)

    def to_result(self) -> Result:
        return _result(self.code, self.text, self.message_type)


class NotFoundError(LockApiError):
    """Resource not locked (404)."""

    def __init__(self, resource: str):
        super().__init__(
            status_code=404,
            code="NotFound",
            text=f"No live lock on '{resource}'",
        )


def status_for(exc: LockError) -> int:
    """HTTP status for a lock error."""
    if isinstance(exc, (LockBusyError, LockTimeoutError)):
        return 423
    if isinstance(exc, LockLostError):
        return 409
    if isinstance(exc, StoreUnavailableError):
        return 503
    return 500


async def lock_api_exception_handler(request: Request, exc: LockApiError) -> JSONResponse:
    """Exception handler for lock API errors."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_result().model_dump(by_alias=True),
    )


async def lock_error_handler(request: Request, exc: LockError) -> JSONResponse:
    """Exception handler for errors raised by the lock manager."""
    return JSONResponse(
        status_code=status_for(exc),
        content=_result(exc.code, str(exc)).model_dump(by_alias=True),
    )


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    """Exception handler for argument validation failures."""
    return JSONResponse(
        status_code=400,
        content=_result("BadRequest", str(exc)).model_dump(by_alias=True),
    )


def internal_error_response() -> JSONResponse:
    """500 response that reveals nothing about the failure."""
    return JSONResponse(
        status_code=500,
        content=_result(
            "InternalServerError",
            "An unexpected error occurred",
            MessageType.EXCEPTION,
        ).model_dump(by_alias=True),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Exception handler for unexpected errors."""
    return internal_error_response()
