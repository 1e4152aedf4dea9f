# backend/errors.py

from enum import Enum

from fastapi import status


class ErrorKind(str, Enum):
    INVALID_NAME = "INVALID_NAME"
    MISSING_ID = "MISSING_ID"
    MISSING_PHONE = "MISSING_PHONE"
    INVALID_PHONE_FORMAT = "INVALID_PHONE_FORMAT"
    INVALID_EMAIL_FORMAT = "INVALID_EMAIL_FORMAT"
    INVALID_MESSAGE_ROLE = "INVALID_MESSAGE_ROLE"
    INVALID_MESSAGE_CONTENT = "INVALID_MESSAGE_CONTENT"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_JSON = "INVALID_JSON"
    PHONE_EXISTS = "PHONE_EXISTS"
    EMAIL_EXISTS = "EMAIL_EXISTS"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    CONVERSATION_NOT_FOUND = "CONVERSATION_NOT_FOUND"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# ─── kind → HTTP status ────────────────────────────────────────────────────────
STATUS_BY_KIND = {
    ErrorKind.INVALID_NAME: status.HTTP_400_BAD_REQUEST,
    ErrorKind.MISSING_ID: status.HTTP_400_BAD_REQUEST,
    ErrorKind.MISSING_PHONE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_PHONE_FORMAT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_EMAIL_FORMAT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_MESSAGE_ROLE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_MESSAGE_CONTENT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_JSON: status.HTTP_400_BAD_REQUEST,
    ErrorKind.PHONE_EXISTS: status.HTTP_409_CONFLICT,
    ErrorKind.EMAIL_EXISTS: status.HTTP_409_CONFLICT,
    ErrorKind.USER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONVERSATION_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.INTERNAL_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class ServiceError(Exception):
    """Raised by crud and the routes; ``kind`` picks the HTTP status and code."""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    @property
    def code(self) -> str:
        return self.kind.value

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]

