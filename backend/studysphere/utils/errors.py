# studysphere/utils/errors.py
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import HTTPException


class ErrorCode:
    # Validation
    MISSING_MESSAGE = "MISSING_MESSAGE"  # Relay called without message or images
    MISSING_CUSTOMER_ID = "MISSING_CUSTOMER_ID"
    MISSING_PRODUCT_ID = "MISSING_PRODUCT_ID"
    INVALID_REQUEST = "INVALID_REQUEST"

    # Auth
    UNAUTHENTICATED = "UNAUTHENTICATED"

    # Chat sessions
    CHAT_NOT_FOUND = "CHAT_NOT_FOUND"
    CHAT_BUSY = "CHAT_BUSY"  # A turn is already streaming for the session

    # Configuration
    MISSING_API_KEY = "MISSING_API_KEY"

    # Upstream providers
    GEMINI_API_ERROR = "GEMINI_API_ERROR"
    AUTUMN_API_ERROR = "AUTUMN_API_ERROR"

    # Internal
    DATABASE_ERROR = "DATABASE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


def error_body(code: str, message: str, details: Any = None) -> Dict[str, Any]:
    return {
        "error": {
            "code": code,
            "message": message,
            "details": details
        },
        "success": False,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


class APIError(HTTPException):
    def __init__(
            self,
            code: str,
            message: str,
            status_code: int = 400,
            details: Optional[Any] = None
    ):
        self.error_code = code
        self.error_message = message
        self.error_details = details
        super().__init__(status_code=status_code, detail=message)

    def to_dict(self) -> Dict[str, Any]:
        return error_body(self.error_code, self.error_message, self.error_details)


class ValidationError(APIError):
    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(code, message, 400, details)


class AuthenticationError(APIError):
    def __init__(self, message: str = "Authentication required"):
        super().__init__(ErrorCode.UNAUTHENTICATED, message, 401)


class ChatNotFoundError(APIError):
    def __init__(self, session_id: str):
        super().__init__(ErrorCode.CHAT_NOT_FOUND, f"Chat {session_id} not found", 404,
                         {"sessionId": session_id})


class ChatBusyError(APIError):
    def __init__(self, session_id: str):
        super().__init__(ErrorCode.CHAT_BUSY, "A response is already being generated for this chat", 409,
                         {"sessionId": session_id})


class ConfigurationError(APIError):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(ErrorCode.MISSING_API_KEY, message, 500, details)


class UpstreamError(APIError):
    """Non-success answer from an external provider, status and payload passed through."""

    def __init__(self, code: str, message: str, status_code: int, payload: Any = None):
        self.payload = payload
        super().__init__(code, message, status_code, payload)


class RelayStreamError(Exception):
    """Raised when reading an already opened provider stream fails."""
    pass
