from typing import Optional, Dict, Any


class NewsroomError(Exception):
    status_code = 500

    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }


class ValidationError(NewsroomError):
    status_code = 400


class InvalidIdentifierError(NewsroomError):
    status_code = 400

    def __init__(self, value: Any):
        super().__init__(
            message="Invalid id",
            error_code="INVALID_ID",
            details={"id": str(value)}
        )


class NotFoundError(NewsroomError):
    status_code = 404


class DuplicateKeyError(NewsroomError):
    status_code = 409


class AuthorizationError(NewsroomError):
    status_code = 403


class StorageUnavailableError(NewsroomError):
    status_code = 503


class ExternalServiceError(NewsroomError):
    status_code = 502
