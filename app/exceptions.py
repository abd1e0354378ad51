"""
ModRepo - Custom Exceptions and Exception Handlers
"""
import math

import structlog
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from api_responses import ErrorCode, error_response

logger = structlog.get_logger('exceptions')


class ModRepoException(Exception):
    """Base exception for ModRepo"""
    status_code = 400

    def __init__(self, message: str, code: str = "MODREPO_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)

    def to_dict(self):
        return {'code': self.code, 'message': self.message}


class NotFoundException(ModRepoException):
    """Requested entity does not exist"""
    status_code = 404

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, code=ErrorCode.NOT_FOUND)


class ValidationException(ModRepoException):
    """Validation-related exceptions"""

    def __init__(self, message: str):
        super().__init__(message, code=ErrorCode.VALIDATION_ERROR)
        logger.warning(f"Validation error: {message}")


class DuplicateVersionException(ModRepoException):
    """A mod already has a version with this name"""
    status_code = 409

    def __init__(self, mod_id: str, version: str):
        self.mod_id = mod_id
        self.version = version
        super().__init__("this mod already has a version with this name", code=ErrorCode.DUPLICATE_VERSION)


class RateLimitExceededException(ModRepoException):
    """Too many versions created for a mod inside the rolling window"""
    status_code = 429

    def __init__(self, retry_after):
        self.retry_after = retry_after
        self.retry_after_minutes = round(retry_after.total_seconds() / 60)
        super().__init__(
            f"please wait {self.retry_after_minutes} minutes to post another version",
            code=ErrorCode.RATE_LIMIT_EXCEEDED,
        )

    @property
    def retry_after_seconds(self):
        return max(0, math.ceil(self.retry_after.total_seconds()))

    def to_dict(self):
        payload = super().to_dict()
        payload['retry_after_minutes'] = self.retry_after_minutes
        return payload


class EncodingException(ModRepoException):
    """A cache key could not be derived, always a programming error"""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message, code=ErrorCode.ENCODING_ERROR)
        logger.error(f"Encoding error: {message}")


class AuthenticationException(ModRepoException):
    """Authentication-related exceptions"""
    status_code = 401

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, code=ErrorCode.AUTH_ERROR)
        logger.warning(f"Authentication error: {message}")


def register_exception_handlers(app):
    """Register exception handlers with Flask app"""

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        """Handle HTTP exceptions (unknown routes, wrong methods, Flask-Limiter 429s)"""
        if e.code is None or e.code < 400:
            # Routing redirects
            return e
        return error_response(e.name.upper().replace(' ', '_'), e.description, e.code)

    @app.errorhandler(ModRepoException)
    def handle_modrepo_exception(e):
        """Handle ModRepo custom exceptions"""
        if e.status_code >= 500:
            # Internal details stay in the logs
            return error_response(ErrorCode.INTERNAL_ERROR, status_code=e.status_code)
        return error_response(status_code=e.status_code, **e.to_dict())

    @app.errorhandler(RateLimitExceededException)
    def handle_rate_limit_exception(e):
        """Handle version creation throttling"""
        response, status_code = error_response(status_code=e.status_code, **e.to_dict())
        response.headers['Retry-After'] = str(e.retry_after_seconds)
        return response, status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_database_exception(e):
        """Handle store failures"""
        logger.error(f"Database error: {e}", exc_info=True)
        return error_response(ErrorCode.DATABASE_ERROR, status_code=500)

    @app.errorhandler(Exception)
    def handle_generic_exception(e):
        """Handle all other exceptions"""
        logger.error(f"Unhandled exception: {e}", exc_info=True)
        return error_response(ErrorCode.INTERNAL_ERROR, status_code=500)
