"""
API Response Utilities - JSON envelopes shared by routes and error handlers
"""

from flask import jsonify
import logging

logger = logging.getLogger("main")


# API Error Codes
class ErrorCode:
    SUCCESS = "SUCCESS"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    AUTH_ERROR = "AUTH_ERROR"
    DUPLICATE_VERSION = "DUPLICATE_VERSION"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    ENCODING_ERROR = "ENCODING_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


DEFAULT_MESSAGES = {
    ErrorCode.NOT_FOUND: "Resource not found",
    ErrorCode.VALIDATION_ERROR: "Invalid request parameters",
    ErrorCode.DATABASE_ERROR: "An unexpected error occurred",
    ErrorCode.INTERNAL_ERROR: "An unexpected error occurred",
}


def success_response(data=None, message=None, status_code=200):
    """
    Envelope for successful calls: {"code": "SUCCESS", "success": true, "data": ...}
    """
    body = {"code": ErrorCode.SUCCESS, "success": True}
    if data is not None:
        body["data"] = data
    if message:
        body["message"] = message
    return jsonify(body), status_code


def error_response(code=ErrorCode.INTERNAL_ERROR, message=None, status_code=400, **extra):
    """
    Envelope for failed calls. Extra keyword arguments are added to the body
    as is (e.g. retry_after_minutes).
    """
    body = {"code": code, "success": False, "message": message or DEFAULT_MESSAGES.get(code, code)}
    body.update(extra)

    if status_code >= 500:
        logger.error(f"{code} ({status_code}): {body['message']}")

    return jsonify(body), status_code


def paginated_response(items, total, limit, offset):
    """
    Offset based page of a listing plus the total number of matching rows
    """
    has_more = offset + len(items) < total
    return success_response({
        "items": items,
        "pagination": {
            "total": total,
            "limit": limit,
            "offset": offset,
            "has_more": has_more,
            "next_offset": offset + len(items) if has_more else None,
        },
    })


def not_found_response(resource_type, resource_id=None):
    if resource_id:
        message = f"{resource_type} '{resource_id}' not found"
    else:
        message = f"{resource_type} not found"
    return error_response(ErrorCode.NOT_FOUND, message=message, status_code=404)
