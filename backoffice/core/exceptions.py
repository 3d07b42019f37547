"""
API error types and the DRF exception handler that renders them.

Every error leaves the API as:
    {"success": false, "error": "<message>", "code": "<CODE>", "details": ...}
"""
import logging

from django.http import Http404
from rest_framework import exceptions, status

from .responses import error_response, first_error

logger = logging.getLogger('backoffice.core')


class APIError(exceptions.APIException):
    """Base class for domain errors carrying a machine-readable code"""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Request could not be processed'
    default_code = 'BAD_REQUEST'

    def __init__(self, message=None, code=None, details=None, status_code=None):
        super().__init__(detail=message or self.default_detail, code=code or self.default_code)
        self.message = str(self.detail)
        self.code = code or self.default_code
        self.details = details
        if status_code is not None:
            self.status_code = status_code


class ValidationFailed(APIError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid data'
    default_code = 'VALIDATION_ERROR'


class AuthenticationError(APIError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = 'Authentication required'
    default_code = 'AUTH_REQUIRED'


class PermissionDenied(APIError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'You do not have permission to perform this action'
    default_code = 'INSUFFICIENT_PERMISSIONS'


class NoOrganization(PermissionDenied):
    default_detail = 'User does not belong to an organization'
    default_code = 'NO_ORGANIZATION'


class NotFound(APIError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Resource not found'
    default_code = 'NOT_FOUND'


class Conflict(APIError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Resource conflict'
    default_code = 'CONFLICT'


# Exceptions views let through to the handler instead of turning into a 500
HANDLED_EXCEPTIONS = (exceptions.APIException, Http404)

DEFAULT_CODES = {
    status.HTTP_400_BAD_REQUEST: 'VALIDATION_ERROR',
    status.HTTP_401_UNAUTHORIZED: 'AUTH_REQUIRED',
    status.HTTP_403_FORBIDDEN: 'INSUFFICIENT_PERMISSIONS',
    status.HTTP_404_NOT_FOUND: 'NOT_FOUND',
    status.HTTP_405_METHOD_NOT_ALLOWED: 'METHOD_NOT_ALLOWED',
    status.HTTP_409_CONFLICT: 'CONFLICT',
    status.HTTP_415_UNSUPPORTED_MEDIA_TYPE: 'UNSUPPORTED_MEDIA_TYPE',
    status.HTTP_429_TOO_MANY_REQUESTS: 'THROTTLED',
}


def _code_for(exc, status_code):
    if isinstance(exc, exceptions.NotAuthenticated):
        return 'AUTH_REQUIRED'
    codes = exc.get_codes() if hasattr(exc, 'get_codes') else None
    if isinstance(codes, str) and codes.isupper():
        return codes
    if isinstance(exc, exceptions.AuthenticationFailed):
        return 'AUTH_TOKEN_INVALID'
    return DEFAULT_CODES.get(status_code, 'ERROR')


def api_exception_handler(exc, context):
    """Render every exception raised by a view as the error envelope"""
    view = context.get('view')
    view_name = view.__class__.__name__ if view else 'unknown'

    if isinstance(exc, APIError):
        logger.warning(f"{view_name}: {exc.code} - {exc.message}")
        response = error_response(exc.message, exc.code, exc.status_code, details=exc.details)
        return response

    # rest_framework.views loads the authentication classes, which import this module
    from rest_framework.views import exception_handler

    response = exception_handler(exc, context)
    if response is None:
        logger.error(f"Unhandled error in {view_name}: {str(exc)}", exc_info=exc)
        return error_response(
            'An unexpected error occurred', 'INTERNAL_SERVER_ERROR',
            status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    if isinstance(exc, exceptions.ValidationError):
        message, code = first_error(exc.detail)
        logger.warning(f"{view_name}: validation failed - {exc.detail}")
        envelope = error_response(message, code, response.status_code, details=exc.detail)
    else:
        if isinstance(exc, Http404):
            message = 'Resource not found'
        else:
            message = str(exc.detail) if hasattr(exc, 'detail') else str(exc)
        code = _code_for(exc, response.status_code)
        logger.warning(f"{view_name}: {code} - {message}")
        envelope = error_response(message, code, response.status_code)

    for header in ('WWW-Authenticate', 'Allow', 'Retry-After'):
        if header in response:
            envelope[header] = response[header]
    return envelope
