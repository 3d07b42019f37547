"""Response envelope helpers shared by every app"""
from rest_framework import status
from rest_framework.exceptions import ErrorDetail
from rest_framework.response import Response

# DRF field error codes that mean "value missing"
MISSING_VALUE_CODES = {'required', 'blank', 'null'}


def success_response(data=None, message=None, status_code=status.HTTP_200_OK):
    body = {'success': True, 'data': data}
    if message:
        body['message'] = message
    return Response(body, status=status_code)


def error_response(message, code, status_code=status.HTTP_400_BAD_REQUEST, details=None):
    body = {'success': False, 'error': message, 'code': code}
    if details is not None:
        body['details'] = details
    return Response(body, status=status_code)


def _first_detail(detail, field=None):
    """Walk serializer errors depth-first and return (field, ErrorDetail)"""
    if isinstance(detail, dict):
        for key, value in detail.items():
            found = _first_detail(value, key if key != 'non_field_errors' else field)
            if found:
                return found
    elif isinstance(detail, (list, tuple)):
        for value in detail:
            found = _first_detail(value, field)
            if found:
                return found
    elif isinstance(detail, ErrorDetail):
        return field, detail
    elif detail:
        return field, ErrorDetail(str(detail), code='invalid')
    return None


def first_error(detail):
    """
    Pick a message and code out of serializer errors.

    Uppercase codes raised by our validators (e.g. INVALID_PRICE) are kept;
    missing values map to MISSING_REQUIRED_FIELDS and the rest to VALIDATION_ERROR.
    """
    found = _first_detail(detail)
    if not found:
        return 'Invalid data', 'VALIDATION_ERROR'
    field, error = found
    message = f"{field}: {error}" if field else str(error)
    code = getattr(error, 'code', None) or ''
    if code.isupper():
        return message, code
    if code in MISSING_VALUE_CODES:
        return message, 'MISSING_REQUIRED_FIELDS'
    return message, 'VALIDATION_ERROR'


def validation_error_response(errors):
    message, code = first_error(errors)
    return error_response(message, code, status.HTTP_400_BAD_REQUEST, details=errors)
