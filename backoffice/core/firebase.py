"""
Thin wrapper around firebase_admin.

The Firebase app is initialised lazily from the service-account settings so
importing this module never needs credentials (tests patch these functions).
"""
import logging

import firebase_admin
from firebase_admin import auth, credentials
from django.conf import settings

from .exceptions import AuthenticationError

logger = logging.getLogger('backoffice.core')

_firebase_app = None


def get_firebase_app():
    """Return the default Firebase app, initialising it on first use"""
    global _firebase_app
    if _firebase_app is not None:
        return _firebase_app
    try:
        _firebase_app = firebase_admin.get_app()
        return _firebase_app
    except ValueError:
        pass

    options = {'projectId': settings.FIREBASE_PROJECT_ID} if settings.FIREBASE_PROJECT_ID else None
    if settings.FIREBASE_PRIVATE_KEY and settings.FIREBASE_CLIENT_EMAIL:
        cred = credentials.Certificate({
            'type': 'service_account',
            'project_id': settings.FIREBASE_PROJECT_ID,
            'private_key': settings.FIREBASE_PRIVATE_KEY,
            'client_email': settings.FIREBASE_CLIENT_EMAIL,
            'token_uri': 'https://oauth2.googleapis.com/token',
        })
        _firebase_app = firebase_admin.initialize_app(cred, options)
        logger.info(f"Firebase app initialised for project {settings.FIREBASE_PROJECT_ID}")
    else:
        logger.warning("Firebase service account not configured, falling back to application default credentials")
        _firebase_app = firebase_admin.initialize_app(options=options)
    return _firebase_app


def get_bearer_token(request):
    """
    Extract the token from an "Authorization: Bearer <token>" header.
    Returns None when no Authorization header is sent.
    """
    header = request.META.get('HTTP_AUTHORIZATION', '')
    if not header:
        return None
    parts = header.split()
    if len(parts) != 2 or parts[0].lower() != 'bearer':
        raise AuthenticationError('Authorization header must be "Bearer <token>"', code='AUTH_TOKEN_MISSING')
    return parts[1]


def verify_id_token(token):
    """Verify a Firebase ID token and return its decoded claims"""
    try:
        return auth.verify_id_token(token, app=get_firebase_app())
    except auth.ExpiredIdTokenError:
        logger.warning("Rejected expired Firebase token")
        raise AuthenticationError('Token has expired', code='AUTH_TOKEN_EXPIRED')
    except (auth.InvalidIdTokenError, auth.RevokedIdTokenError, ValueError) as e:
        logger.warning(f"Rejected invalid Firebase token: {str(e)}")
        raise AuthenticationError('Invalid or expired token', code='AUTH_TOKEN_INVALID')
    except auth.CertificateFetchError as e:
        logger.error(f"Could not fetch Firebase certificates: {str(e)}", exc_info=True)
        raise AuthenticationError('Token verification unavailable', code='AUTH_TOKEN_INVALID')


def create_custom_token(uid, claims=None):
    token = auth.create_custom_token(uid, claims or None, app=get_firebase_app())
    return token.decode('utf-8') if isinstance(token, bytes) else token


def set_custom_claims(uid, claims):
    auth.set_custom_user_claims(uid, claims, app=get_firebase_app())


def get_firebase_user(uid):
    """Fetch a Firebase user record, returning None when it does not exist"""
    try:
        return auth.get_user(uid, app=get_firebase_app())
    except auth.UserNotFoundError:
        return None
