import logging

from django.contrib.auth import get_user_model
from rest_framework import authentication

from . import firebase
from .exceptions import AuthenticationError

logger = logging.getLogger('backoffice.core')

User = get_user_model()


class FirebaseAuthentication(authentication.BaseAuthentication):
    """
    Authenticate requests carrying a Firebase ID token.

    The token must belong to a user already synchronised through
    POST /api/v1/auth/sync/. request.auth holds the decoded claims.
    """
    keyword = 'Bearer'

    def authenticate(self, request):
        token = firebase.get_bearer_token(request)
        if token is None:
            return None

        decoded = firebase.verify_id_token(token)
        uid = decoded.get('uid')
        try:
            user = User.objects.select_related('organization').get(firebase_uid=uid)
        except User.DoesNotExist:
            logger.info(f"Valid token for unsynchronised uid {uid}")
            raise AuthenticationError('User is not synchronized, call /auth/sync/ first', code='USER_NOT_SYNCED')

        if not user.is_active:
            logger.warning(f"Inactive user {user.username} attempted to authenticate")
            raise AuthenticationError('User account is disabled', code='USER_INACTIVE')
        return user, decoded

    def authenticate_header(self, request):
        return f'{self.keyword} realm="api"'
