import logging
from django.utils.deprecation import MiddlewareMixin

from .jwt_auth import ACCESS_COOKIE, get_user_id_from_token
from .models import User

logger = logging.getLogger(__name__)


class JWTCookieMiddleware(MiddlewareMixin):
    """
    Authenticates requests carrying a valid access token cookie.

    Runs after Django's AuthenticationMiddleware; a session login wins,
    otherwise request.user is replaced by the token's (active) user.
    """

    def process_request(self, request):
        if hasattr(request, 'user') and request.user.is_authenticated:
            return

        token = request.COOKIES.get(ACCESS_COOKIE)
        if not token:
            return

        user_id = get_user_id_from_token(token)
        if not user_id:
            return

        user = User.objects.filter(id=user_id, is_active=True).first()
        if user is None:
            logger.warning(f"Access token for unknown or inactive user {user_id}")
            return

        request.user = user
