import logging

from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import AuthenticationFailed, TokenError
from rest_framework_simplejwt.serializers import TokenRefreshSerializer

from taskflow.jwt_auth import ACCESS_COOKIE, REFRESH_COOKIE
from .auth_viewset import ACCESS_MAX_AGE, REFRESH_MAX_AGE, set_auth_cookie

logger = logging.getLogger(__name__)


class CookieTokenRefreshView(APIView):
    """
    Issues a new access cookie from the refresh cookie.
    Disabled accounts cannot refresh; when rotation is on the refresh cookie is replaced too.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request):
        refresh_cookie = request.COOKIES.get(REFRESH_COOKIE)
        if not refresh_cookie:
            return Response({"detail": "Refresh token cookie missing"}, status=status.HTTP_401_UNAUTHORIZED)

        serializer = TokenRefreshSerializer(data={"refresh": refresh_cookie})
        try:
            serializer.is_valid(raise_exception=True)
        except (TokenError, AuthenticationFailed) as e:
            logger.info(f"Refresh rejected: {e}")
            return Response({"detail": "Invalid refresh token"}, status=status.HTTP_401_UNAUTHORIZED)

        tokens = serializer.validated_data
        res = Response({"detail": "Token refreshed"}, status=status.HTTP_200_OK)
        set_auth_cookie(res, ACCESS_COOKIE, tokens["access"], ACCESS_MAX_AGE)
        if "refresh" in tokens:
            set_auth_cookie(res, REFRESH_COOKIE, tokens["refresh"], REFRESH_MAX_AGE)
        return res
