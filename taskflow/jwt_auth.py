"""
JWT authentication that reads tokens from cookies instead of Authorization headers.
Used by the REST API and by the notification websocket.
"""

from http.cookies import SimpleCookie
from typing import Optional, Tuple

from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware
from django.contrib.auth.models import AnonymousUser
from django.http import HttpRequest
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import AuthenticationFailed, InvalidToken, TokenError

ACCESS_COOKIE = 'access_token'
REFRESH_COOKIE = 'refresh_token'


class CookieJWTAuthentication(JWTAuthentication):
    """
    Reads the access token from the HttpOnly ``access_token`` cookie.
    Falls back to the Authorization header (testing tools, mobile apps).
    """

    def authenticate(self, request: HttpRequest) -> Optional[Tuple]:
        access_token = request.COOKIES.get(ACCESS_COOKIE)

        if access_token is None:
            return super().authenticate(request)

        validated_token = self.get_validated_token(access_token)
        return self.get_user(validated_token), validated_token

    def authenticate_header(self, request: HttpRequest) -> str:
        return 'Bearer'


def _cookie_from_scope(scope, name):
    for header, value in scope.get('headers', []):
        if header == b'cookie':
            cookie = SimpleCookie()
            cookie.load(value.decode('latin-1'))
            if name in cookie:
                return cookie[name].value
    return None


@database_sync_to_async
def _user_from_token(raw_token):
    auth = JWTAuthentication()
    try:
        validated_token = auth.get_validated_token(raw_token)
        return auth.get_user(validated_token)
    except (InvalidToken, AuthenticationFailed, TokenError):
        return AnonymousUser()


class CookieJWTAuthMiddleware(BaseMiddleware):
    """
    Channels middleware: populates ``scope["user"]`` from the access token cookie.
    Connections without a valid cookie get an AnonymousUser.
    """

    async def __call__(self, scope, receive, send):
        raw_token = _cookie_from_scope(scope, ACCESS_COOKIE)
        if raw_token:
            scope['user'] = await _user_from_token(raw_token)
        else:
            scope.setdefault('user', AnonymousUser())
        return await super().__call__(scope, receive, send)
