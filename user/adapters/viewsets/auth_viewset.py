import logging

from django.conf import settings
from django.contrib.auth import authenticate
from django.contrib.auth.models import User
from django.contrib.auth.tokens import default_token_generator
from django.core.mail import send_mail
from django.http import HttpResponseRedirect
from django.utils.encoding import force_bytes
from django.utils.http import urlencode, urlsafe_base64_encode
from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.tokens import RefreshToken

from taskflow.jwt_auth import ACCESS_COOKIE, REFRESH_COOKIE
from user import google_oauth
from ..serializers.user_serializers import (
    ChangePasswordSerializer,
    ForgotPasswordSerializer,
    LoginSerializer,
    RegisterSerializer,
    ResetPasswordSerializer,
    UserSerializer,
)

logger = logging.getLogger(__name__)

ACCESS_MAX_AGE = 36000  # 10 hours (SIMPLE_JWT ACCESS_TOKEN_LIFETIME)
REFRESH_MAX_AGE = 604800  # 7 days (SIMPLE_JWT REFRESH_TOKEN_LIFETIME)

RESET_REQUESTED_MESSAGE = "If an account exists, you will receive a reset link"


def set_auth_cookie(response, key, value, max_age):
    # HttpOnly so the browser keeps the token away from JavaScript
    response.set_cookie(
        key=key,
        value=value,
        max_age=max_age,
        secure=settings.TASKFLOW_COOKIE_SECURE,
        httponly=True,
        samesite='None' if settings.TASKFLOW_COOKIE_SECURE else 'Lax',
        path='/',
        domain=settings.TASKFLOW_COOKIE_DOMAIN,
    )


def issue_auth_cookies(response, user):
    refresh = RefreshToken.for_user(user)
    set_auth_cookie(response, ACCESS_COOKIE, str(refresh.access_token), ACCESS_MAX_AGE)
    set_auth_cookie(response, REFRESH_COOKIE, str(refresh), REFRESH_MAX_AGE)
    return response


def frontend_redirect(path, **params):
    url = f"{settings.TASKFLOW_FRONTEND_URL}{path}"
    if params:
        url = f"{url}?{urlencode(params)}"
    return HttpResponseRedirect(url)


class AuthViewSet(viewsets.ViewSet):
    permission_classes = [AllowAny]
    serializer_class = LoginSerializer

    @extend_schema(request=LoginSerializer, responses={200: UserSerializer})
    @action(detail=False, methods=["post"])
    def login_with_email(self, request):
        email = request.data.get("email")
        password = request.data.get("password")

        if not email or not password:
            return Response(
                {"error": "Email and password are required"},
                status=status.HTTP_400_BAD_REQUEST,
            )

        find_user = User.objects.filter(email__iexact=email).first()
        if not find_user:
            return Response(
                {"error": "Invalid email or password"},
                status=status.HTTP_401_UNAUTHORIZED,
            )

        # Disabled users fail here too: ModelBackend rejects is_active=False
        user = authenticate(request, username=find_user.username, password=password)
        if not user:
            logger.info(f"Failed login for user {find_user.id}")
            return Response(
                {"error": "Invalid email or password"},
                status=status.HTTP_401_UNAUTHORIZED,
            )

        # Tokens travel only as cookies, never in the body
        response = Response(
            {"user": UserSerializer(user, context={"request": request}).data},
            status=status.HTTP_200_OK,
        )
        issue_auth_cookies(response, user)

        logger.info(f"User {user.id} logged in")
        return response

    @extend_schema(request=None, responses={302: None})
    def login_with_google(self, request, *args, **kwargs):
        return HttpResponseRedirect(google_oauth.authorization_url())

    @extend_schema(request=None, responses={302: None})
    def google_callback(self, request, *args, **kwargs):
        """Google redirects here with ``?code=``; the browser lands on the dashboard or the sign-in page."""
        code = request.query_params.get("code")
        if not code:
            return frontend_redirect("/signin", error="no_code")

        try:
            info = google_oauth.fetch_user_info(code)
        except google_oauth.GoogleAuthError as e:
            return frontend_redirect("/signin", error=e.code)

        user = google_oauth.upsert_google_user(info)
        if not user.is_active:
            logger.info(f"Google sign-in refused for disabled user {user.id}")
            return frontend_redirect("/signin", error="account_disabled")

        logger.info(f"User {user.id} logged in with Google")
        return issue_auth_cookies(frontend_redirect("/dashboard"), user)

    @extend_schema(request=RegisterSerializer, responses={201: UserSerializer})
    def register(self, request, *args, **kwargs):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        if User.objects.filter(email__iexact=serializer.validated_data["email"]).exists():
            return Response(
                {"error": "User already exists"},
                status=status.HTTP_409_CONFLICT,
            )

        user = serializer.save()
        logger.info(f"Registered user {user.id}")
        return Response(
            UserSerializer(user, context={"request": request}).data,
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(request=ForgotPasswordSerializer, responses={200: None})
    def forgot_password(self, request, *args, **kwargs):
        serializer = ForgotPasswordSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        # Same answer whether or not the account exists
        user = User.objects.filter(email__iexact=serializer.validated_data["email"], is_active=True).first()
        if user is not None:
            uid = urlsafe_base64_encode(force_bytes(user.pk))
            token = default_token_generator.make_token(user)
            reset_link = f"{settings.TASKFLOW_FRONTEND_URL}/reset-password?{urlencode({'uid': uid, 'token': token})}"
            send_mail(
                "Reset Your Password",
                f"Click the following link to reset your password: {reset_link}\n\n"
                f"This link will expire in 1 hour. If you didn't request this, please ignore this email.",
                settings.DEFAULT_FROM_EMAIL,
                [user.email],
            )
            logger.info(f"Password reset link sent to user {user.id}")

        return Response({"message": RESET_REQUESTED_MESSAGE}, status=status.HTTP_200_OK)

    @extend_schema(request=ResetPasswordSerializer, responses={200: None})
    def reset_password(self, request, *args, **kwargs):
        serializer = ResetPasswordSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = serializer.validated_data["user"]
        user.set_password(serializer.validated_data["password"])
        user.save(update_fields=["password"])

        logger.info(f"Password reset for user {user.id}")
        return Response({"message": "Password reset successful"}, status=status.HTTP_200_OK)

    def logout(self, request, *args, **kwargs):
        response = Response(
            {"message": "Successfully logged out"},
            status=status.HTTP_200_OK
        )

        samesite = 'None' if settings.TASKFLOW_COOKIE_SECURE else 'Lax'
        response.delete_cookie(ACCESS_COOKIE, path='/', domain=settings.TASKFLOW_COOKIE_DOMAIN, samesite=samesite)
        response.delete_cookie(REFRESH_COOKIE, path='/', domain=settings.TASKFLOW_COOKIE_DOMAIN, samesite=samesite)

        return response


class MeViewSet(viewsets.ViewSet):
    permission_classes = [IsAuthenticated]

    @extend_schema(responses={200: UserSerializer})
    def me(self, request, *args, **kwargs):
        return Response(UserSerializer(request.user, context={"request": request}).data)

    @extend_schema(request=ChangePasswordSerializer, responses={200: None})
    def change_password(self, request, *args, **kwargs):
        serializer = ChangePasswordSerializer(data=request.data, context={"request": request})
        serializer.is_valid(raise_exception=True)

        request.user.set_password(serializer.validated_data["new_password"])
        request.user.save(update_fields=["password"])

        logger.info(f"Password changed for user {request.user.id}")
        return Response({"message": "Password changed"}, status=status.HTTP_200_OK)
