from django.urls import path
from .adapters.viewsets import auth_viewset
from .adapters.viewsets.auth_refresh import CookieTokenRefreshView

urlpatterns = [
    # URL for logging in with email
    path('login/email/', auth_viewset.AuthViewSet.as_view({'post': 'login_with_email'}), name='login_email'),
    # URL for logging in with Google and the redirect Google sends back
    path('login/google/', auth_viewset.AuthViewSet.as_view({'get': 'login_with_google'}), name='login_google'),
    path('login/google/callback/', auth_viewset.AuthViewSet.as_view({'get': 'google_callback'}), name='login_google_callback'),
    # URL for user registration
    path('register/', auth_viewset.AuthViewSet.as_view({'post': 'register'}), name='register'),
    # URLs for recovering a forgotten password
    path('forgot-password/', auth_viewset.AuthViewSet.as_view({'post': 'forgot_password'}), name='forgot_password'),
    path('reset-password/', auth_viewset.AuthViewSet.as_view({'post': 'reset_password'}), name='reset_password'),
    # URL for logging out
    path('logout/', auth_viewset.AuthViewSet.as_view({'post': 'logout'}), name='logout'),
    # refresh the access token cookie from the refresh token cookie
    path('token/refresh/', CookieTokenRefreshView.as_view(), name='token_refresh'),
    # the authenticated user
    path('me/', auth_viewset.MeViewSet.as_view({'get': 'me'}), name='me'),
    path('change-password/', auth_viewset.MeViewSet.as_view({'post': 'change_password'}), name='change_password'),
]
