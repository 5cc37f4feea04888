import logging
from urllib.parse import urlencode

import requests
from django.conf import settings
from django.contrib.auth.models import User
from django.db import transaction

from user.models import UserProfile

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = 'https://accounts.google.com/o/oauth2/v2/auth'
GOOGLE_TOKEN_URL = 'https://oauth2.googleapis.com/token'
GOOGLE_USERINFO_URL = 'https://www.googleapis.com/oauth2/v2/userinfo'


class GoogleAuthError(Exception):
    """Sign-in with Google failed; ``code`` is the value passed back to the frontend."""

    def __init__(self, code, message=''):
        super().__init__(message or code)
        self.code = code


def authorization_url():
    params = {
        'client_id': settings.GOOGLE_CLIENT_ID,
        'redirect_uri': settings.GOOGLE_REDIRECT_URI,
        'response_type': 'code',
        'scope': 'openid email profile',
        'access_type': 'offline',
        'prompt': 'consent',
    }
    return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"


def fetch_user_info(code):
    """
    Exchange an authorization code for the Google account's profile
    (``id``, ``email``, ``name``...).
    """
    try:
        token_response = requests.post(
            GOOGLE_TOKEN_URL,
            data={
                'code': code,
                'client_id': settings.GOOGLE_CLIENT_ID,
                'client_secret': settings.GOOGLE_CLIENT_SECRET,
                'redirect_uri': settings.GOOGLE_REDIRECT_URI,
                'grant_type': 'authorization_code',
            },
            timeout=10,
        )
        if token_response.status_code != 200:
            logger.error(f"Google token exchange failed: {token_response.status_code}")
            raise GoogleAuthError('token_error')

        access_token = token_response.json().get('access_token')
        userinfo_response = requests.get(
            GOOGLE_USERINFO_URL,
            headers={'Authorization': f'Bearer {access_token}'},
            timeout=10,
        )
        if userinfo_response.status_code != 200:
            logger.error(f"Google userinfo request failed: {userinfo_response.status_code}")
            raise GoogleAuthError('userinfo_error')
        info = userinfo_response.json()
    except requests.RequestException as e:
        logger.error(f"Google OAuth request error: {str(e)}")
        raise GoogleAuthError('oauth_error', str(e))

    if not info.get('id') or not info.get('email'):
        raise GoogleAuthError('userinfo_error', 'Google account has no id or email')
    return info


@transaction.atomic
def upsert_google_user(info):
    """
    Find the account for a Google profile: by linked google id, then by
    email (linking it), otherwise create one without a usable password.
    """
    google_id = str(info['id'])
    email = info['email']

    profile = UserProfile.objects.select_related('user').filter(google_id=google_id).first()
    if profile is not None:
        return profile.user

    user = User.objects.filter(email__iexact=email).first()
    if user is None:
        first_name, _, last_name = (info.get('name') or '').partition(' ')
        user = User(username=email, email=email, first_name=first_name, last_name=last_name)
        user.set_unusable_password()
        user.save()
        logger.info(f"Created user {user.id} from Google sign-in")

    profile, _ = UserProfile.objects.get_or_create(user=user)
    profile.google_id = google_id
    profile.save(update_fields=['google_id'])
    logger.info(f"Linked Google account to user {user.id}")
    return user
