"""
Request logging for the REST API.
"""
import logging
import time

from taskflow.jwt_auth import ACCESS_COOKIE, REFRESH_COOKIE

logger = logging.getLogger(__name__)


class ApiRequestLogMiddleware:
    """
    One debug line per ``/api/`` request: method, path, status, duration and
    which auth cookies came with it. Token values are never logged.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        if not request.path.startswith('/api/'):
            return self.get_response(request)

        started = time.monotonic()
        response = self.get_response(request)
        elapsed_ms = (time.monotonic() - started) * 1000

        if response.status_code >= 500:
            log = logger.error
        elif response.status_code in (401, 403):
            log = logger.info
        else:
            log = logger.debug
        log(
            f"{request.method} {request.path} -> {response.status_code} in {elapsed_ms:.0f}ms "
            f"(access_cookie={ACCESS_COOKIE in request.COOKIES}, "
            f"refresh_cookie={REFRESH_COOKIE in request.COOKIES})"
        )
        return response
