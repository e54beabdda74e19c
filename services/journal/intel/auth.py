# services/journal/intel/auth.py
"""Authentication for the Journal service.

Callers are identified either by X-User-* headers set by the gateway proxy
or by an app session JWT (Bearer header, ms_session cookie or token query
param). Both resolve to the same user id, `<issuer>:<wp user id>`, which is
the owner key on every journal row.

The app session JWT has this structure:
{
    "iat": 1234567890,
    "exp": 1234567890,
    "wp": {
        "issuer": "fotw" or "0-dte",
        "id": "wp_user_id",
        "email": "user@example.com",
        "name": "Display Name",
        "roles": ["subscriber"]
    }
}
"""

import jwt
from typing import Optional, Dict, Any
from functools import wraps
from aiohttp import web


def _user(issuer: str, wp_user_id: str, **extra) -> Dict[str, Any]:
    user = {
        'id': f"{issuer}:{wp_user_id}",
        'issuer': issuer,
        'wp_user_id': wp_user_id,
    }
    user.update(extra)
    return user


class JournalAuth:
    """Handles JWT validation and user resolution for the journal service."""

    def __init__(self, config: Dict[str, Any]):
        # App session secret (same as the gateway uses to sign session JWTs)
        self.app_session_secret = config.get('APP_SESSION_SECRET', '')

    def decode_app_session(self, token: str) -> Optional[Dict[str, Any]]:
        """Decode and validate an app session JWT. None if invalid or expired."""
        if not token or not self.app_session_secret:
            return None

        try:
            return jwt.decode(
                token,
                self.app_session_secret,
                algorithms=['HS256']
            )
        except jwt.ExpiredSignatureError:
            return None
        except jwt.InvalidTokenError:
            return None

    def get_user_from_session(self, token: str) -> Optional[Dict[str, Any]]:
        payload = self.decode_app_session(token)
        if not payload:
            return None

        wp = payload.get('wp', {}) or {}
        issuer = (wp.get('issuer') or '').strip()
        wp_user_id = str(wp.get('id') or '').strip()

        if not issuer or not wp_user_id:
            return None

        return _user(
            issuer,
            wp_user_id,
            email=wp.get('email'),
            display_name=wp.get('name'),
            roles=wp.get('roles', []),
        )

    def extract_token(self, request: web.Request) -> Optional[str]:
        """
        Extract app session token from request.

        Checks:
        1. Authorization header (Bearer token)
        2. ms_session cookie
        3. token query param
        """
        auth_header = request.headers.get('Authorization', '')
        if auth_header.startswith('Bearer '):
            return auth_header[7:]

        cookies = request.cookies
        if 'ms_session' in cookies:
            return cookies['ms_session']

        token = request.query.get('token')
        if token:
            return token

        return None

    def get_user_from_proxy_headers(self, request: web.Request) -> Optional[Dict[str, Any]]:
        """User from X-User-* headers, set by the gateway after it validated the session."""
        x_user_id = request.headers.get('X-User-Id', '').strip()
        x_user_issuer = request.headers.get('X-User-Issuer', '').strip()

        if not x_user_id or not x_user_issuer:
            return None

        return _user(
            x_user_issuer,
            x_user_id,
            email=request.headers.get('X-User-Email', '').strip() or None,
        )

    async def get_request_user(self, request: web.Request) -> Optional[Dict[str, Any]]:
        """
        Get user from request.

        Checks in order:
        1. X-User-* headers (from gateway proxy)
        2. App session JWT
        """
        user = self.get_user_from_proxy_headers(request)
        if user:
            return user

        token = self.extract_token(request)
        if token:
            return self.get_user_from_session(token)

        return None


def require_auth(handler):
    """
    Decorator to require authentication on a route handler.

    Adds request['user'] with the authenticated user.
    Returns 401 if not authenticated.
    """
    @wraps(handler)
    async def wrapper(self, request: web.Request) -> web.Response:
        user = await self.auth.get_request_user(request)
        if not user:
            return self._error_response('Authentication required', 401)

        request['user'] = user
        return await handler(self, request)

    return wrapper


def optional_auth(handler):
    """
    Decorator to optionally authenticate a route handler.

    Adds request['user'] with the authenticated user or None.
    """
    @wraps(handler)
    async def wrapper(self, request: web.Request) -> web.Response:
        request['user'] = await self.auth.get_request_user(request)
        return await handler(self, request)

    return wrapper
