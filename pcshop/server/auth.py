"""
Session issuer.

After a successful login the server attaches a session cookie carrying a
JWT whose subject is the user's email. Protected endpoints read the cookie
back per request. Stateless: no server-side session table, no revocation.

Cookie: HttpOnly (not readable by page scripts), Path=/, SameSite=Lax,
Secure when configured. Expiry is off by default and enabled with
tokenExpirySeconds.
"""

import jwt
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any

from aiohttp import web

from pcshop.logging import getLogger

COOKIE_NAME = 'session'
DEFAULT_SECRET = 'dev-secret-change-in-production'
ALGORITHM = 'HS256'


class SessionIssuer:
    """Mints and reads session tokens"""

    def __init__(self, config: Dict[str, Any]):
        self.log = getLogger()

        self.secret = config.get('secret') or DEFAULT_SECRET
        self.cookieName = config.get('cookieName', COOKIE_NAME)
        self.tokenExpiry = int(config.get('tokenExpirySeconds', 0))  # 0 = no expiry
        self.secure = bool(config.get('secureCookies', False))
        self.sameSite = config.get('sameSite', 'Lax')

        if self.secret == DEFAULT_SECRET:
            self.log.warning("[Auth] Using default session secret; set SESSION_SECRET in production")

        self.log.info(f"[Auth] Initialized: cookie={self.cookieName}, "
                      f"expiry={self.tokenExpiry or 'none'}")

    def issue(self, identity: str) -> str:
        """Mint a token bound to identity"""
        now = datetime.now(timezone.utc)
        payload = {'sub': identity, 'iat': now}
        if self.tokenExpiry > 0:
            payload['exp'] = now + timedelta(seconds=self.tokenExpiry)
        return jwt.encode(payload, self.secret, algorithm=ALGORITHM)

    def decode(self, token: Optional[str]) -> Optional[str]:
        """Identity carried by token, or None if missing, tampered or expired"""
        if not token:
            return None
        try:
            payload = jwt.decode(token, self.secret, algorithms=[ALGORITHM])
        except jwt.ExpiredSignatureError:
            self.log.warning("[Auth] Session token expired")
            return None
        except jwt.InvalidTokenError as e:
            self.log.warning(f"[Auth] Invalid session token: {e}")
            return None

        identity = payload.get('sub')
        if not isinstance(identity, str) or not identity:
            return None
        return identity

    def read(self, request: web.Request) -> Optional[str]:
        """Identity from the request's session cookie, or None"""
        return self.decode(request.cookies.get(self.cookieName))

    def attach(self, response: web.StreamResponse, token: str):
        """Set the session cookie on response"""
        cookie = {
            'httponly': True,
            'secure': self.secure,
            'samesite': self.sameSite,
            'path': '/'
        }
        if self.tokenExpiry > 0:
            cookie['max_age'] = self.tokenExpiry
        response.set_cookie(self.cookieName, token, **cookie)

    def clear(self, response: web.StreamResponse):
        """Remove the session cookie (logout)"""
        response.del_cookie(self.cookieName, path='/')
