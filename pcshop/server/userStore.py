"""
User Store - credential vault over the shop database.

Owns user records: email identity plus bcrypt password hash.
Records are created by registration only; this module never updates or
deletes them.

- Hashes are salted per call (bcrypt.gensalt), so equal passwords never
  produce equal stored hashes
- Passwords are only ever compared through bcrypt.checkpw
- Email uniqueness is enforced by the store's UNIQUE constraint, not by a
  lookup before insert, so concurrent registrations of one email resolve
  to exactly one success and one Conflict
"""

import sqlite3
from typing import Optional

import bcrypt

from pcshop.logging import getLogger
from pcshop.core.database import Database
from pcshop.core.errors import InvalidInput, Conflict, Unauthorized

MIN_PASSWORD_LENGTH = 4
BCRYPT_MAX_BYTES = 72  # bcrypt rejects longer inputs

INVALID_CREDENTIALS = 'invalid credentials'


class UserStore:
    """SQLite-backed user storage with bcrypt hashes"""

    def __init__(self, database: Database, minPasswordLength: int = MIN_PASSWORD_LENGTH):
        self.database = database
        self.minPasswordLength = minPasswordLength
        self.log = getLogger()
        self._dummyHash: Optional[bytes] = None

    def register(self, email: str, password: str):
        """
        Register a new user.

        Raises InvalidInput for an empty email or a password outside
        bcrypt's accepted length, Conflict if the email is taken.
        """
        if not isinstance(email, str) or not email:
            raise InvalidInput('invalid data')
        if not isinstance(password, str) or len(password) < self.minPasswordLength:
            raise InvalidInput('invalid data')

        secret = password.encode('utf-8')
        if len(secret) > BCRYPT_MAX_BYTES:
            raise InvalidInput('invalid data')

        passwordHash = bcrypt.hashpw(secret, bcrypt.gensalt())

        try:
            self.database.execute(
                'INSERT INTO users (email, password_hash) VALUES (?, ?)',
                (email, passwordHash.decode('utf-8'))
            )
        except sqlite3.IntegrityError:
            self.log.warning("[UserStore] Registration conflict", email=email)
            raise Conflict('email exists')

        self.log.info("[UserStore] Registered user", email=email)

    def verify(self, email: str, password: str):
        """
        Check email and password.

        Raises Unauthorized on unknown email or wrong password; the two are
        indistinguishable to the caller. Unknown emails still pay for one
        bcrypt comparison.
        """
        if not isinstance(email, str) or not isinstance(password, str):
            raise Unauthorized(INVALID_CREDENTIALS)

        storedHash = self.getPasswordHash(email) if email else None
        secret = password.encode('utf-8')

        if storedHash is None:
            self._checkpw(secret, self._getDummyHash())
            self.log.warning("[UserStore] Login failed", email=email)
            raise Unauthorized(INVALID_CREDENTIALS)

        if not self._checkpw(secret, storedHash.encode('utf-8')):
            self.log.warning("[UserStore] Login failed", email=email)
            raise Unauthorized(INVALID_CREDENTIALS)

        self.log.info("[UserStore] Login verified", email=email)

    def getPasswordHash(self, email: str) -> Optional[str]:
        """Stored hash for email, or None"""
        row = self.database.queryOne(
            'SELECT password_hash FROM users WHERE email = ?', (email,)
        )
        return row['password_hash'] if row else None

    def exists(self, email: str) -> bool:
        return self.getPasswordHash(email) is not None

    def count(self) -> int:
        row = self.database.queryOne('SELECT COUNT(*) AS n FROM users')
        return row['n']

    def _checkpw(self, secret: bytes, hashed: bytes) -> bool:
        try:
            return bcrypt.checkpw(secret, hashed)
        except ValueError:
            # Over-long input or malformed stored hash
            return False

    def _getDummyHash(self) -> bytes:
        if self._dummyHash is None:
            self._dummyHash = bcrypt.hashpw(b'not-a-real-password', bcrypt.gensalt())
        return self._dummyHash
