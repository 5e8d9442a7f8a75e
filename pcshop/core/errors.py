"""
Shop error taxonomy.

Every error a request can end in carries the HTTP status it maps to, so the
server's error middleware can translate it without knowing which component
raised it.
"""


class ShopError(Exception):
    """Base error: message plus HTTP status"""

    status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def toDict(self) -> dict:
        return {'error': self.message}


class InvalidInput(ShopError):
    """Malformed or missing fields. Client error, no retry."""

    status = 400


class Conflict(ShopError):
    """Identity already registered"""

    status = 409


class Unauthorized(ShopError):
    """
    Unknown identity or wrong secret.

    Both cases raise this same class with the same message so responses
    cannot be used to enumerate registered identities.
    """

    status = 401


class StorageUnavailable(ShopError):
    """Provisioning, schema or query failure in the store"""

    status = 500
