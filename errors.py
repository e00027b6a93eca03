"""
Failure kinds raised by the GameVault services.

Each kind carries the HTTP status the API boundary answers with.
"""


class GameVaultError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(GameVaultError):
    """Missing or invalid input."""
    status_code = 400


class Conflict(GameVaultError):
    """The requested state already exists (duplicate user, game already listed)."""
    status_code = 400


class Unauthorized(GameVaultError):
    status_code = 401


class NotFound(GameVaultError):
    status_code = 404


class InternalError(GameVaultError):
    status_code = 500
