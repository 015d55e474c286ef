"""Domain errors raised by the gateway, directory, and settings store.

Routes translate these into HTTP responses; services never build
HTTPExceptions themselves.

Learn: AuthenticationFailure messages are deliberately generic. Whether
the username was unknown, the password wrong, or the token expired, the
caller sees the same text.
"""


class FloodgateError(Exception):
    """Base class for all domain errors."""


class AuthenticationFailure(FloodgateError):
    """Bad credentials, or a missing/invalid/expired token."""


class AuthorizationFailure(FloodgateError):
    """Authenticated, but not allowed to do this."""


class ConflictError(FloodgateError):
    """The operation clashes with existing state (e.g. duplicate username)."""


class NotFoundError(FloodgateError):
    """Unknown user, or a route that does not exist in the current auth mode."""


class StorageError(FloodgateError):
    """The persistence backend failed."""
