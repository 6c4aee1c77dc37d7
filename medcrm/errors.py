import re

# PostgREST JWT errors plus plain HTTP 401.
AUTH_ERROR_CODES = {"PGRST301", "PGRST302", "PGRST303", "401"}
AUTH_ERROR_PATTERN = re.compile(r"jwt|token|unauthori[sz]ed|not authenticated", re.IGNORECASE)


class CRMError(Exception):
    """Base class for every error raised by medcrm."""


class ConfigError(CRMError):
    pass


class ValidationError(CRMError):
    """Input rejected before any remote call was made."""


class AccessDeniedError(CRMError):
    """The signed-in user's role does not allow the action."""


class RemoteError(CRMError):
    """A backend call failed for a reason other than authentication."""

    def __init__(self, message, code=None):
        super().__init__(message)
        self.code = code


class AuthExpiredError(RemoteError):
    """The backend rejected the credential; a session refresh may fix it."""


def error_code(exc):
    code = getattr(exc, "code", None)
    if code is None:
        code = getattr(exc, "status", None)
    return str(code) if code is not None else None


def error_message(exc):
    message = getattr(exc, "message", None)
    return str(message) if message else str(exc)


def is_auth_failure(exc):
    """True when a raw backend exception carries an auth-failure signature."""
    if isinstance(exc, AuthExpiredError):
        return True
    code = error_code(exc)
    if code in AUTH_ERROR_CODES:
        return True
    return bool(AUTH_ERROR_PATTERN.search(f"{code or ''} {error_message(exc)}"))


def classify(exc):
    """Maps a raw backend exception onto AuthExpiredError or RemoteError."""
    if isinstance(exc, CRMError):
        return exc
    cls = AuthExpiredError if is_auth_failure(exc) else RemoteError
    return cls(error_message(exc), code=error_code(exc))
