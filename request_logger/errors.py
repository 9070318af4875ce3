"""Exception types raised by the log store and the admin surface."""


class RequestLoggerError(Exception):
    """Base class for all request-logger errors."""


class LogStoreError(RequestLoggerError):
    """Raised when the log file cannot be created, written, or read."""


class LogNotFoundError(LogStoreError):
    """Raised when reading a log file that does not exist yet."""


class AuthError(RequestLoggerError):
    """Raised when an admin action is attempted without valid credentials."""
