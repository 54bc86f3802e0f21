# backend/ocs_ai/core/errors.py

"""
Exception hierarchy for the answer proxy.

Every error raised while serving /query is a QuizProxyError; the app turns
it into {"code": 0, "message": ...} with the error's status code.
"""


class QuizProxyError(Exception):
    """Base error for the answer proxy."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


# ------------------------------------------------------------
# Startup
# ------------------------------------------------------------
class ConfigError(QuizProxyError):
    """Configuration could not be loaded. Fatal at startup."""


class ConfigMissingError(ConfigError):
    pass


class ConfigParseError(ConfigError):
    pass


# ------------------------------------------------------------
# Request handling
# ------------------------------------------------------------
class QueryValidationError(QuizProxyError):
    status_code = 400


class PayloadBuildError(QuizProxyError):
    pass


class TransportError(QuizProxyError):
    pass


class UpstreamStatusError(QuizProxyError):
    """Non-2xx from the AI endpoint; status_code mirrors the upstream one."""


class ReplyParseError(QuizProxyError):
    pass


class UpstreamLogicalError(QuizProxyError):
    """The reply carried an explicit `error` object."""


class EmptyAnswerError(QuizProxyError):
    pass
