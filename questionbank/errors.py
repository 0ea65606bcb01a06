"""Error taxonomy for the sign-in flow.

Every error carries a user-safe ``message`` and the HTTP status the API
responds with. The app renders them as ``{"error": message}``.
"""


class QuestionBankError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidRequest(QuestionBankError):
    """The caller sent a malformed or missing code or credential."""

    status_code = 400


class UpstreamAuthError(QuestionBankError):
    """Google rejected the exchange or userinfo call, or could not be reached.

    ``upstream_status`` is the provider's HTTP status, or None when the request
    never got a response (timeout, connection error).
    """

    status_code = 500

    def __init__(self, message: str, upstream_status: int | None = None) -> None:
        super().__init__(message)
        self.upstream_status = upstream_status

    @property
    def is_rejection(self) -> bool:
        """True when the provider answered with a 4xx."""
        return self.upstream_status is not None and 400 <= self.upstream_status < 500


class PersistenceError(QuestionBankError):
    """The user store could not be read or written."""

    status_code = 500


class Unauthorized(QuestionBankError):
    """The caller's session could not be confirmed."""

    status_code = 401
