"""Error taxonomy shared by the orchestrator and the HTTP layer."""


class SoodError(Exception):
    """Base error. Carries the HTTP status and a message safe to show clients."""

    status_code = 500
    public_message = "An error occurred while processing your request"

    def __init__(self, message: str = "", detail: str = ""):
        super().__init__(message or self.public_message)
        self.message = message or self.public_message
        self.detail = detail


# ── Client input (400) ──────────────────────────────────────────────────────

class ClientInputError(SoodError):
    status_code = 400
    public_message = "Invalid request"


class InvalidRoleError(ClientInputError):
    public_message = "Invalid role specified"


class MissingMessageError(ClientInputError):
    public_message = "Message is required"


class OutOfRangeError(ClientInputError):
    public_message = "Values must be between 0 and 1"


# ── Upstream failures ───────────────────────────────────────────────────────

class UpstreamRateLimitedError(SoodError):
    status_code = 429
    public_message = "The language model is rate limited, please retry later"

    def __init__(self, retry_after: float, message: str = "", detail: str = ""):
        super().__init__(message, detail)
        self.retry_after = retry_after


class UpstreamUnavailableError(SoodError):
    public_message = "The language model service is unavailable"


class ProcessingError(SoodError):
    pass
