"""Exception hierarchy for planning-balance."""


class PlanningBalanceError(Exception):
    """Base exception for all planning-balance errors."""


class SourceFetchError(PlanningBalanceError):
    """Raised by an evidence source when a fetch fails.

    Never escapes the multi-source fetcher: the failing source is replaced
    with an empty contribution and a warning.
    """

    def __init__(self, message: str, source: str = "") -> None:
        super().__init__(message)
        self.source = source


class ReasoningServiceError(PlanningBalanceError):
    """Raised when the reasoning service cannot produce a judgement."""


class LLMClientError(ReasoningServiceError):
    """Raised when LLM API calls fail after exhausting retries."""


class RetryableError(LLMClientError):
    """Rate limits, timeouts and 5xx responses; retried."""


class NonRetryableError(LLMClientError):
    """Auth errors and non-429 4xx responses; not retried."""


class TokenizerError(PlanningBalanceError):
    """Raised when token counting encounters an error."""


class PersistenceError(PlanningBalanceError):
    """Raised when a persistence backend operation fails."""


class AssessmentCancelledError(PlanningBalanceError):
    """Raised when an assessment was cancelled before its snapshot was stored."""

    def __init__(self, assessment_id: str) -> None:
        super().__init__(f"Assessment {assessment_id} was cancelled")
        self.assessment_id = assessment_id
