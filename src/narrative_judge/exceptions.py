"""Exception hierarchy for narrative-judge.

Every error carries a ``context`` mapping (campaign id, model, level ...)
that :class:`~narrative_judge.logging_config.StructuredFormatter` exposes
to log formats, plus the HTTP status and hint the web app answers with.
"""

from typing import Any, Dict, Optional


class NarrativeJudgeException(Exception):
    """Base exception for all narrative-judge errors."""

    http_status = 400
    hint: Optional[str] = None

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        """Initialize exception with message and optional context.

        Args:
            message: Human-readable error message
            context: Optional dictionary with additional error context
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


class ConfigurationError(NarrativeJudgeException):
    """Raised when configuration is invalid or missing."""

    http_status = 500


class ValidationError(NarrativeJudgeException):
    """Raised when a campaign, brief or request payload is malformed."""

    def __init__(
        self, message: str, field: Optional[str] = None, value: Any = None, context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, context)
        self.field = field
        self.value = value


# Generative service (LLM audit pass)


class APIError(NarrativeJudgeException):
    """Base class for generative-service errors."""

    http_status = 502


class APIConnectionError(APIError):
    hint = "Check api.base_url and network access"


class APITimeoutError(APIError):
    hint = "Raise api.timeout or lower audit.max_output_tokens"


class APIRateLimitError(APIError):
    """The generative service answered 429."""

    def __init__(self, message: str, retry_after: Optional[int] = None, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, context)
        self.retry_after = retry_after
        if retry_after is not None:
            self.hint = f"Retry after {retry_after}s"


class APIResponseError(APIError):
    """The generative service answered with an error status or a refusal."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, context)
        self.status_code = status_code
        self.response_body = response_body


class AuditError(NarrativeJudgeException):
    """Raised when the LLM audit pass fails."""

    http_status = 502


class AuditParsingError(AuditError):
    """The audit reply held no usable JSON object."""

    def __init__(self, message: str, raw_response: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        """Initialize with raw response.

        Args:
            message: Error message
            raw_response: Reply text that could not be parsed
            context: Additional context
        """
        super().__init__(message, context)
        self.raw_response = raw_response


# Collaborators the judge depends on


class CollaboratorError(NarrativeJudgeException):
    """Base class for failures of the narrative store, research provider or offer scorer."""

    http_status = 502


class NarrativeStoreError(CollaboratorError):
    """Raised when stored narratives cannot be read."""


class ResearchUnavailableError(CollaboratorError):
    """Raised when no research pack can be produced for a campaign.

    The judge absorbs this into a ``RESEARCH_MISSING`` issue; it only
    reaches callers that use a research provider directly.
    """

    hint = "Judge with baseline research or supply a research pack"

    def __init__(self, message: str, level: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, context)
        self.level = level


class OfferScoringError(CollaboratorError):
    """Raised when the offer scorer cannot assess a campaign."""


# Persistence


class RepositoryError(NarrativeJudgeException):
    """Base class for campaign and verdict storage errors."""

    http_status = 500


class CampaignNotFoundError(RepositoryError):
    """Raised when a campaign id is unknown."""

    http_status = 404

    def __init__(self, campaign_id: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(f"Campaign not found: {campaign_id}", context)
        self.campaign_id = campaign_id


class VerdictSaveError(RepositoryError):
    """Raised when a verdict record cannot be written."""

    def __init__(self, message: str, file_path: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, context)
        self.file_path = file_path


__all__ = [
    "NarrativeJudgeException",
    "ConfigurationError",
    "ValidationError",
    "APIError",
    "APIConnectionError",
    "APITimeoutError",
    "APIRateLimitError",
    "APIResponseError",
    "AuditError",
    "AuditParsingError",
    "CollaboratorError",
    "NarrativeStoreError",
    "ResearchUnavailableError",
    "OfferScoringError",
    "RepositoryError",
    "CampaignNotFoundError",
    "VerdictSaveError",
]
