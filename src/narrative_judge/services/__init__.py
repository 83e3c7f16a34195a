"""Service interfaces for dependency injection."""

from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence

from ..domain import CampaignContext, JudgeVerdict, OfferIQResult, ResearchPack


class INarrativeStore(Protocol):
    """Interface for reading the latest generated narrative per phase."""

    async def fetch_latest(self, campaign_id: str, type_aliases: Sequence[str]) -> str:
        """Return the most recent narrative under any alias, or an empty string."""
        ...


class IResearchProvider(Protocol):
    """Interface for retrieving a research pack."""

    async def fetch(self, context: CampaignContext, level: str) -> ResearchPack:
        """Fetch research at the given depth; raise when unavailable."""
        ...


class IOfferScorer(Protocol):
    """Interface for the offer adequacy scorer."""

    async def score(self, context: CampaignContext, research: Optional[ResearchPack]) -> OfferIQResult:
        """Score the offer in the brief against the research."""
        ...


class IGenerativeTextClient(Protocol):
    """Interface for generative text completions."""

    async def complete(
        self,
        *,
        model: str,
        system: str,
        messages: List[Dict[str, str]],
        json: bool = False,
        temperature: float = 0.0,
        top_p: float = 1.0,
        max_output_tokens: int = 600,
    ) -> str:
        """Return the completion text."""
        ...

    async def aclose(self) -> None:
        """Close connections and cleanup resources."""
        ...


class IConfigurationManager(Protocol):
    """Interface for configuration management."""

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value."""
        ...

    def set(self, key: str, value: Any) -> None:
        """Set configuration value."""
        ...

    def get_section(self, section: str) -> Dict[str, Any]:
        """Get entire configuration section."""
        ...

    def reload(self) -> None:
        """Reload configuration from source."""
        ...


class ITimeService(Protocol):
    """Interface for time-related operations."""

    def now_iso(self) -> str:
        """Get current UTC timestamp in ISO-8601 format with Z suffix."""
        ...


class IResponseParser(Protocol):
    """Interface for parsing API responses."""

    def extract_text(self, payload: Dict[str, Any]) -> str:
        """Extract text content from API response payload."""
        ...

    def extract_refusal(self, payload: Dict[str, Any]) -> Optional[str]:
        """Return the model's refusal message, if it declined to answer."""
        ...

    def extract_finish_reason(self, payload: Dict[str, Any]) -> Optional[str]:
        """Return why generation stopped (``stop``, ``length`` ...)."""
        ...

    def extract_usage(self, payload: Dict[str, Any]) -> Dict[str, int]:
        """Return token usage counts."""
        ...


class IFileSystemService(Protocol):
    """Interface for file system operations."""

    def write_json(self, path: Path, data: Any) -> None:
        """Write data as JSON to path, creating directories as needed."""
        ...

    def read_json(self, path: Path) -> Any:
        """Read JSON data from path."""
        ...

    def list_files(self, directory: Path, pattern: str) -> List[Path]:
        """List files matching pattern, sorted by name."""
        ...


class ICampaignRepository(Protocol):
    """Interface for looking up campaign contexts."""

    def get(self, campaign_id: str) -> Optional[CampaignContext]:
        """Return the campaign or ``None`` when unknown."""
        ...

    def require(self, campaign_id: str) -> CampaignContext:
        """Return the campaign or raise ``CampaignNotFoundError``."""
        ...

    def add(self, context: CampaignContext) -> None:
        """Register or replace a campaign."""
        ...


class IVerdictRepository(Protocol):
    """Interface for persisting verdicts."""

    def save(self, campaign_id: str, verdict: JudgeVerdict) -> Path:
        """Persist a verdict with its summary line and return the file path."""
        ...

    def latest(self, campaign_id: str) -> Optional[Dict[str, Any]]:
        """Return the most recently saved verdict record, if any."""
        ...


__all__ = [
    "INarrativeStore",
    "IResearchProvider",
    "IOfferScorer",
    "IGenerativeTextClient",
    "IConfigurationManager",
    "ITimeService",
    "IResponseParser",
    "IFileSystemService",
    "ICampaignRepository",
    "IVerdictRepository",
]
