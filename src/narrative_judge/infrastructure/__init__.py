"""Infrastructure implementations."""

from .api_client import OpenAIChatClient
from .collaborators import BriefOfferScorer, InMemoryNarrativeStore, StaticResearchProvider
from .config_manager import ConfigurationManager
from .repositories import CampaignFixture, CampaignRepository, VerdictRepository, load_fixtures
from .utility_services import FileSystemService, ResponseParser, TimeService

__all__ = [
    "OpenAIChatClient",
    "BriefOfferScorer",
    "InMemoryNarrativeStore",
    "StaticResearchProvider",
    "ConfigurationManager",
    "CampaignFixture",
    "CampaignRepository",
    "VerdictRepository",
    "load_fixtures",
    "FileSystemService",
    "ResponseParser",
    "TimeService",
]
