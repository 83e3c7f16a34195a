"""Thread-safe dependency injection container."""

import inspect
import logging
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Optional

logger = logging.getLogger(__name__)


class ServiceContainer:
    """Thread-safe dependency injection container."""

    def __init__(self) -> None:
        self._services: Dict[object, Any] = {}
        self._factories: Dict[object, Callable[[], Any]] = {}
        self._lock = threading.RLock()

    def register_singleton(self, interface: object, instance: Any) -> None:
        """Register a singleton service."""
        with self._lock:
            self._services[interface] = instance

    def register_factory(self, interface: object, factory: Callable[[], Any]) -> None:
        """Register a factory; its first result is cached as a singleton."""
        with self._lock:
            self._factories[interface] = factory

    def is_registered(self, interface: object) -> bool:
        with self._lock:
            return interface in self._services or interface in self._factories

    def resolve(self, interface: object) -> Any:
        """Resolve a service by interface."""
        with self._lock:
            if interface in self._services:
                return self._services[interface]

            if interface in self._factories:
                instance = self._factories[interface]()
                self._services[interface] = instance
                return instance

            name = getattr(interface, "__name__", repr(interface))
            raise LookupError(f"No registration found for {name}")

    async def aclose(self) -> None:
        """Close resources that expose ``aclose`` or ``close`` and clear registrations."""
        with self._lock:
            services = list(self._services.values())
            self._services.clear()
            self._factories.clear()
        for service in services:
            closer = getattr(service, "aclose", None) or getattr(service, "close", None)
            if closer is None:
                continue
            result = closer()
            if inspect.isawaitable(result):
                await result


def create_container(config: Optional[Dict[str, Any]] = None) -> ServiceContainer:
    """Factory function to create and configure a container.

    Recognised keys besides regular configuration sections: ``config_file``
    (YAML/JSON settings file) and ``fixtures`` (paths of campaign fixture files
    to preload).
    """
    container = ServiceContainer()
    config_dict: Dict[str, Any] = dict(config or {})
    config_file = config_dict.pop("config_file", None)
    fixture_paths = config_dict.pop("fixtures", None) or []

    from .infrastructure.config_manager import ConfigurationManager
    from .services import IConfigurationManager
    from .settings import JudgeSettings

    config_manager = ConfigurationManager(config_file=config_file)
    if config_dict:
        config_manager.merge(config_dict)
    container.register_singleton(IConfigurationManager, config_manager)
    settings = JudgeSettings.from_config(config_manager)
    container.register_singleton(JudgeSettings, settings)

    from .infrastructure.utility_services import FileSystemService, ResponseParser, TimeService
    from .services import IFileSystemService, IResponseParser, ITimeService

    time_service = TimeService()
    fs_service = FileSystemService()
    response_parser = ResponseParser()
    container.register_singleton(ITimeService, time_service)
    container.register_singleton(IFileSystemService, fs_service)
    container.register_singleton(IResponseParser, response_parser)

    from .infrastructure.collaborators import BriefOfferScorer, InMemoryNarrativeStore, StaticResearchProvider
    from .services import INarrativeStore, IOfferScorer, IResearchProvider

    narrative_store = InMemoryNarrativeStore(time_service=time_service)
    research_provider = StaticResearchProvider()
    offer_scorer = BriefOfferScorer()
    container.register_singleton(INarrativeStore, narrative_store)
    container.register_singleton(IResearchProvider, research_provider)
    container.register_singleton(IOfferScorer, offer_scorer)

    from .infrastructure.repositories import CampaignRepository, VerdictRepository
    from .services import ICampaignRepository, IVerdictRepository

    container.register_singleton(ICampaignRepository, CampaignRepository())
    container.register_singleton(
        IVerdictRepository, VerdictRepository(Path(settings.verdicts_dir), fs_service, time_service)
    )

    from .auditor import LLMAuditor
    from .services import IGenerativeTextClient

    auditor: Optional[LLMAuditor] = None
    if settings.api_key:
        from .infrastructure.api_client import OpenAIChatClient

        api_client = OpenAIChatClient(
            api_key=settings.api_key,
            base_url=settings.base_url,
            timeout=settings.timeout,
            response_parser=response_parser,
        )
        container.register_singleton(IGenerativeTextClient, api_client)
        auditor = LLMAuditor(api_client, model=settings.judge_model, max_output_tokens=settings.max_output_tokens)
        container.register_singleton(LLMAuditor, auditor)
    else:
        logger.debug("No API key configured; LLM audit disabled")

    from .judge import NarrativeJudge

    container.register_singleton(
        NarrativeJudge,
        NarrativeJudge(
            narrative_store=narrative_store,
            research_provider=research_provider,
            offer_scorer=offer_scorer,
            auditor=auditor,
            policy=settings.scoring,
            default_research_level=settings.research_level,
        ),
    )

    if fixture_paths:
        from .infrastructure.repositories import load_fixtures

        for path in fixture_paths:
            seed_fixtures(container, load_fixtures(Path(path)))

    return container


def seed_fixtures(container: ServiceContainer, fixtures: Iterable[Any]) -> None:
    """Register fixture campaigns with the repository and in-memory collaborators."""
    from .infrastructure.collaborators import BriefOfferScorer, InMemoryNarrativeStore, StaticResearchProvider
    from .services import ICampaignRepository, INarrativeStore, IOfferScorer, IResearchProvider

    campaigns = container.resolve(ICampaignRepository)
    store = container.resolve(INarrativeStore)
    research = container.resolve(IResearchProvider)
    offers = container.resolve(IOfferScorer)

    for fixture in fixtures:
        campaigns.add(fixture.context)
        if isinstance(store, InMemoryNarrativeStore):
            store.add_many(fixture.context.id, fixture.narratives)
        if fixture.research is not None and isinstance(research, StaticResearchProvider):
            research.register(fixture.context.id, fixture.research)
        if fixture.offer is not None and isinstance(offers, BriefOfferScorer):
            offers.register(fixture.context.id, fixture.offer)


__all__ = ["ServiceContainer", "create_container", "seed_fixtures"]
