"""In-memory implementations of the judge's external collaborators."""

import itertools
import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..coercion import as_mapping
from ..domain import CampaignContext, OfferIQResult, ResearchPack
from ..exceptions import ResearchUnavailableError
from ..services import INarrativeStore, IOfferScorer, IResearchProvider, ITimeService
from .utility_services import TimeService


@dataclass(frozen=True)
class NarrativeRecord:
    campaign_id: str
    type: str
    content: str
    created_at: str
    sequence: int


class InMemoryNarrativeStore(INarrativeStore):
    """Thread-safe store of narrative outputs keyed by campaign and output type."""

    def __init__(self, time_service: Optional[ITimeService] = None, logger: Optional[logging.Logger] = None):
        self._time = time_service or TimeService()
        self._logger = logger or logging.getLogger(__name__)
        self._lock = threading.RLock()
        self._records: List[NarrativeRecord] = []
        self._sequence = itertools.count()

    def add(
        self, campaign_id: str, output_type: str, content: str, created_at: Optional[str] = None
    ) -> NarrativeRecord:
        """Record a narrative; later records win ties on ``created_at``."""
        with self._lock:
            record = NarrativeRecord(
                campaign_id=campaign_id,
                type=output_type,
                content=content,
                created_at=created_at or self._time.now_iso(),
                sequence=next(self._sequence),
            )
            self._records.append(record)
            return record

    def add_many(self, campaign_id: str, narratives: Mapping[str, Any]) -> None:
        for output_type, content in narratives.items():
            if isinstance(content, str):
                self.add(campaign_id, output_type, content)

    async def fetch_latest(self, campaign_id: str, type_aliases: Sequence[str]) -> str:
        with self._lock:
            matches = [
                record
                for record in self._records
                if record.campaign_id == campaign_id and record.type in type_aliases
            ]
        if not matches:
            return ""
        latest = max(matches, key=lambda record: (record.created_at, record.sequence))
        return latest.content


class StaticResearchProvider(IResearchProvider):
    """Serves pre-built research packs per campaign id."""

    def __init__(self, packs: Optional[Mapping[str, ResearchPack]] = None):
        self._lock = threading.RLock()
        self._packs: Dict[str, ResearchPack] = dict(packs or {})

    def register(self, campaign_id: str, pack: ResearchPack) -> None:
        with self._lock:
            self._packs[campaign_id] = pack

    async def fetch(self, context: CampaignContext, level: str) -> ResearchPack:
        with self._lock:
            pack = self._packs.get(context.id)
        if pack is None:
            raise ResearchUnavailableError(
                "No research pack available", level=level, context={"campaign_id": context.id, "level": level}
            )
        return pack


class BriefOfferScorer(IOfferScorer):
    """Returns a preset assessment, or the one carried in the brief under ``offerIQ``.

    Campaigns with neither are treated as ``GO`` with no hard flags.
    """

    def __init__(self, presets: Optional[Mapping[str, OfferIQResult]] = None):
        self._lock = threading.RLock()
        self._presets: Dict[str, OfferIQResult] = dict(presets or {})

    def register(self, campaign_id: str, result: OfferIQResult) -> None:
        with self._lock:
            self._presets[campaign_id] = result

    async def score(self, context: CampaignContext, research: Optional[ResearchPack]) -> OfferIQResult:
        with self._lock:
            preset = self._presets.get(context.id)
        if preset is not None:
            return preset
        carried = as_mapping(context.brief.raw.get("offerIQ"))
        if carried:
            return OfferIQResult.from_mapping(carried)
        return OfferIQResult()


__all__ = [
    "NarrativeRecord",
    "InMemoryNarrativeStore",
    "StaticResearchProvider",
    "BriefOfferScorer",
]
