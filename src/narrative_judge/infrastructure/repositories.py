"""Repository implementations for campaigns and persisted verdicts."""

import json
import re
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, cast

from ..coercion import as_mapping
from ..domain import CampaignContext, JudgeVerdict, OfferIQResult, ResearchPack
from ..exceptions import CampaignNotFoundError, ValidationError, VerdictSaveError
from ..services import ICampaignRepository, IFileSystemService, ITimeService, IVerdictRepository
from .utility_services import TimeService


@dataclass(frozen=True)
class CampaignFixture:
    """A campaign plus the collaborator data needed to judge it offline."""

    context: CampaignContext
    narratives: Dict[str, str] = field(default_factory=dict)
    research: Optional[ResearchPack] = None
    offer: Optional[OfferIQResult] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "CampaignFixture":
        campaign = as_mapping(data.get("campaign")) or data
        narratives = {
            str(key): value for key, value in as_mapping(data.get("narratives")).items() if isinstance(value, str)
        }
        research = data.get("research")
        offer = data.get("offerIQ") or data.get("offer")
        return cls(
            context=CampaignContext.from_mapping(campaign),
            narratives=narratives,
            research=ResearchPack.from_mapping(research) if isinstance(research, Mapping) else None,
            offer=OfferIQResult.from_mapping(cast(Mapping[str, Any], offer)) if isinstance(offer, Mapping) else None,
        )


def load_fixtures(path: Path) -> List[CampaignFixture]:
    """Load one fixture object, or a list of them, from a JSON file."""
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except json.JSONDecodeError as exc:
        raise ValidationError("Campaign fixture is not valid JSON", field="file", value=str(path)) from exc

    entries: List[Any] = cast(List[Any], data) if isinstance(data, list) else [data]
    fixtures: List[CampaignFixture] = []
    for entry in entries:
        if not isinstance(entry, Mapping):
            raise ValidationError("Campaign fixture entries must be objects", field="file", value=str(path))
        fixtures.append(CampaignFixture.from_mapping(cast(Mapping[str, Any], entry)))
    return fixtures


class CampaignRepository(ICampaignRepository):
    """Thread-safe in-memory campaign lookup."""

    def __init__(self, campaigns: Optional[List[CampaignContext]] = None):
        self._lock = threading.RLock()
        self._campaigns: Dict[str, CampaignContext] = {}
        for context in campaigns or []:
            self.add(context)

    def add(self, context: CampaignContext) -> None:
        with self._lock:
            self._campaigns[context.id] = context

    def get(self, campaign_id: str) -> Optional[CampaignContext]:
        with self._lock:
            return self._campaigns.get(campaign_id)

    def require(self, campaign_id: str) -> CampaignContext:
        context = self.get(campaign_id)
        if context is None:
            raise CampaignNotFoundError(campaign_id)
        return context


_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class VerdictRepository(IVerdictRepository):
    """Stores verdicts as JSON files, one directory per campaign."""

    def __init__(
        self,
        base_directory: Path,
        fs_service: IFileSystemService,
        time_service: Optional[ITimeService] = None,
    ):
        """Initialize verdict repository.

        Args:
            base_directory: Root directory for verdict files
            fs_service: File system service for JSON operations
            time_service: Clock used for ``created_at`` and file names
        """
        self._base_dir = base_directory
        self._fs_service = fs_service
        self._time = time_service or TimeService()
        self._lock = threading.RLock()
        self._counter = 0

    def _campaign_dir(self, campaign_id: str) -> Path:
        return self._base_dir / _UNSAFE_CHARS.sub("_", campaign_id)

    def save(self, campaign_id: str, verdict: JudgeVerdict) -> Path:
        """Persist a verdict with its one-line summary and return the file path."""
        with self._lock:
            self._counter += 1
            created_at = self._time.now_iso()
            stamp = created_at.replace(":", "").replace("-", "")
            path = self._campaign_dir(campaign_id) / f"{stamp}_{self._counter:04d}_judge.json"
            record = {
                "campaignId": campaign_id,
                "type": "judge",
                "createdAt": created_at,
                "summary": verdict.summary_line(),
                "result": verdict.to_dict(),
            }
            try:
                self._fs_service.write_json(path, record)
            except OSError as exc:
                raise VerdictSaveError("Failed to save verdict", file_path=str(path)) from exc
            return path

    def latest(self, campaign_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            files = self._fs_service.list_files(self._campaign_dir(campaign_id), "*_judge.json")
            if not files:
                return None
            return cast(Dict[str, Any], self._fs_service.read_json(files[-1]))


__all__ = [
    "CampaignFixture",
    "load_fixtures",
    "CampaignRepository",
    "VerdictRepository",
]
