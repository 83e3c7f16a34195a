"""Domain models for the narrative judge."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Literal, Mapping, Optional, Tuple, Union, cast

from ..exceptions import ValidationError
from ..coercion import (
    as_mapping,
    is_present,
    to_bool,
    to_number,
    to_optional_text,
    to_str_list,
)

Severity = Literal["BLOCKER", "WARN", "NIT"]
CalendarFit = Literal["STRONG", "WEAK", "NONE"]
RegenerationPhase = Literal["framing", "evaluation", "opinion", "export"]
ResearchLevel = Literal["LITE", "DEEP", "MAX"]

SEVERITIES: Tuple[str, ...] = ("BLOCKER", "WARN", "NIT")
RESEARCH_LEVELS: Tuple[str, ...] = ("LITE", "DEEP", "MAX")

Cap = Union[str, float, None]


def _coerce_cap(value: Any) -> Cap:
    # any supplied cap that is not UNLIMITED counts as a cap, numeric or not
    if isinstance(value, str) and value.strip().upper() == "UNLIMITED":
        return "UNLIMITED"
    number = to_number(value)
    if number is not None:
        return number
    return to_optional_text(value)


def _first(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return None


@dataclass(frozen=True)
class CashbackSpec:
    """Cashback payload of a brief."""

    present: bool = False
    amount: Optional[float] = None
    currency: Optional[str] = None
    cap: Cap = None
    proof_required: bool = False
    headline: Optional[str] = None

    @classmethod
    def from_value(cls, value: Any) -> "CashbackSpec":
        if not is_present(value):
            return cls()
        data = as_mapping(value)
        return cls(
            present=True,
            amount=to_number(data.get("amount")),
            currency=to_optional_text(data.get("currency")),
            cap=_coerce_cap(data.get("cap")),
            proof_required=to_bool(data.get("proofRequired")),
            headline=to_optional_text(data.get("headline")),
        )


@dataclass(frozen=True)
class GwpSpec:
    """Gift-with-purchase payload of a brief."""

    present: bool = False
    item: Optional[str] = None
    trigger_qty: Optional[float] = None
    cap: Cap = None

    @classmethod
    def from_value(cls, value: Any) -> "GwpSpec":
        if not is_present(value):
            return cls()
        data = as_mapping(value)
        return cls(
            present=True,
            item=to_optional_text(data.get("item")),
            trigger_qty=to_number(data.get("triggerQty")),
            cap=_coerce_cap(data.get("cap")),
        )


@dataclass(frozen=True)
class BriefSpec:
    """Denormalised campaign brief; every field is optional and coerced on read."""

    type_of_promotion: Optional[str] = None
    hook: Optional[str] = None
    mechanic_one_liner: Optional[str] = None
    raw_notes: Optional[str] = None
    hero_prize: Optional[str] = None
    hero_prize_count: Optional[str] = None
    runner_ups: Tuple[str, ...] = ()
    breadth_prize_count: Optional[str] = None
    cadence_copy: Optional[str] = None
    cashback: CashbackSpec = field(default_factory=CashbackSpec)
    gwp: GwpSpec = field(default_factory=GwpSpec)
    trigger_qty: Optional[float] = None
    retailers: Tuple[str, ...] = ()
    calendar_theme: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    market: Optional[str] = None
    category: Optional[str] = None
    raw: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Any) -> "BriefSpec":
        spec = as_mapping(data)
        promo_type = to_optional_text(spec.get("typeOfPromotion"))
        return cls(
            type_of_promotion=promo_type.upper() if promo_type else None,
            hook=to_optional_text(spec.get("hook")),
            mechanic_one_liner=to_optional_text(spec.get("mechanicOneLiner")),
            raw_notes=to_optional_text(spec.get("rawNotes")),
            hero_prize=to_optional_text(spec.get("heroPrize")),
            hero_prize_count=to_optional_text(spec.get("heroPrizeCount")),
            runner_ups=tuple(to_str_list(spec.get("runnerUps"))),
            breadth_prize_count=to_optional_text(spec.get("breadthPrizeCount")),
            cadence_copy=to_optional_text(spec.get("cadenceCopy")),
            cashback=CashbackSpec.from_value(spec.get("cashback")),
            gwp=GwpSpec.from_value(spec.get("gwp")),
            trigger_qty=to_number(spec.get("triggerQty")),
            retailers=tuple(to_str_list(spec.get("retailers"))),
            calendar_theme=to_optional_text(spec.get("calendarTheme")),
            start_date=to_optional_text(spec.get("startDate")),
            end_date=to_optional_text(spec.get("endDate")),
            market=to_optional_text(spec.get("market")),
            category=to_optional_text(spec.get("category")),
            raw=dict(spec),
        )


@dataclass(frozen=True)
class CampaignContext:
    """Normalised campaign context handed to the judge."""

    id: str
    title: str = ""
    client_name: Optional[str] = None
    market: Optional[str] = None
    category: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    brief: BriefSpec = field(default_factory=BriefSpec)

    @property
    def timing_window(self) -> Optional[str]:
        if self.start_date and self.end_date:
            return f"{self.start_date} to {self.end_date}"
        return None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "CampaignContext":
        brief = BriefSpec.from_mapping(_first(data, "briefSpec", "brief"))
        campaign_id = to_optional_text(data.get("id"))
        if campaign_id is None:
            raise ValidationError("Campaign context requires an id", field="id", value=data.get("id"))
        return cls(
            id=campaign_id,
            title=to_optional_text(data.get("title")) or "",
            client_name=to_optional_text(_first(data, "clientName", "client")),
            market=to_optional_text(data.get("market")) or brief.market,
            category=to_optional_text(data.get("category")) or brief.category,
            start_date=to_optional_text(data.get("startDate")) or brief.start_date,
            end_date=to_optional_text(data.get("endDate")) or brief.end_date,
            brief=brief,
        )


@dataclass(frozen=True)
class NarrativeSet:
    """Latest narrative text per phase, fetched once per judge invocation."""

    framing: str = ""
    evaluation: str = ""
    opinion: str = ""
    strategist: str = ""
    export_summary: str = ""

    def texts(self) -> Tuple[str, str, str, str, str]:
        return (self.framing, self.evaluation, self.opinion, self.strategist, self.export_summary)


@dataclass(frozen=True)
class JudgeInputs:
    """Explicit narrative overrides; ``None`` means read from the narrative store."""

    framing: Optional[str] = None
    evaluation: Optional[str] = None
    opinion: Optional[str] = None
    strategist: Optional[str] = None
    export_summary: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Any) -> "JudgeInputs":
        values = as_mapping(data)

        def pick(*keys: str) -> Optional[str]:
            value = _first(values, *keys)
            return value if isinstance(value, str) else None

        return cls(
            framing=pick("framing"),
            evaluation=pick("evaluation"),
            opinion=pick("opinion"),
            strategist=pick("strategist"),
            export_summary=pick("exportSummary", "export_summary", "export"),
        )


def _as_list(value: Any) -> Tuple[Any, ...]:
    if isinstance(value, (list, tuple)):
        return tuple(cast(Iterable[Any], value))
    return ()


@dataclass(frozen=True)
class ResearchPack:
    """Structured research facts by category; only the counts matter to the judge."""

    audience_facts: Tuple[Any, ...] = ()
    category_facts: Tuple[Any, ...] = ()
    retailer_facts: Tuple[Any, ...] = ()
    competitor_facts: Tuple[Any, ...] = ()
    competitor_promos: Tuple[Any, ...] = ()

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ResearchPack":
        def facts(section: str, key: str = "facts") -> Tuple[Any, ...]:
            value = data.get(section)
            if isinstance(value, (list, tuple)):
                return _as_list(value) if key == "facts" else ()
            return _as_list(as_mapping(value).get(key))

        return cls(
            audience_facts=facts("audience"),
            category_facts=facts("category"),
            retailer_facts=facts("retailers"),
            competitor_facts=facts("competitors"),
            competitor_promos=facts("competitors", "promos"),
        )


@dataclass(frozen=True)
class OfferIQResult:
    """Offer adequacy assessment from the offer scorer."""

    verdict: str = "GO"
    hard_flags: Tuple[str, ...] = ()
    lenses: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)

    @property
    def adequacy_fix(self) -> Optional[str]:
        return to_optional_text(as_mapping(self.lenses.get("adequacy")).get("fix"))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "OfferIQResult":
        lenses_raw = as_mapping(data.get("lenses"))
        lenses = {str(key): dict(as_mapping(value)) for key, value in lenses_raw.items()}
        verdict = to_optional_text(data.get("verdict")) or "GO"
        return cls(
            verdict=verdict.upper(),
            hard_flags=tuple(to_str_list(_first(data, "hardFlags", "hard_flags"))),
            lenses=lenses,
        )


@dataclass(frozen=True)
class Issue:
    """A single finding raised by a rule check or the LLM auditor."""

    code: str
    severity: Severity
    message: str
    evidence: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"code": self.code, "severity": self.severity, "message": self.message}
        if self.evidence is not None:
            data["evidence"] = self.evidence
        return data


@dataclass(frozen=True)
class VerdictContext:
    """Derived diagnostics exposed for UI and analytics."""

    promotion_type: str
    assured_mode: Literal["ASSURED", "NON_ASSURED"]
    prize_led: bool
    total_winners_from_brief: Optional[int]
    hero_prize_count_from_brief: Optional[int]
    major_friction: bool
    talkability_score: int
    cultural_spark_score: int
    fame_first: bool
    idea_led_override_applied: bool
    many_winners_detected: bool
    badge_value_detected: bool
    social_ugc_signals: bool
    calendar_fit: CalendarFit

    def to_dict(self) -> Dict[str, Any]:
        return {
            "promotionType": self.promotion_type,
            "assuredMode": self.assured_mode,
            "prizeLed": self.prize_led,
            "totalWinnersFromBrief": self.total_winners_from_brief,
            "heroPrizeCountFromBrief": self.hero_prize_count_from_brief,
            "majorFriction": self.major_friction,
            "talkabilityScore": self.talkability_score,
            "culturalSparkScore": self.cultural_spark_score,
            "fameFirst": self.fame_first,
            "ideaLedOverrideApplied": self.idea_led_override_applied,
            "manyWinnersDetected": self.many_winners_detected,
            "badgeValueDetected": self.badge_value_detected,
            "socialUGCSignals": self.social_ugc_signals,
            "calendarFit": self.calendar_fit,
        }


@dataclass(frozen=True)
class VerdictMeta:
    """Details about the optional LLM audit pass."""

    used_llm: bool
    model: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"usedLLM": self.used_llm}
        if self.model:
            data["model"] = self.model
        return data


@dataclass(frozen=True)
class JudgeVerdict:
    """Structured audit result for a campaign's narratives."""

    passed: bool
    score: int
    issues: Tuple[Issue, ...]
    flags: Tuple[str, ...]
    recommendations: Tuple[str, ...]
    requires_regeneration: Tuple[RegenerationPhase, ...]
    context: VerdictContext
    meta: Optional[VerdictMeta] = None
    kind: str = "judge.v1"

    def has_blockers(self) -> bool:
        return any(issue.severity == "BLOCKER" for issue in self.issues)

    def summary_line(self) -> str:
        return " | ".join(
            [
                f"pass={'yes' if self.passed else 'no'}",
                f"score={self.score}",
                f"issues={len(self.issues)}",
            ]
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "kind": self.kind,
            "pass": self.passed,
            "score": self.score,
            "issues": [issue.to_dict() for issue in self.issues],
            "flags": list(self.flags),
            "recommendations": list(self.recommendations),
            "requiresRegeneration": list(self.requires_regeneration),
            "context": self.context.to_dict(),
        }
        if self.meta is not None:
            data["meta"] = self.meta.to_dict()
        return data


@dataclass(frozen=True)
class JudgeOptions:
    """Per-call options for a judge run."""

    research_level: Optional[ResearchLevel] = None
    baseline_research: Optional[ResearchPack] = None
    inputs: Optional[JudgeInputs] = None
    use_llm: bool = False


__all__ = [
    "Severity",
    "CalendarFit",
    "RegenerationPhase",
    "ResearchLevel",
    "SEVERITIES",
    "RESEARCH_LEVELS",
    "CashbackSpec",
    "GwpSpec",
    "BriefSpec",
    "CampaignContext",
    "NarrativeSet",
    "JudgeInputs",
    "ResearchPack",
    "OfferIQResult",
    "Issue",
    "VerdictContext",
    "VerdictMeta",
    "JudgeVerdict",
    "JudgeOptions",
]
