"""Deterministic rule checks over the campaign brief and its narratives."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .brief import render_brief_snapshot
from .coercion import to_count, to_number
from .domain import (
    BriefSpec,
    CalendarFit,
    CampaignContext,
    Issue,
    NarrativeSet,
    OfferIQResult,
    RegenerationPhase,
    ResearchPack,
    Severity,
)
from .signals import (
    build_friction_corpus,
    build_signal_corpus,
    compute_cultural_spark_score,
    compute_talkability_score,
    detect_badge_value,
    detect_calendar_fit,
    detect_major_friction,
    detect_ugc_signals,
)

MANY_WINNERS_THRESHOLD = 50
FAME_FIRST_SCORE_THRESHOLD = 60
EVIDENCE_LIMIT = 240

WINNER_COUNT_KEYS: Tuple[str, ...] = (
    "totalWinners",
    "winners",
    "winnerCount",
    "numberOfWinners",
    "totalPrizes",
    "prizeCount",
    "manyWinners",
)

_WINNER_DIGITS = re.compile(r"(\d{2,7})")
_WINNERS_IN_TEXT = re.compile(r"(\d{1,3}(?:,\d{3})+|\d{2,7})\s*\+?\s*winners")

CASHBACK_VOCABULARY = re.compile(
    r"\b(cash\s*back|cashback|rebate|claim\s+back|banded\s+cashback|gwp|gift\s+with\s+purchase)\b",
    re.IGNORECASE,
)
EASE_VOCABULARY = re.compile(
    r"(ease of entry|simple entry|low[-\s]?friction|few steps|frictionless|one[-\s]?screen|ocr\b|scan (the )?qr"
    r"|qr code|upload a receipt|\bonboarding\b|\bux\b|\bui\b)",
    re.IGNORECASE,
)
THREE_MAJORS = (
    re.compile(r"increase (the )?major (prizes|prize) to 3", re.IGNORECASE),
    re.compile(r"3 (major )?prizes", re.IGNORECASE),
)
INSTANT_WINS = (
    re.compile(r"convert (the )?second[-\s]?tier (prizes|rewards?) (to|into) instant wins", re.IGNORECASE),
    re.compile(r"instant wins", re.IGNORECASE),
)
HOOK_REPLACE = re.compile(r"(replace|change) (the )?hook", re.IGNORECASE)
LEAD_WITH_WINNERS = re.compile(r"lead with .*winners", re.IGNORECASE)

RESEARCH_MIN_AUDIENCE = 3
RESEARCH_MIN_CATEGORY = 3
RESEARCH_MIN_RETAILERS = 2
RESEARCH_MIN_COMPETITOR_PROMOS_PRIZE = 5
RESEARCH_MIN_COMPETITOR_PROMOS = 3


@dataclass(frozen=True)
class DerivedFlags:
    """Booleans and scores computed once before any check runs."""

    promotion_type: str
    assured: bool
    prize_led: bool
    total_winners: Optional[int]
    hero_prize_count_from_brief: Optional[int]
    major_friction: bool
    many_winners_detected: bool
    badge_value_detected: bool
    social_ugc_signals: bool
    calendar_fit: CalendarFit
    talkability_score: int
    cultural_spark_score: int
    fame_first: bool


@dataclass
class RuleState:
    """Accumulator shared by the checks: issues in order, set semantics for the rest."""

    issues: List[Issue] = field(default_factory=list)
    _recommendations: Dict[str, None] = field(default_factory=dict)
    _regeneration: Dict[RegenerationPhase, None] = field(default_factory=dict)

    def add_issue(self, code: str, severity: Severity, message: str, evidence: Optional[str] = None) -> None:
        self.issues.append(Issue(code=code, severity=severity, message=message, evidence=evidence))

    def recommend(self, text: str) -> None:
        self._recommendations.setdefault(text, None)

    def regenerate(self, *phases: RegenerationPhase) -> None:
        for phase in phases:
            self._regeneration.setdefault(phase, None)

    @property
    def recommendations(self) -> List[str]:
        return list(self._recommendations)

    @property
    def requires_regeneration(self) -> List[RegenerationPhase]:
        return list(self._regeneration)


@dataclass(frozen=True)
class RuleInputs:
    """Everything a check may read."""

    flags: DerivedFlags
    narratives: NarrativeSet
    research: Optional[ResearchPack]
    offer: OfferIQResult


RuleCheck = Callable[[RuleInputs, RuleState], None]


# ---------------------------------------------------------------------------
# Derived flags


def is_assured_value(brief: BriefSpec) -> bool:
    """Cashback is assured; GWP only when uncapped or the cap is unspecified."""
    promo_type = brief.type_of_promotion or ""
    gwp_assured = (promo_type == "GWP" or brief.gwp.present) and (brief.gwp.cap in ("UNLIMITED", None))
    return promo_type == "CASHBACK" or brief.cashback.present or gwp_assured


def is_prize_led(brief: BriefSpec, assured: bool) -> bool:
    if assured:
        return False
    return brief.type_of_promotion == "PRIZE" or bool(brief.hero_prize) or bool(brief.runner_ups)


def _winner_value(value: object) -> Optional[int]:
    number = to_number(value)
    if number is not None and number > 0:
        return int(number)
    if isinstance(value, str):
        match = _WINNER_DIGITS.search(value.replace(",", ""))
        if match:
            return int(match.group(1))
    return None


def total_winners_from_brief(brief: BriefSpec) -> Optional[int]:
    """First valid count among the winner aliases, else ``N winners`` in the hook or notes."""
    for key in WINNER_COUNT_KEYS:
        count = _winner_value(brief.raw.get(key))
        if count is not None:
            return count
    haystack = f"{brief.hook or ''} {brief.raw_notes or ''}".lower()
    match = _WINNERS_IN_TEXT.search(haystack)
    return int(match.group(1).replace(",", "")) if match else None


def hero_prize_count_from_brief(brief: BriefSpec) -> Optional[int]:
    return to_count(brief.hero_prize_count if brief.hero_prize_count is not None else brief.hero_prize)


def friction_trigger_qty(brief: BriefSpec) -> float:
    if brief.gwp.trigger_qty is not None:
        return brief.gwp.trigger_qty
    if brief.trigger_qty is not None:
        return brief.trigger_qty
    return 1


def derive_flags(context: CampaignContext, narratives: NarrativeSet) -> DerivedFlags:
    brief = context.brief
    assured = is_assured_value(brief)
    prize_led = is_prize_led(brief, assured)
    total_winners = total_winners_from_brief(brief)

    friction_corpus = build_friction_corpus(brief, narratives.texts())
    major_friction = detect_major_friction(friction_corpus, friction_trigger_qty(brief))

    haystack = build_signal_corpus([*narratives.texts(), render_brief_snapshot(context)])
    many_winners = total_winners is not None and total_winners >= MANY_WINNERS_THRESHOLD
    badge_value = detect_badge_value(haystack)
    talkability = compute_talkability_score(haystack)
    cultural_spark = compute_cultural_spark_score(haystack)

    fame_first = (
        (talkability >= FAME_FIRST_SCORE_THRESHOLD or cultural_spark >= FAME_FIRST_SCORE_THRESHOLD)
        and (many_winners or badge_value)
        and not major_friction
    )

    return DerivedFlags(
        promotion_type=brief.type_of_promotion or "UNKNOWN",
        assured=assured,
        prize_led=prize_led,
        total_winners=total_winners,
        hero_prize_count_from_brief=hero_prize_count_from_brief(brief),
        major_friction=major_friction,
        many_winners_detected=many_winners,
        badge_value_detected=badge_value,
        social_ugc_signals=detect_ugc_signals(haystack),
        calendar_fit=detect_calendar_fit(haystack),
        talkability_score=talkability,
        cultural_spark_score=cultural_spark,
        fame_first=fame_first,
    )


# ---------------------------------------------------------------------------
# Checks


def _first_match(texts: Sequence[str], pattern: re.Pattern[str]) -> Optional[str]:
    for text in texts:
        if text and pattern.search(text):
            return text
    return None


def check_prize_not_cashback(inputs: RuleInputs, state: RuleState) -> None:
    if not inputs.flags.prize_led:
        return
    offender = _first_match(inputs.narratives.texts(), CASHBACK_VOCABULARY)
    if offender is None:
        return
    state.add_issue(
        "PRIZE_NOT_CASHBACK",
        "BLOCKER",
        "Outputs reference cashback/GWP in a prize-led, non-assured brief.",
        evidence=offender[:EVIDENCE_LIMIT],
    )
    state.recommend("Strip cashback/GWP talk. Keep prize shape and winners story only.")
    state.regenerate("evaluation", "opinion")


def check_ease_chatter(inputs: RuleInputs, state: RuleState) -> None:
    if inputs.flags.major_friction:
        return
    offender = _first_match(inputs.narratives.texts(), EASE_VOCABULARY)
    if offender is None:
        return
    state.add_issue(
        "EASE_CHATTER",
        "WARN",
        "Ease/QR/fields/OCR mentioned without major friction present.",
        evidence=offender[:EVIDENCE_LIMIT],
    )
    state.recommend("Remove ease-of-entry and QR/fields/OCR chatter unless the brief requires it.")
    state.regenerate("evaluation", "opinion")


def check_prize_shape(inputs: RuleInputs, state: RuleState) -> None:
    flags = inputs.flags
    if not flags.prize_led or flags.assured:
        return

    # fame-first ideas get optional overlays rather than mandates
    severity: Severity = "NIT" if flags.fame_first else "WARN"
    prize_text = f"{inputs.narratives.evaluation}\n{inputs.narratives.opinion}"

    if not any(pattern.search(prize_text) for pattern in THREE_MAJORS):
        if flags.fame_first:
            state.add_issue(
                "PRIZE_SHAPE_MAJORS_OPTIONAL",
                severity,
                "Fame-first detected: 3 majors can be an optional overlay, not mandatory.",
            )
            state.recommend(
                "Optional: add one “Golden Vest” style overlay (single spectacle moment) if budget permits."
            )
        else:
            state.add_issue("PRIZE_SHAPE_MAJORS", severity, "Consider lifting major prizes to 3 for prize credibility.")
            state.recommend("Recommend: increase major prizes to ~3 to strengthen perceived fairness.")

    if not any(pattern.search(prize_text) for pattern in INSTANT_WINS):
        if flags.fame_first:
            state.add_issue(
                "PRIZE_SHAPE_INSTANTS_OPTIONAL",
                severity,
                "Fame-first detected: instant-win conversion is optional; idea already carries participation energy.",
            )
            state.recommend(
                "Optional: sprinkle small “instant shout-out” moments (social stories, crew picks) "
                "instead of formal instants."
            )
        else:
            state.add_issue(
                "PRIZE_SHAPE_INSTANTS",
                severity,
                "Consider converting second-tier prizes to instant wins to improve cadence and fairness cues.",
            )
            state.recommend("Recommend: convert second-tier to instant wins to improve pace and odds visibility.")

    if not HOOK_REPLACE.search(prize_text):
        state.add_issue("HOOK_REPLACE", "NIT", "Ensure a short 2–6 word brand-locked hook exists (even if idea-led).")
        state.recommend("Craft a 2–6 word brand-locked hook; test 2–3 variants.")


def winners_surfaced(total_winners: int, evaluation: str, opinion: str) -> bool:
    """True when copy states the winner count or the opinion leads with winners."""
    spellings = {str(total_winners), f"{total_winners:,}"}
    number = "|".join(re.escape(spelling) for spelling in sorted(spellings, key=len, reverse=True))
    mentions = re.compile(rf"(?<![\w,])(?:{number})(?![\d,])\s*winners", re.IGNORECASE)
    return bool(mentions.search(f"{evaluation} {opinion}")) or bool(LEAD_WITH_WINNERS.search(opinion))


def check_winners_surfaced(inputs: RuleInputs, state: RuleState) -> None:
    total = inputs.flags.total_winners
    if total is None or total < MANY_WINNERS_THRESHOLD:
        return
    if winners_surfaced(total, inputs.narratives.evaluation, inputs.narratives.opinion):
        return
    state.add_issue(
        "WINNERS_NOT_SURFACED",
        "WARN",
        f"Brief has many winners ({total:,}) but copy doesn’t lead with it.",
    )
    state.recommend(f"Lead with “{total:,} winners” in the hook/visual lock-up.")
    state.regenerate("evaluation", "opinion")


def check_research_depth(inputs: RuleInputs, state: RuleState) -> None:
    research = inputs.research
    if research is None:
        state.add_issue("RESEARCH_MISSING", "WARN", "Research pack missing; cannot benchmark norms.")
        state.recommend("Run research at DEEP/MAX and re-score OfferIQ.")
        return

    want_promos = RESEARCH_MIN_COMPETITOR_PROMOS_PRIZE if inputs.flags.prize_led else RESEARCH_MIN_COMPETITOR_PROMOS
    audience = len(research.audience_facts)
    category = len(research.category_facts)
    retailers = len(research.retailer_facts)
    promos = len(research.competitor_promos)

    if audience < RESEARCH_MIN_AUDIENCE:
        state.add_issue(
            "RESEARCH_AUDIENCE_LIGHT", "WARN", f"Audience facts are light ({audience}/{RESEARCH_MIN_AUDIENCE})."
        )
        state.recommend("Deepen audience signals (shopper, channel nuances, category drivers).")
        state.regenerate("evaluation", "opinion")
    if category < RESEARCH_MIN_CATEGORY:
        state.add_issue(
            "RESEARCH_CATEGORY_LIGHT", "WARN", f"Category facts are light ({category}/{RESEARCH_MIN_CATEGORY})."
        )
        state.recommend("Add current category cues and promotional norms.")
        state.regenerate("evaluation", "opinion")
    if retailers < RESEARCH_MIN_RETAILERS:
        state.add_issue(
            "RESEARCH_RETAILERS_LIGHT", "NIT", f"Retailer facts are light ({retailers}/{RESEARCH_MIN_RETAILERS})."
        )
        state.recommend("Add retailer expectations and past promo motifs.")
    if promos < want_promos:
        state.add_issue(
            "RESEARCH_COMPETITORS_LIGHT", "WARN", f"Competitor promos collected are light ({promos}/{want_promos})."
        )
        state.recommend("Scan more live promos; capture hero counts, cadence, and winner volumes.")
        state.regenerate("evaluation", "opinion")


def check_offer_adequacy(inputs: RuleInputs, state: RuleState) -> None:
    offer = inputs.offer
    if offer.verdict != "NO-GO" and "INADEQUATE_VALUE" not in offer.hard_flags:
        return
    fix = offer.adequacy_fix
    message = f"Offer inadequate. {fix}" if fix else "Offer inadequate for category; specify a value change."
    state.add_issue("OFFER_INADEQUATE", "BLOCKER", message)
    state.recommend("Reflect OfferIQ value change in Risk with explicit “Change-from → Change-to”.")
    state.regenerate("opinion")


RULE_CHECKS: Tuple[RuleCheck, ...] = (
    check_prize_not_cashback,
    check_ease_chatter,
    check_prize_shape,
    check_winners_surfaced,
    check_research_depth,
    check_offer_adequacy,
)


def run_rule_checks(inputs: RuleInputs, state: Optional[RuleState] = None) -> RuleState:
    """Run every check in order against a shared state."""
    state = state or RuleState()
    for check in RULE_CHECKS:
        check(inputs, state)
    return state


__all__ = [
    "DerivedFlags",
    "RuleState",
    "RuleInputs",
    "RuleCheck",
    "RULE_CHECKS",
    "WINNER_COUNT_KEYS",
    "MANY_WINNERS_THRESHOLD",
    "is_assured_value",
    "is_prize_led",
    "total_winners_from_brief",
    "hero_prize_count_from_brief",
    "derive_flags",
    "winners_surfaced",
    "check_prize_not_cashback",
    "check_ease_chatter",
    "check_prize_shape",
    "check_winners_surfaced",
    "check_research_depth",
    "check_offer_adequacy",
    "run_rule_checks",
]
