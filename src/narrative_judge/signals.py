"""Text-heuristic signal detectors.

Every heuristic is a :class:`PatternRule` in an ordered table so each rule can be
exercised on its own. Detectors expect lower-cased text but compile their
patterns case-insensitively anyway.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Iterable, Optional, Pattern, Sequence, Tuple

from .domain import BriefSpec, CalendarFit

TIER_STRONG = "STRONG"
TIER_ACCUMULATING = "ACCUMULATING"
TIER_WEAK = "WEAK"
TIER_POINTS = "POINTS"

FRICTION_ACCUMULATION_THRESHOLD = 2
FRICTION_TRIGGER_QTY_THRESHOLD = 3


def _rx(pattern: str) -> Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


@dataclass(frozen=True)
class PatternRule:
    """A named group of patterns; the rule matches when any pattern does."""

    id: str
    patterns: Tuple[Pattern[str], ...]
    tier: str
    points: int = 0

    def matches(self, text: str) -> bool:
        return any(pattern.search(text) for pattern in self.patterns)


FRICTION_RULES: Tuple[PatternRule, ...] = (
    PatternRule("postal_entry", (_rx(r"\bmail[-\s]?in\b|\bpostal\b|\bpostage\b"),), TIER_STRONG),
    PatternRule("app_download", (_rx(r"\bdownload\s+app\b|\bmobile\s+app\b"),), TIER_STRONG),
    PatternRule("manual_review", (_rx(r"\bmanual\s+(review|validation)\b"),), TIER_STRONG),
    PatternRule("long_survey", (_rx(r"\blong\s+survey\b|\b20\+?\s*questions\b"),), TIER_STRONG),
    PatternRule(
        "account_creation",
        (_rx(r"\bregister\b|\bcreate\s+account\b|\bsign[-\s]?up\b"),),
        TIER_ACCUMULATING,
    ),
    PatternRule(
        "receipt_upload",
        (_rx(r"\b(receipt|proof)\b.*\bupload\b|\bupload\b.*\b(receipt|proof)\b"),),
        TIER_ACCUMULATING,
    ),
    PatternRule("code_entry", (_rx(r"\benter\s+code\b|\bbarcode\b|\bupc\b"),), TIER_ACCUMULATING),
    PatternRule(
        "multi_purchase",
        (_rx(r"\bmultiple\s+purchases\b|\bbuy\s+(?:3|three|\d{2,})\b"),),
        TIER_ACCUMULATING,
    ),
    PatternRule("printed_form", (_rx(r"\bprint\b.*\bform\b"),), TIER_ACCUMULATING),
)

BADGE_VALUE_RULE = PatternRule(
    "badge_value",
    (
        _rx(
            r"\b(ugly\s*(jumper|sweater|vest)|jumper|sweater|vest|hoodie|tee|t-shirt|cap|beanie|scarf|pin|patch"
            r"|tote|merch|limited[-\s]?edition|drop)\b"
        ),
    ),
    TIER_WEAK,
)

CALENDAR_RULES: Tuple[PatternRule, ...] = (
    PatternRule(
        "named_event",
        (
            _rx(
                r"\b(christmas|xmas|holiday|easter|ramadan|diwali|summer|back[-\s]?to[-\s]?school|black\s*friday"
                r"|father'?s|mother'?s|valentine|world\s+cup|olympic)\b"
            ),
        ),
        TIER_STRONG,
    ),
    PatternRule(
        "seasonal_vocabulary",
        (_rx(r"\b(season|seasonal|calendar|tradition|ritual|annual|festive)\b"),),
        TIER_WEAK,
    ),
)

UGC_RULE = PatternRule(
    "social_ugc",
    (
        _rx(
            r"\b(hashtag|tag\s+us|post\s+(a|your)|share\s+(a|your)|ugc|selfie|stitch|duet|tiktok|reel|shorts)\b"
        ),
        _rx(r"#\w+"),
    ),
    TIER_WEAK,
)

TALKABILITY_RULES: Tuple[PatternRule, ...] = (
    PatternRule(
        "provocative_tone",
        (_rx(r"\b(weird|ugly|bold|provocative|meme|viral|tongue[-\s]?in[-\s]?cheek|joke|funny)\b"),),
        TIER_POINTS,
        20,
    ),
    PatternRule(
        "scarcity_drop",
        (_rx(r"\b(drop|limited run|limited[-\s]?edition|collectible|exclusive)\b"),),
        TIER_POINTS,
        10,
    ),
    PatternRule("talk_vocabulary", (_rx(r"\b(shareable|talkable|talkability|buzz)\b"),), TIER_POINTS, 10),
)
TALKABILITY_BADGE_POINTS = 35
TALKABILITY_UGC_POINTS = 25

CULTURAL_SPARK_RULES: Tuple[PatternRule, ...] = (
    PatternRule(
        "community_code",
        (_rx(r"\b(ritual|tradition|in[-\s]?joke|community|fandom|code|signifier|signal)\b"),),
        TIER_POINTS,
        25,
    ),
    PatternRule("earned_media", (_rx(r"\b(earned\s+media|pr\s+stunt|talkability)\b"),), TIER_POINTS, 15),
    PatternRule("share_verbs", (_rx(r"\b(share|post|tag)\b"),), TIER_POINTS, 10),
)
CALENDAR_POINTS = {"STRONG": 35, "WEAK": 15, "NONE": 0}


def _clamp_score(score: int) -> int:
    return max(0, min(100, score))


def build_friction_corpus(brief: BriefSpec, narratives: Iterable[str]) -> str:
    """Lower-cased brief JSON, mechanic, notes and narrative texts."""
    parts = [
        json.dumps(dict(brief.raw), ensure_ascii=False, default=str),
        brief.mechanic_one_liner or "",
        brief.raw_notes or "",
    ]
    parts.extend(text or "" for text in narratives)
    return " ".join(parts).lower()


def build_signal_corpus(texts: Sequence[str]) -> str:
    """Lower-cased narratives plus brief snapshot, one block per line."""
    return "\n".join(text or "" for text in texts).lower()


def count_matching(rules: Iterable[PatternRule], text: str) -> int:
    return sum(1 for rule in rules if rule.matches(text))


def detect_major_friction(corpus: str, trigger_qty: Optional[float] = None) -> bool:
    """True when entry or redemption is heavy enough to discuss ease of entry."""
    if any(rule.matches(corpus) for rule in FRICTION_RULES if rule.tier == TIER_STRONG):
        return True
    accumulating = [rule for rule in FRICTION_RULES if rule.tier == TIER_ACCUMULATING]
    if count_matching(accumulating, corpus) >= FRICTION_ACCUMULATION_THRESHOLD:
        return True
    return trigger_qty is not None and trigger_qty >= FRICTION_TRIGGER_QTY_THRESHOLD


def detect_badge_value(text: str) -> bool:
    """Wearable or collectible merch that carries social signal."""
    return BADGE_VALUE_RULE.matches(text)


def detect_calendar_fit(text: str) -> CalendarFit:
    for rule in CALENDAR_RULES:
        if rule.matches(text):
            return "STRONG" if rule.tier == TIER_STRONG else "WEAK"
    return "NONE"


def detect_ugc_signals(text: str) -> bool:
    return UGC_RULE.matches(text)


def compute_talkability_score(text: str) -> int:
    """Ordinal 0-100 heuristic, not a probability."""
    score = 0
    if detect_badge_value(text):
        score += TALKABILITY_BADGE_POINTS
    if detect_ugc_signals(text):
        score += TALKABILITY_UGC_POINTS
    score += sum(rule.points for rule in TALKABILITY_RULES if rule.matches(text))
    return _clamp_score(score)


def compute_cultural_spark_score(text: str) -> int:
    """Ordinal 0-100 heuristic, not a probability."""
    score = CALENDAR_POINTS[detect_calendar_fit(text)]
    score += sum(rule.points for rule in CULTURAL_SPARK_RULES if rule.matches(text))
    return _clamp_score(score)


__all__ = [
    "PatternRule",
    "FRICTION_RULES",
    "BADGE_VALUE_RULE",
    "CALENDAR_RULES",
    "UGC_RULE",
    "TALKABILITY_RULES",
    "CULTURAL_SPARK_RULES",
    "FRICTION_ACCUMULATION_THRESHOLD",
    "FRICTION_TRIGGER_QTY_THRESHOLD",
    "build_friction_corpus",
    "build_signal_corpus",
    "count_matching",
    "detect_major_friction",
    "detect_badge_value",
    "detect_calendar_fit",
    "detect_ugc_signals",
    "compute_talkability_score",
    "compute_cultural_spark_score",
]
