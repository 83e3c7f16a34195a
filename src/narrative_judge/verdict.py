"""Assemble the final verdict from derived flags and accumulated findings."""

from __future__ import annotations

from typing import List, Optional

from .domain import JudgeVerdict, VerdictContext, VerdictMeta
from .rules import DerivedFlags, RuleState
from .scoring import DEFAULT_POLICY, ScoringPolicy

MAX_RECOMMENDATIONS = 12


def build_flags(flags: DerivedFlags) -> List[str]:
    """One token per derived boolean or enum, always in the same order."""
    return [
        f"TYPE_{flags.promotion_type or 'UNKNOWN'}",
        "ASSURED" if flags.assured else "NON_ASSURED",
        "PRIZE_LED" if flags.prize_led else "NOT_PRIZE_LED",
        "MAJOR_FRICTION" if flags.major_friction else "NO_MAJOR_FRICTION",
        "MANY_WINNERS" if flags.many_winners_detected else "FEW_WINNERS",
        "FAME_FIRST" if flags.fame_first else "NOT_FAME_FIRST",
        "BADGE_VALUE" if flags.badge_value_detected else "NO_BADGE_VALUE",
        "UGC_SIGNALS" if flags.social_ugc_signals else "NO_UGC_SIGNALS",
        f"CAL_{flags.calendar_fit}",
    ]


def build_context(flags: DerivedFlags) -> VerdictContext:
    return VerdictContext(
        promotion_type=flags.promotion_type,
        assured_mode="ASSURED" if flags.assured else "NON_ASSURED",
        prize_led=flags.prize_led,
        total_winners_from_brief=flags.total_winners,
        hero_prize_count_from_brief=flags.hero_prize_count_from_brief,
        major_friction=flags.major_friction,
        talkability_score=flags.talkability_score,
        cultural_spark_score=flags.cultural_spark_score,
        fame_first=flags.fame_first,
        idea_led_override_applied=flags.fame_first,
        many_winners_detected=flags.many_winners_detected,
        badge_value_detected=flags.badge_value_detected,
        social_ugc_signals=flags.social_ugc_signals,
        calendar_fit=flags.calendar_fit,
    )


def build_verdict(
    flags: DerivedFlags,
    state: RuleState,
    policy: Optional[ScoringPolicy] = None,
    meta: Optional[VerdictMeta] = None,
) -> JudgeVerdict:
    """Score the findings and freeze them into a :class:`JudgeVerdict`.

    Args:
        flags: Derived flags computed before the checks ran.
        state: Accumulated issues, recommendations and regeneration targets.
        policy: Penalties and pass threshold; defaults to 25/10/3 and 70.
        meta: LLM audit details, or ``None`` when no audit was requested.

    Returns:
        The immutable verdict. Recommendations are capped at
        ``MAX_RECOMMENDATIONS`` after de-duplication.
    """
    policy = policy or DEFAULT_POLICY
    issues = tuple(state.issues)
    score = policy.score_issues(issues)
    return JudgeVerdict(
        passed=policy.is_passing(issues, score),
        score=score,
        issues=issues,
        flags=tuple(build_flags(flags)),
        recommendations=tuple(state.recommendations[:MAX_RECOMMENDATIONS]),
        requires_regeneration=tuple(state.requires_regeneration),
        context=build_context(flags),
        meta=meta,
    )


__all__ = ["MAX_RECOMMENDATIONS", "build_flags", "build_context", "build_verdict"]
