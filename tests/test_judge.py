# pyright: reportPrivateUsage=false
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

import pytest

from narrative_judge.auditor import LLMAuditor
from narrative_judge.domain import (
    CampaignContext,
    JudgeInputs,
    JudgeOptions,
    OfferIQResult,
    ResearchPack,
)
from narrative_judge.exceptions import OfferScoringError, ResearchUnavailableError
from narrative_judge.infrastructure.collaborators import (
    BriefOfferScorer,
    InMemoryNarrativeStore,
    StaticResearchProvider,
)
from narrative_judge.judge import NarrativeJudge, run_judge
from narrative_judge.scoring import ScoringPolicy

FULL_RESEARCH = ResearchPack(
    audience_facts=("a", "b", "c"),
    category_facts=("a", "b", "c"),
    retailer_facts=("a", "b"),
    competitor_promos=("1", "2", "3", "4", "5"),
)

CONTEXT = CampaignContext.from_mapping(
    {
        "id": "camp-1",
        "title": "Bali Getaway",
        "briefSpec": {"typeOfPromotion": "PRIZE", "heroPrize": "Trip to Bali", "totalWinners": 1200},
    }
)


class DummyClient:
    def __init__(self, response: str = "", error: Optional[Exception] = None) -> None:
        self.response = response
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def complete(self, **kwargs: Any) -> str:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response

    async def aclose(self) -> None:
        return None


class FailingResearch:
    def __init__(self, error: Exception) -> None:
        self.error = error
        self.levels: List[str] = []

    async def fetch(self, context: CampaignContext, level: str) -> ResearchPack:
        self.levels.append(level)
        raise self.error


class FailingOfferScorer:
    async def score(self, context: CampaignContext, research: Optional[ResearchPack]) -> OfferIQResult:
        raise OfferScoringError("offer scorer down")


class RecordingStore:
    def __init__(self, texts: Dict[str, str]) -> None:
        self.texts = texts
        self.requests: List[Sequence[str]] = []

    async def fetch_latest(self, campaign_id: str, type_aliases: Sequence[str]) -> str:
        self.requests.append(type_aliases)
        for alias in type_aliases:
            if alias in self.texts:
                return self.texts[alias]
        return ""


def codes(verdict: Any) -> List[str]:
    return [issue.code for issue in verdict.issues]


def make_judge(**kwargs: Any) -> NarrativeJudge:
    kwargs.setdefault("research_provider", StaticResearchProvider({CONTEXT.id: FULL_RESEARCH}))
    return NarrativeJudge(**kwargs)


def test_winners_not_surfaced_end_to_end() -> None:
    store = InMemoryNarrativeStore()
    store.add(CONTEXT.id, "evaluationNarrative", "A dream trip for one lucky shopper.")
    verdict = asyncio.run(make_judge(narrative_store=store).run(CONTEXT))

    issue = next(issue for issue in verdict.issues if issue.code == "WINNERS_NOT_SURFACED")
    assert issue.severity == "WARN"
    assert any(text.startswith("Lead with") for text in verdict.recommendations)
    assert "opinion" in verdict.requires_regeneration
    assert verdict.meta is None


def test_no_go_offer_always_blocks() -> None:
    scorer = BriefOfferScorer({CONTEXT.id: OfferIQResult(verdict="NO-GO")})
    inputs = JudgeInputs(
        evaluation="Celebrate 1,200 winners. Increase the major prizes to 3 and add instant wins.",
        opinion="Replace the hook.",
    )
    verdict = asyncio.run(make_judge(offer_scorer=scorer).run(CONTEXT, JudgeOptions(inputs=inputs)))

    assert codes(verdict) == ["OFFER_INADEQUATE"]
    assert verdict.issues[0].severity == "BLOCKER"
    assert verdict.score == 75
    assert verdict.passed is False


def test_offer_carried_in_brief_is_used() -> None:
    context = CampaignContext.from_mapping(
        {"id": "c2", "briefSpec": {"typeOfPromotion": "CASHBACK", "offerIQ": {"verdict": "no-go"}}}
    )
    verdict = asyncio.run(run_judge(context, offer_scorer=BriefOfferScorer()))
    assert "OFFER_INADEQUATE" in codes(verdict)


def test_deterministic_runs_are_identical() -> None:
    store = InMemoryNarrativeStore()
    store.add(CONTEXT.id, "opinionNarrative", "Add a cashback kicker and scan the QR code.")
    judge = make_judge(narrative_store=store)
    first = asyncio.run(judge.run(CONTEXT))
    second = asyncio.run(judge.run(CONTEXT))
    assert first == second
    assert first.to_dict() == second.to_dict()


def test_explicit_inputs_override_store_even_when_empty() -> None:
    store = InMemoryNarrativeStore()
    store.add(CONTEXT.id, "opinionNarrative", "Add a cashback kicker.")
    options = JudgeOptions(inputs=JudgeInputs(opinion=""))
    narratives = asyncio.run(make_judge(narrative_store=store).load_narratives(CONTEXT, options.inputs))
    assert narratives.opinion == ""

    verdict = asyncio.run(make_judge(narrative_store=store).run(CONTEXT, options))
    assert "PRIZE_NOT_CASHBACK" not in codes(verdict)


def test_store_is_queried_with_aliases() -> None:
    store = RecordingStore({"export": "Export text", "framing": "Framing text"})
    narratives = asyncio.run(make_judge(narrative_store=store).load_narratives(CONTEXT))
    assert narratives.export_summary == "Export text"
    assert narratives.framing == "Framing text"
    assert ("exportNarrative", "export") in [tuple(aliases) for aliases in store.requests]


def test_latest_narrative_wins() -> None:
    store = InMemoryNarrativeStore()
    store.add(CONTEXT.id, "evaluation", "old", created_at="2024-01-01T00:00:00Z")
    store.add(CONTEXT.id, "evaluationNarrative", "new", created_at="2024-02-01T00:00:00Z")
    narratives = asyncio.run(make_judge(narrative_store=store).load_narratives(CONTEXT))
    assert narratives.evaluation == "new"


def test_research_failure_becomes_missing_research() -> None:
    provider = FailingResearch(ResearchUnavailableError("timeout", level="MAX"))
    verdict = asyncio.run(
        NarrativeJudge(research_provider=provider).run(CONTEXT, JudgeOptions(research_level="max"))
    )
    assert provider.levels == ["MAX"]
    assert "RESEARCH_MISSING" in codes(verdict)


def test_unexpected_research_error_is_absorbed() -> None:
    provider = FailingResearch(RuntimeError("boom"))
    result = asyncio.run(NarrativeJudge(research_provider=provider).load_research(CONTEXT, JudgeOptions()))
    assert not result.ok
    assert result.failure_mode == "research_unavailable"
    assert result.unwrap_or(None) is None
    assert provider.levels == ["DEEP"]


def test_baseline_research_skips_provider() -> None:
    provider = FailingResearch(RuntimeError("should not be called"))
    options = JudgeOptions(baseline_research=FULL_RESEARCH)
    verdict = asyncio.run(NarrativeJudge(research_provider=provider).run(CONTEXT, options))
    assert provider.levels == []
    assert not any(code.startswith("RESEARCH_") for code in codes(verdict))


def test_no_research_provider_reports_missing() -> None:
    verdict = asyncio.run(run_judge(CONTEXT))
    assert "RESEARCH_MISSING" in codes(verdict)


def test_offer_scorer_errors_propagate() -> None:
    with pytest.raises(OfferScoringError):
        asyncio.run(make_judge(offer_scorer=FailingOfferScorer()).run(CONTEXT))


def test_custom_policy_is_applied() -> None:
    strict = ScoringPolicy(pass_threshold=100)
    verdict = asyncio.run(make_judge(policy=strict).run(CONTEXT))
    assert verdict.issues
    assert verdict.passed is False


def test_llm_issues_are_appended() -> None:
    client = DummyClient('{"llm_issues": [{"code": "TONE", "severity": "NIT", "message": "Too salesy"}]}')
    judge = make_judge(auditor=LLMAuditor(client, "gpt-4o-mini"))
    verdict = asyncio.run(judge.run(CONTEXT, JudgeOptions(use_llm=True)))

    assert codes(verdict)[-1] == "TONE"
    assert verdict.meta is not None
    assert verdict.meta.used_llm is True
    assert verdict.meta.model == "gpt-4o-mini"
    assert client.calls[0]["json"] is True


def test_llm_failure_is_swallowed() -> None:
    client = DummyClient(error=RuntimeError("network down"))
    judge = make_judge(auditor=LLMAuditor(client, "gpt-4o-mini"))
    with_llm = asyncio.run(judge.run(CONTEXT, JudgeOptions(use_llm=True)))
    without_llm = asyncio.run(judge.run(CONTEXT))

    assert codes(with_llm) == codes(without_llm)
    assert with_llm.meta is not None
    assert with_llm.meta.used_llm is True


def test_llm_not_called_unless_requested() -> None:
    client = DummyClient("{}")
    asyncio.run(make_judge(auditor=LLMAuditor(client, "gpt-4o-mini")).run(CONTEXT))
    assert client.calls == []


def test_use_llm_without_auditor_warns(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="narrative_judge.judge"):
        verdict = asyncio.run(make_judge().run(CONTEXT, JudgeOptions(use_llm=True)))
    assert verdict.meta is None
    assert "no generative client" in caplog.text
