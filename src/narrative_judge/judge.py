"""Judge orchestration: gather inputs, run the checks, build the verdict."""

from __future__ import annotations

from typing import Dict, Optional, Tuple

from .auditor import LLMAuditor
from .domain import (
    CampaignContext,
    JudgeInputs,
    JudgeOptions,
    JudgeVerdict,
    NarrativeSet,
    OfferIQResult,
    ResearchPack,
    VerdictMeta,
)
from .logging_config import get_logger
from .result import Result, attempt
from .rules import RuleInputs, derive_flags, run_rule_checks
from .scoring import ScoringPolicy
from .services import INarrativeStore, IOfferScorer, IResearchProvider
from .verdict import build_verdict

LOGGER = get_logger(__name__)

DEFAULT_RESEARCH_LEVEL = "DEEP"

# phase -> stored output types, preferred alias first
NARRATIVE_ALIASES: Dict[str, Tuple[str, ...]] = {
    "framing": ("framingNarrative", "framing"),
    "evaluation": ("evaluationNarrative", "evaluation"),
    "opinion": ("opinionNarrative", "opinion"),
    "strategist": ("strategistNarrative", "strategist"),
    "export_summary": ("exportNarrative", "export"),
}


class NarrativeJudge:
    """Audits a campaign's latest narratives against its brief.

    Collaborators are optional: without a narrative store every phase not given
    explicitly is empty, without a research provider only ``baseline_research``
    is used, and without an offer scorer the offer is treated as adequate. The
    judge keeps no state between runs.
    """

    def __init__(
        self,
        narrative_store: Optional[INarrativeStore] = None,
        research_provider: Optional[IResearchProvider] = None,
        offer_scorer: Optional[IOfferScorer] = None,
        auditor: Optional[LLMAuditor] = None,
        policy: Optional[ScoringPolicy] = None,
        default_research_level: str = DEFAULT_RESEARCH_LEVEL,
    ):
        self._narratives = narrative_store
        self._research = research_provider
        self._offer = offer_scorer
        self._auditor = auditor
        self._policy = policy or ScoringPolicy()
        self._default_research_level = default_research_level

    @property
    def auditor(self) -> Optional[LLMAuditor]:
        return self._auditor

    async def load_narratives(self, context: CampaignContext, inputs: Optional[JudgeInputs] = None) -> NarrativeSet:
        """Explicit inputs win, even when empty; other phases come from the store."""
        inputs = inputs or JudgeInputs()
        texts: Dict[str, str] = {}
        for phase, aliases in NARRATIVE_ALIASES.items():
            explicit: Optional[str] = getattr(inputs, phase)
            if explicit is not None:
                texts[phase] = explicit
            elif self._narratives is not None:
                texts[phase] = await self._narratives.fetch_latest(context.id, aliases) or ""
            else:
                texts[phase] = ""
        return NarrativeSet(**texts)

    async def load_research(self, context: CampaignContext, options: JudgeOptions) -> Result[ResearchPack]:
        if options.baseline_research is not None:
            return Result.success(options.baseline_research)
        if self._research is None:
            return Result.success(None)

        provider = self._research
        level = (options.research_level or self._default_research_level).upper()
        return await attempt(lambda: provider.fetch(context, level), "research_unavailable", expected=(Exception,))

    async def score_offer(self, context: CampaignContext, research: Optional[ResearchPack]) -> OfferIQResult:
        if self._offer is None:
            return OfferIQResult()
        return await self._offer.score(context, research)

    async def run(self, context: CampaignContext, options: Optional[JudgeOptions] = None) -> JudgeVerdict:
        """Judge the campaign's narratives.

        Args:
            context: Campaign and brief being judged.
            options: Research level, baseline research, explicit narrative
                inputs and whether to run the LLM audit.

        Returns:
            A fresh :class:`JudgeVerdict`. Research and LLM failures are
            absorbed; narrative store and offer scorer failures propagate.
        """
        options = options or JudgeOptions()
        narratives = await self.load_narratives(context, options.inputs)
        research = (await self.load_research(context, options)).unwrap_or(None)
        offer = await self.score_offer(context, research)

        flags = derive_flags(context, narratives)
        state = run_rule_checks(RuleInputs(flags=flags, narratives=narratives, research=research, offer=offer))

        log = LOGGER.bind(campaign_id=context.id)
        meta: Optional[VerdictMeta] = None
        if options.use_llm:
            if self._auditor is None:
                log.warning("LLM audit requested but no generative client is configured")
            else:
                outcome = await self._auditor.audit(context, narratives, flags)
                state.issues.extend(outcome.issues)
                meta = VerdictMeta(used_llm=True, model=outcome.model)

        verdict = build_verdict(flags, state, self._policy, meta)
        log.info(f"Judged {verdict.summary_line()}")
        return verdict


async def run_judge(
    context: CampaignContext,
    options: Optional[JudgeOptions] = None,
    *,
    narrative_store: Optional[INarrativeStore] = None,
    research_provider: Optional[IResearchProvider] = None,
    offer_scorer: Optional[IOfferScorer] = None,
    auditor: Optional[LLMAuditor] = None,
    policy: Optional[ScoringPolicy] = None,
) -> JudgeVerdict:
    """One-shot judge run with the given collaborators."""
    judge = NarrativeJudge(
        narrative_store=narrative_store,
        research_provider=research_provider,
        offer_scorer=offer_scorer,
        auditor=auditor,
        policy=policy,
    )
    return await judge.run(context, options)


__all__ = ["NARRATIVE_ALIASES", "NarrativeJudge", "run_judge"]
