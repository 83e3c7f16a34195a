"""Public API for the narrative-judge package."""

from __future__ import annotations

from .auditor import AuditOutcome, LLMAuditor, extract_json_object
from .brief import render_brief_snapshot
from .container import ServiceContainer, create_container
from .domain import (
    BriefSpec,
    CampaignContext,
    Issue,
    JudgeInputs,
    JudgeOptions,
    JudgeVerdict,
    NarrativeSet,
    OfferIQResult,
    ResearchPack,
)
from .judge import NarrativeJudge, run_judge
from .rules import DerivedFlags, derive_flags
from .scoring import ScoringPolicy
from .settings import JudgeSettings, resolve_model
from .webapp import create_app

__all__ = [
    "AuditOutcome",
    "LLMAuditor",
    "extract_json_object",
    "render_brief_snapshot",
    "ServiceContainer",
    "create_container",
    "BriefSpec",
    "CampaignContext",
    "Issue",
    "JudgeInputs",
    "JudgeOptions",
    "JudgeVerdict",
    "NarrativeSet",
    "OfferIQResult",
    "ResearchPack",
    "NarrativeJudge",
    "run_judge",
    "DerivedFlags",
    "derive_flags",
    "ScoringPolicy",
    "JudgeSettings",
    "resolve_model",
    "create_app",
]
