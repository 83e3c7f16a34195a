"""Typed settings materialised from the configuration manager."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, cast

from .domain import RESEARCH_LEVELS, ResearchLevel
from .exceptions import ConfigurationError
from .scoring import ScoringPolicy
from .services import IConfigurationManager

FALLBACK_MODEL = "gpt-4o-mini"


def resolve_model(*candidates: Optional[str]) -> str:
    """Return the first non-blank candidate, else the fallback model."""
    for candidate in candidates:
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    return FALLBACK_MODEL


@dataclass(frozen=True)
class JudgeSettings:
    scoring: ScoringPolicy
    research_level: ResearchLevel
    judge_model: str
    max_output_tokens: int
    api_key: Optional[str]
    base_url: Optional[str]
    timeout: float
    verdicts_dir: str

    @classmethod
    def from_config(cls, config: IConfigurationManager) -> "JudgeSettings":
        level = str(config.get("research.level", "DEEP")).upper()
        if level not in RESEARCH_LEVELS:
            raise ConfigurationError("Unknown research level", {"level": level, "allowed": "/".join(RESEARCH_LEVELS)})

        return cls(
            scoring=ScoringPolicy.from_mapping(config.get_section("scoring")),
            research_level=cast(ResearchLevel, level),
            judge_model=resolve_model(
                config.get("model.judge"),
                config.get("model.default"),
                config.get("model.fallback"),
            ),
            max_output_tokens=int(config.get("audit.max_output_tokens", 600)),
            api_key=config.get("api.key") or os.getenv("OPENAI_API_KEY"),
            base_url=config.get("api.base_url") or os.getenv("OPENAI_BASE_URL"),
            timeout=float(config.get("api.timeout", 60.0)),
            verdicts_dir=str(config.get("storage.verdicts_dir", "verdicts")),
        )


__all__ = ["FALLBACK_MODEL", "JudgeSettings", "resolve_model"]
