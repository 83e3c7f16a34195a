"""Severity-weighted score aggregation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from .domain import Issue
from .exceptions import ConfigurationError


@dataclass(frozen=True)
class ScoringPolicy:
    """Penalty per severity and the pass threshold."""

    blocker_penalty: int = 25
    warn_penalty: int = 10
    nit_penalty: int = 3
    pass_threshold: int = 70

    def __post_init__(self) -> None:
        for name in ("blocker_penalty", "warn_penalty", "nit_penalty"):
            if getattr(self, name) < 0:
                raise ConfigurationError(f"{name} must be non-negative", {"value": getattr(self, name)})
        if not 0 <= self.pass_threshold <= 100:
            raise ConfigurationError("pass_threshold must be within 0-100", {"value": self.pass_threshold})

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ScoringPolicy":
        defaults = cls()
        try:
            return cls(
                blocker_penalty=int(data.get("blocker_penalty", defaults.blocker_penalty)),
                warn_penalty=int(data.get("warn_penalty", defaults.warn_penalty)),
                nit_penalty=int(data.get("nit_penalty", defaults.nit_penalty)),
                pass_threshold=int(data.get("pass_threshold", defaults.pass_threshold)),
            )
        except (TypeError, ValueError) as exc:
            raise ConfigurationError("Invalid scoring configuration", {"scoring": dict(data)}) from exc

    def penalty_for(self, severity: str) -> int:
        if severity == "BLOCKER":
            return self.blocker_penalty
        if severity == "WARN":
            return self.warn_penalty
        return self.nit_penalty

    def score_issues(self, issues: Iterable[Issue]) -> int:
        """100 minus the summed penalties, clamped to [0, 100]."""
        score = 100 - sum(self.penalty_for(issue.severity) for issue in issues)
        return max(0, min(100, score))

    def is_passing(self, issues: Iterable[Issue], score: int) -> bool:
        return not any(issue.severity == "BLOCKER" for issue in issues) and score >= self.pass_threshold


DEFAULT_POLICY = ScoringPolicy()

__all__ = ["ScoringPolicy", "DEFAULT_POLICY"]
