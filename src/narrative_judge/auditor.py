"""Optional generative audit pass over the narratives."""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, cast

import yaml

from .brief import render_brief_snapshot
from .domain import SEVERITIES, CampaignContext, Issue, NarrativeSet
from .exceptions import AuditParsingError, ConfigurationError
from .rules import DerivedFlags
from .services import IGenerativeTextClient

DEFAULT_MAX_OUTPUT_TOKENS = 600
EMPTY_SECTION = "_none_"


def _is_json(text: str) -> bool:
    try:
        json.loads(text)
        return True
    except json.JSONDecodeError:
        return False


def _find_json_snippet(candidate: str, start: int) -> Optional[str]:
    depth = 0
    for idx in range(start, len(candidate)):
        char = candidate[idx]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                snippet = candidate[start : idx + 1]
                if _is_json(snippet):
                    return snippet
    return None


def extract_json_object(text: str) -> str:
    """Normalize auditor output into a JSON string."""
    candidate = (text or "").strip()
    if not candidate:
        raise AuditParsingError("Empty audit response content.", raw_response=text)

    if _is_json(candidate):
        return candidate

    start = candidate.find("{")
    if start == -1:
        raise AuditParsingError("No JSON object found in audit response.", raw_response=text)

    snippet = _find_json_snippet(candidate, start)
    if snippet is None:
        raise AuditParsingError("Unable to isolate JSON object in audit response.", raw_response=text)
    return snippet


def coerce_issue(entry: Any) -> Optional[Issue]:
    """Turn one ``llm_issues`` entry into an :class:`Issue`; ``None`` when it has no message."""
    if not isinstance(entry, dict):
        return None
    data = cast(Dict[str, Any], entry)
    message = str(data.get("message") or "")
    if not message:
        return None
    severity = str(data.get("severity") or "")
    evidence = data.get("evidence")
    return Issue(
        code=str(data.get("code") or "LLM_ISSUE"),
        severity=severity if severity in SEVERITIES else "WARN",  # type: ignore[arg-type]
        message=message,
        evidence=str(evidence) if evidence else None,
    )


def _str_list(value: Any) -> Tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(str(item) for item in cast(List[Any], value))


@dataclass(frozen=True)
class AuditOutcome:
    """What happened during an audit pass; only ``issues`` reach the verdict."""

    attempted: bool
    model: Optional[str] = None
    succeeded: bool = False
    issues: Tuple[Issue, ...] = ()
    flags: Tuple[str, ...] = ()
    notes: Tuple[str, ...] = ()
    error: Optional[str] = None


@dataclass(frozen=True)
class AuditPrompt:
    system: str
    user: str
    temperature: float = 0.0
    top_p: float = 1.0
    max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS
    messages: List[Dict[str, str]] = field(default_factory=list)


class LLMAuditor:
    """Asks a generative model to flag narrative patterns the rules may miss."""

    def __init__(
        self,
        client: IGenerativeTextClient,
        model: str,
        max_output_tokens: Optional[int] = None,
        config_file: Optional[Path] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._client = client
        self._model = model
        self._max_output_tokens = max_output_tokens
        self._config_file = config_file
        self._logger = logger or logging.getLogger(__name__)
        self._lock = threading.RLock()
        self._config_cache: Optional[Dict[str, Any]] = None

    @property
    def model(self) -> str:
        return self._model

    def _load_config(self) -> Dict[str, Any]:
        """Load the audit prompt configuration."""
        with self._lock:
            if self._config_cache is not None:
                return self._config_cache

            if self._config_file:
                with open(self._config_file, "r", encoding="utf-8") as f:
                    data = yaml.safe_load(f)
            else:
                resource = resources.files("narrative_judge") / "judge_config.yaml"
                with resource.open("r", encoding="utf-8") as f:
                    data = yaml.safe_load(f)

            if not isinstance(data, dict):
                raise ConfigurationError("Audit configuration must be a mapping", {"file": str(self._config_file)})

            self._config_cache = cast(Dict[str, Any], data)
            return self._config_cache

    def build_prompt(self, context: CampaignContext, narratives: NarrativeSet, flags: DerivedFlags) -> AuditPrompt:
        """Build the system and user text for one audit call."""
        config = self._load_config()
        system = " ".join(part for part in (config.get("system", ""), f"Schema: {config.get('schema', '')}") if part)
        checklist = [f"- {item}" for item in config.get("checklist", [])]

        def yes_no(value: bool) -> str:
            return "YES" if value else "NO"

        def value_or_na(value: Optional[int]) -> str:
            return str(value) if value is not None else "n/a"

        lines = [
            f"PromotionType: {flags.promotion_type or 'UNKNOWN'} | Assured: {yes_no(flags.assured)} "
            f"| PrizeLed: {yes_no(flags.prize_led)} | MajorFriction: {yes_no(flags.major_friction)}",
            f"TotalWinnersFromBrief: {value_or_na(flags.total_winners)} "
            f"| HeroPrizeCountFromBrief: {value_or_na(flags.hero_prize_count_from_brief)}",
            "",
            "BRIEF SNAPSHOT:",
            render_brief_snapshot(context),
        ]
        sections = (
            ("FRAMING", narratives.framing),
            ("EVALUATION", narratives.evaluation),
            ("OPINION", narratives.opinion),
            ("STRATEGIST", narratives.strategist),
            ("EXPORT", narratives.export_summary),
        )
        for title, text in sections:
            lines.extend(["", f"{title}:", text or EMPTY_SECTION])
        lines.extend(["", "Checklist (binary):", *checklist, str(config.get("closing", "Return JSON only."))])

        request = cast(Dict[str, Any], config.get("request") or {})
        user = "\n".join(lines)
        return AuditPrompt(
            system=system,
            user=user,
            temperature=float(request.get("temperature", 0)),
            top_p=float(request.get("top_p", 1)),
            max_output_tokens=int(
                self._max_output_tokens or request.get("max_output_tokens", DEFAULT_MAX_OUTPUT_TOKENS)
            ),
            messages=[{"role": "user", "content": user}],
        )

    @staticmethod
    def parse_response(raw: str) -> AuditOutcome:
        """Parse raw model output into coerced issues, flags and notes."""
        parsed = json.loads(extract_json_object(raw or "{}"))
        if not isinstance(parsed, dict):
            raise AuditParsingError("Audit response is not a JSON object.", raw_response=raw)
        data = cast(Dict[str, Any], parsed)
        entries = data.get("llm_issues")
        issues = [coerce_issue(entry) for entry in cast(List[Any], entries)] if isinstance(entries, list) else []
        return AuditOutcome(
            attempted=True,
            succeeded=True,
            issues=tuple(issue for issue in issues if issue is not None),
            flags=_str_list(data.get("flags")),
            notes=_str_list(data.get("notes")),
        )

    async def audit(self, context: CampaignContext, narratives: NarrativeSet, flags: DerivedFlags) -> AuditOutcome:
        """Run one audit call; failures are logged and yield no issues."""
        try:
            prompt = self.build_prompt(context, narratives, flags)
            raw = await self._client.complete(
                model=self._model,
                system=prompt.system,
                messages=prompt.messages,
                json=True,
                temperature=prompt.temperature,
                top_p=prompt.top_p,
                max_output_tokens=prompt.max_output_tokens,
            )
            outcome = self.parse_response(raw)
        except Exception as exc:  # noqa: BLE001
            self._logger.debug("LLM audit failed for campaign=%s: %s", context.id, exc)
            return AuditOutcome(attempted=True, model=self._model, error=str(exc))

        self._logger.debug(
            "LLM audit for campaign=%s returned %d issue(s) model=%s", context.id, len(outcome.issues), self._model
        )
        return AuditOutcome(
            attempted=True,
            model=self._model,
            succeeded=True,
            issues=outcome.issues,
            flags=outcome.flags,
            notes=outcome.notes,
        )


__all__ = [
    "AuditOutcome",
    "AuditPrompt",
    "LLMAuditor",
    "coerce_issue",
    "extract_json_object",
]
