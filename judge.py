#!/usr/bin/env python3
"""Command-line interface for the narrative-judge project."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import List, Sequence

from colorama import Fore, Style, init as colorama_init

from narrative_judge import JudgeOptions, JudgeVerdict, NarrativeJudge, create_container, render_brief_snapshot
from narrative_judge.container import ServiceContainer, seed_fixtures
from narrative_judge.exceptions import NarrativeJudgeException
from narrative_judge.infrastructure.repositories import CampaignFixture, load_fixtures
from narrative_judge.infrastructure.utility_services import FileSystemService
from narrative_judge.logging_config import StructuredFormatter, configure_logging as configure_root_logging, get_logger

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOGGER = get_logger("narrative_judge.cli")

SEVERITY_COLORS = {
    "BLOCKER": Style.BRIGHT + Fore.RED,
    "WARN": Fore.YELLOW,
    "NIT": Style.DIM + Fore.CYAN,
}


def build_parser() -> argparse.ArgumentParser:
    """Construct the CLI argument parser."""
    parser = argparse.ArgumentParser(description="Audit campaign narratives against their brief.")
    parser.add_argument(
        "campaign",
        help="Campaign fixture JSON (one object or a list) with campaign, narratives, research and offerIQ.",
    )
    parser.add_argument(
        "--use-llm",
        action="store_true",
        help="Also run the LLM audit pass (requires OPENAI_API_KEY).",
    )
    parser.add_argument(
        "--research-level",
        choices=["LITE", "DEEP", "MAX"],
        default=None,
        help="Research depth to request (default: research.level from config, else DEEP).",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="YAML or JSON configuration file.",
    )
    parser.add_argument(
        "--outdir",
        default="verdicts",
        help="Directory for verdict JSON files (defaults to ./verdicts).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Print the brief snapshot and every recommendation.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable verbose debug logging to trace HTTP calls and internal flow.",
    )
    return parser


def configure_logging(debug: bool, verbose: bool) -> bool:
    """Configure root logger; return whether colored output is enabled."""
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    else:
        level = "WARNING"

    use_color = sys.stderr.isatty() and os.getenv("NO_COLOR") is None
    formatter: logging.Formatter | None = None

    if use_color:
        colorama_init()

        class ColorFormatter(StructuredFormatter):
            COLORS = {
                logging.DEBUG: Style.DIM + Fore.BLUE,
                logging.INFO: Fore.CYAN,
                logging.WARNING: Fore.YELLOW,
                logging.ERROR: Fore.RED,
                logging.CRITICAL: Style.BRIGHT + Fore.RED,
            }

            def format(self, record: logging.LogRecord) -> str:
                color = self.COLORS.get(record.levelno, "")
                message = super().format(record)
                if color:
                    return f"{color}{message}{Style.RESET_ALL}"
                return message

        formatter = ColorFormatter(LOG_FORMAT)

    configure_root_logging(level=level, format_string=LOG_FORMAT, formatter=formatter)
    return use_color


def render_verdict(fixture: CampaignFixture, verdict: JudgeVerdict, use_color: bool, verbose: bool) -> str:
    """Human-readable verdict summary."""

    def paint(text: str, color: str) -> str:
        return f"{color}{text}{Style.RESET_ALL}" if use_color else text

    context = fixture.context
    status = paint("PASS", Fore.GREEN) if verdict.passed else paint("FAIL", Style.BRIGHT + Fore.RED)
    lines: List[str] = [f"{status} {context.id} {context.title}".rstrip(), f"  {verdict.summary_line()}"]

    if verbose:
        lines.append("  Brief:")
        lines.extend(f"    {line}" for line in render_brief_snapshot(context).splitlines())

    for issue in verdict.issues:
        label = paint(f"{issue.severity:<7}", SEVERITY_COLORS.get(issue.severity, ""))
        lines.append(f"  {label} {issue.code}: {issue.message}")

    recommendations = verdict.recommendations if verbose else verdict.recommendations[:3]
    for recommendation in recommendations:
        lines.append(f"  -> {recommendation}")
    if verdict.requires_regeneration:
        lines.append(f"  regenerate: {', '.join(verdict.requires_regeneration)}")
    lines.append(f"  flags: {' '.join(verdict.flags)}")
    if verdict.meta is not None:
        lines.append(f"  llm: used={verdict.meta.used_llm} model={verdict.meta.model or 'n/a'}")
    return "\n".join(lines)


async def judge_fixtures(
    container: ServiceContainer,
    fixtures: Sequence[CampaignFixture],
    options: JudgeOptions,
    outdir: Path,
    use_color: bool,
    verbose: bool,
) -> bool:
    """Judge each fixture, write its verdict file and return whether all passed."""
    judge: NarrativeJudge = container.resolve(NarrativeJudge)
    fs_service = FileSystemService()
    all_passed = True
    try:
        for fixture in fixtures:
            verdict = await judge.run(fixture.context, options)
            path = outdir / f"{fixture.context.id}_judge.json"
            fs_service.write_json(path, verdict.to_dict())
            print(render_verdict(fixture, verdict, use_color, verbose))
            LOGGER.info(f"Wrote verdict to {path}", campaign_id=fixture.context.id)
            all_passed = all_passed and verdict.passed
    finally:
        await container.aclose()
    return all_passed


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    use_color = configure_logging(args.debug, args.verbose)

    outdir = Path(args.outdir)
    outdir.mkdir(parents=True, exist_ok=True)

    try:
        container = create_container({"config_file": args.config} if args.config else None)
        fixtures = load_fixtures(Path(args.campaign))
        seed_fixtures(container, fixtures)
        options = JudgeOptions(research_level=args.research_level, use_llm=args.use_llm)
        passed = asyncio.run(judge_fixtures(container, fixtures, options, outdir, use_color, args.verbose))
    except KeyboardInterrupt:
        print("\n[Interrupted] Exiting.")
        return 130
    except (NarrativeJudgeException, OSError) as exc:
        LOGGER.error(f"Judge run failed: {exc}")
        return 2
    return 0 if passed else 1


if __name__ == "__main__":
    sys.exit(main())
