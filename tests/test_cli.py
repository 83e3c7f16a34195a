from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict

import pytest

import judge as cli
from narrative_judge import JudgeInputs, JudgeOptions, NarrativeJudge

configure_logging = cli.configure_logging

PASSING_FIXTURE: Dict[str, Any] = {
    "campaign": {
        "id": "cash-1",
        "title": "Spend and Save",
        "briefSpec": {"typeOfPromotion": "CASHBACK", "cashback": {"amount": 20, "currency": "AUD"}},
    },
    "research": {
        "audience": ["a", "b", "c"],
        "category": ["a", "b", "c"],
        "retailers": ["a", "b"],
        "competitors": {"promos": ["1", "2", "3"]},
    },
}


@pytest.fixture(autouse=True)
def quiet_cli(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in ("API_KEY", "OPENAI_API_KEY", "RESEARCH_LEVEL"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr(cli, "configure_logging", lambda debug, verbose: False)


def write_fixture(tmp_path: Path, data: Any) -> Path:
    path = tmp_path / "campaign.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_build_parser_parses_expected_arguments(tmp_path: Path) -> None:
    args = cli.build_parser().parse_args(
        [
            "campaign.json",
            "--use-llm",
            "--research-level",
            "MAX",
            "--config",
            "config.yaml",
            "--outdir",
            str(tmp_path),
            "--verbose",
        ]
    )
    assert args.campaign == "campaign.json"
    assert args.use_llm is True
    assert args.research_level == "MAX"
    assert args.config == "config.yaml"
    assert Path(args.outdir) == tmp_path
    assert args.verbose is True
    assert args.debug is False


def test_build_parser_rejects_unknown_research_level() -> None:
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["campaign.json", "--research-level", "ULTRA"])


def test_main_passing_campaign_writes_verdict(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    fixture = write_fixture(tmp_path, PASSING_FIXTURE)
    outdir = tmp_path / "out"

    exit_code = cli.main([str(fixture), "--outdir", str(outdir), "--verbose"])

    assert exit_code == 0
    verdict = json.loads((outdir / "cash-1_judge.json").read_text(encoding="utf-8"))
    assert verdict["pass"] is True
    assert verdict["score"] == 100
    assert verdict["flags"][0] == "TYPE_CASHBACK"
    output = capsys.readouterr().out
    assert "PASS cash-1 Spend and Save" in output
    assert "Promotion type: CASHBACK" in output


def test_main_failing_campaign_returns_one(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    data = dict(PASSING_FIXTURE, offerIQ={"verdict": "NO-GO", "lenses": {"adequacy": {"fix": "Raise to $40."}}})
    fixture = write_fixture(tmp_path, [data])

    exit_code = cli.main([str(fixture), "--outdir", str(tmp_path / "out")])

    assert exit_code == 1
    output = capsys.readouterr().out
    assert "FAIL cash-1" in output
    assert "OFFER_INADEQUATE: Offer inadequate. Raise to $40." in output
    assert "regenerate: opinion" in output


def test_main_reports_bad_input(tmp_path: Path) -> None:
    broken = tmp_path / "broken.json"
    broken.write_text("{oops", encoding="utf-8")
    assert cli.main([str(broken), "--outdir", str(tmp_path / "out")]) == 2
    assert cli.main([str(tmp_path / "missing.json"), "--outdir", str(tmp_path / "out")]) == 2


def test_main_with_config_file(tmp_path: Path) -> None:
    config = tmp_path / "config.yaml"
    config.write_text("scoring:\n  pass_threshold: 100\n", encoding="utf-8")
    data = dict(PASSING_FIXTURE, research=None)
    fixture = write_fixture(tmp_path, data)

    exit_code = cli.main([str(fixture), "--config", str(config), "--outdir", str(tmp_path / "out")])

    assert exit_code == 1


def test_render_verdict_without_color_truncates_recommendations(tmp_path: Path) -> None:
    fixture = write_fixture(tmp_path, PASSING_FIXTURE)
    fixtures = cli.load_fixtures(fixture)
    container = cli.create_container()
    judge = container.resolve(NarrativeJudge)

    options = JudgeOptions(inputs=JudgeInputs(evaluation="Add cashback, scan the QR code."))
    verdict = asyncio.run(judge.run(fixtures[0].context, options))
    text = cli.render_verdict(fixtures[0], verdict, use_color=False, verbose=False)

    assert "\x1b[" not in text
    assert "EASE_CHATTER" in text
    assert text.count("  -> ") == min(3, len(verdict.recommendations))
    assert "Brief:" not in text


def test_configure_logging_enables_color(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: Dict[str, Any] = {}

    def record(**kwargs: Any) -> None:
        calls.update(kwargs)

    class DummyStderr:
        def isatty(self) -> bool:
            return True

    monkeypatch.setattr(cli, "configure_root_logging", record)
    monkeypatch.setattr(cli.sys, "stderr", DummyStderr())
    monkeypatch.setattr(cli, "colorama_init", lambda: None)
    monkeypatch.delenv("NO_COLOR", raising=False)

    assert configure_logging(debug=True, verbose=False) is True
    assert calls["level"] == "DEBUG"
    formatter = calls["formatter"]
    record_obj = logging.LogRecord("narrative_judge", logging.WARNING, __file__, 1, "careful", None, None)
    assert formatter.format(record_obj).endswith("\x1b[0m")


def test_configure_logging_respects_no_color(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: Dict[str, Any] = {}

    def record(**kwargs: Any) -> None:
        calls.update(kwargs)

    monkeypatch.setattr(cli, "configure_root_logging", record)
    monkeypatch.setenv("NO_COLOR", "1")

    assert configure_logging(debug=False, verbose=True) is False
    assert calls["level"] == "INFO"
    assert calls["formatter"] is None
