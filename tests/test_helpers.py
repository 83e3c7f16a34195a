# pyright: reportPrivateUsage=false

import datetime as dt
from pathlib import Path
from typing import Any, Dict

from narrative_judge.brief import render_brief_snapshot
from narrative_judge.coercion import (
    as_mapping,
    is_present,
    to_bool,
    to_count,
    to_number,
    to_optional_text,
    to_str_list,
    to_text,
)
from narrative_judge.domain import CampaignContext
from narrative_judge.infrastructure.utility_services import FileSystemService, ResponseParser, TimeService

_RESPONSE_PARSER = ResponseParser()
_FILE_SYSTEM = FileSystemService()
_TIME_SERVICE = TimeService()


def test_extract_text_returns_primary_message_contents() -> None:
    payload: Dict[str, Any] = {"choices": [{"message": {"content": "Hello world"}}]}
    assert _RESPONSE_PARSER.extract_text(payload) == "Hello world"


def test_extract_text_handles_missing_content_gracefully() -> None:
    assert _RESPONSE_PARSER.extract_text({"choices": [{"message": {}}]}) == ""
    assert _RESPONSE_PARSER.extract_text({}) == ""
    assert _RESPONSE_PARSER.extract_text({"choices": []}) == ""


def test_extract_text_joins_content_parts() -> None:
    payload: Dict[str, Any] = {"choices": [{"message": {"content": [{"type": "text", "text": "{\"a\": "}, "1}"]}}]}
    assert _RESPONSE_PARSER.extract_text(payload) == '{"a": 1}'


def test_refusal_finish_reason_and_usage() -> None:
    payload: Dict[str, Any] = {
        "choices": [{"message": {"content": None, "refusal": "  No.  "}, "finish_reason": "stop"}],
        "usage": {"prompt_tokens": 10, "completion_tokens": 2, "total_tokens": 12, "cached": True},
    }
    assert _RESPONSE_PARSER.extract_text(payload) == ""
    assert _RESPONSE_PARSER.extract_refusal(payload) == "No."
    assert _RESPONSE_PARSER.extract_finish_reason(payload) == "stop"
    assert _RESPONSE_PARSER.extract_usage(payload) == {"prompt_tokens": 10, "completion_tokens": 2, "total_tokens": 12}
    assert _RESPONSE_PARSER.extract_refusal({}) is None
    assert _RESPONSE_PARSER.extract_usage({"usage": "n/a"}) == {}


def test_extract_text_skips_malformed_tool_calls() -> None:
    payload: Dict[str, Any] = {
        "choices": [
            {
                "message": {
                    "content": "",
                    "tool_calls": [{"function": "bad"}, {"function": {"arguments": '{"ok": true}'}}],
                }
            }
        ]
    }
    assert _RESPONSE_PARSER.extract_text(payload) == '{"ok": true}'


def test_file_system_round_trip(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "verdict.json"
    _FILE_SYSTEM.write_json(path, {"pass": True, "message": "doesn’t"})
    assert _FILE_SYSTEM.read_json(path) == {"pass": True, "message": "doesn’t"}
    assert "doesn’t" in path.read_text(encoding="utf-8")
    assert not list(path.parent.glob(".*.tmp"))


def test_file_system_lists_sorted_matches(tmp_path: Path) -> None:
    _FILE_SYSTEM.write_json(tmp_path / "b_judge.json", {})
    _FILE_SYSTEM.write_json(tmp_path / "a_judge.json", {})
    (tmp_path / "notes.txt").write_text("x", encoding="utf-8")
    assert [p.name for p in _FILE_SYSTEM.list_files(tmp_path, "*_judge.json")] == ["a_judge.json", "b_judge.json"]
    assert _FILE_SYSTEM.list_files(tmp_path / "missing", "*.json") == []


def test_time_service_returns_utc_iso() -> None:
    stamp = _TIME_SERVICE.now_iso()
    assert stamp.endswith("Z")
    parsed = dt.datetime.fromisoformat(stamp.replace("Z", "+00:00"))
    assert parsed.tzinfo is not None
    assert parsed.microsecond == 0


def test_to_number_and_count() -> None:
    assert to_number("12.5") == 12.5
    assert to_number(3) == 3.0
    assert to_number(True) is None
    assert to_number("n/a") is None
    assert to_number(float("inf")) is None
    assert to_count("3 major prizes") == 3
    assert to_count("0 prizes") is None
    assert to_count(None) is None


def test_to_bool_and_presence() -> None:
    assert to_bool("Yes") is True
    assert to_bool(0) is False
    assert to_bool(None) is False
    assert is_present({}) is True
    assert is_present("  ") is False
    assert is_present(0) is False
    assert is_present(False) is False


def test_text_and_list_normalisation() -> None:
    assert to_str_list("Coles, Woolworths ,") == ["Coles", "Woolworths"]
    assert to_str_list(["a", None, " "]) == ["a"]
    assert to_str_list(None) == []
    assert to_text(2.0) == "2"
    assert to_text(["a", "", 3]) == "a, 3"
    assert to_text({"k": 1}) == '{"k": 1}'
    assert to_optional_text("  ") is None
    assert as_mapping(["not", "a", "mapping"]) == {}


def test_brief_snapshot_lists_populated_fields() -> None:
    context = CampaignContext.from_mapping(
        {
            "id": "c1",
            "title": "Winter Warmers",
            "clientName": "Acme",
            "startDate": "2024-06-01",
            "endDate": "2024-07-31",
            "briefSpec": {
                "hook": "Warm up and win",
                "typeOfPromotion": "prize",
                "heroPrize": "Ski trip",
                "heroPrizeCount": "3",
                "retailers": "Coles, Woolworths",
                "totalWinners": 500,
                "gwp": {"item": "Beanie", "triggerQty": 2, "cap": "unlimited"},
            },
        }
    )
    lines = render_brief_snapshot(context).splitlines()
    assert lines[:3] == ["Client: Acme", "Title: Winter Warmers", "Market: n/a | Category: n/a"]
    assert "Timing: 2024-06-01 to 2024-07-31" in lines
    assert "Hook: Warm up and win" in lines
    assert "Retailers: Coles, Woolworths" in lines
    assert "Promotion type: PRIZE" in lines
    assert "Hero prize: Ski trip x3" in lines
    assert "Total winners: 500" in lines
    assert "GWP: Beanie | Trigger: 2 | Cap: UNLIMITED" in lines
    assert not any(line.startswith("Cashback:") for line in lines)
