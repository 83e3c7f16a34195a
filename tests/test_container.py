from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import List

import pytest

from narrative_judge.auditor import LLMAuditor
from narrative_judge.container import ServiceContainer, create_container
from narrative_judge.domain import CampaignContext
from narrative_judge.infrastructure.api_client import OpenAIChatClient
from narrative_judge.judge import NarrativeJudge
from narrative_judge.services import (
    ICampaignRepository,
    IConfigurationManager,
    IGenerativeTextClient,
    INarrativeStore,
    IVerdictRepository,
)
from narrative_judge.settings import JudgeSettings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in ("API_KEY", "OPENAI_API_KEY", "MODEL_JUDGE", "MODEL_DEFAULT", "RESEARCH_LEVEL"):
        monkeypatch.delenv(key, raising=False)


class Closable:
    def __init__(self, log: List[str], name: str) -> None:
        self._log = log
        self._name = name

    def close(self) -> None:
        self._log.append(self._name)


class AsyncClosable(Closable):
    async def aclose(self) -> None:
        self._log.append(f"async-{self._name}")


def test_register_and_resolve() -> None:
    container = ServiceContainer()
    container.register_singleton("a", 1)
    built: List[int] = []

    def factory() -> int:
        built.append(1)
        return 2

    container.register_factory("b", factory)
    assert container.is_registered("a")
    assert container.is_registered("b")
    assert container.resolve("a") == 1
    assert container.resolve("b") == 2
    assert container.resolve("b") == 2
    assert built == [1]
    with pytest.raises(LookupError):
        container.resolve("missing")


def test_aclose_closes_sync_and_async_services() -> None:
    log: List[str] = []
    container = ServiceContainer()
    container.register_singleton("sync", Closable(log, "sync"))
    container.register_singleton("async", AsyncClosable(log, "async"))
    container.register_singleton("plain", object())

    asyncio.run(container.aclose())

    assert sorted(log) == ["async-async", "sync"]
    assert not container.is_registered("sync")


def test_create_container_without_api_key() -> None:
    container = create_container()
    assert container.is_registered(IConfigurationManager)
    assert container.is_registered(ICampaignRepository)
    assert container.is_registered(INarrativeStore)
    assert container.is_registered(IVerdictRepository)
    assert not container.is_registered(IGenerativeTextClient)
    judge = container.resolve(NarrativeJudge)
    assert judge.auditor is None


def test_create_container_with_api_key_wires_auditor() -> None:
    container = create_container({"api": {"key": "sk-test"}, "model": {"judge": "gpt-4.1-mini"}})
    assert isinstance(container.resolve(IGenerativeTextClient), OpenAIChatClient)
    auditor = container.resolve(LLMAuditor)
    assert auditor.model == "gpt-4.1-mini"
    assert container.resolve(NarrativeJudge).auditor is auditor


def test_create_container_reads_config_file_and_fixtures(tmp_path: Path) -> None:
    config_file = tmp_path / "config.yaml"
    config_file.write_text("research:\n  level: LITE\n", encoding="utf-8")
    fixture = tmp_path / "fixture.json"
    fixture.write_text(
        json.dumps({"campaign": {"id": "c1"}, "narratives": {"opinionNarrative": "Stored opinion"}}),
        encoding="utf-8",
    )

    container = create_container({"config_file": str(config_file), "fixtures": [str(fixture)]})

    assert container.resolve(JudgeSettings).research_level == "LITE"
    campaigns = container.resolve(ICampaignRepository)
    assert isinstance(campaigns.get("c1"), CampaignContext)
    store = container.resolve(INarrativeStore)
    assert asyncio.run(store.fetch_latest("c1", ("opinionNarrative", "opinion"))) == "Stored opinion"
