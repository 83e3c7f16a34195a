"""Tests covering the FastAPI judge endpoints."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import pytest
from fastapi.testclient import TestClient

from narrative_judge.container import ServiceContainer, create_container, seed_fixtures
from narrative_judge.domain import CampaignContext, OfferIQResult, ResearchPack
from narrative_judge.exceptions import OfferScoringError
from narrative_judge.infrastructure.repositories import CampaignFixture
from narrative_judge.judge import NarrativeJudge
from narrative_judge.webapp import create_app

FIXTURE = CampaignFixture.from_mapping(
    {
        "campaign": {
            "id": "camp-1",
            "title": "Bali Getaway",
            "briefSpec": {"typeOfPromotion": "PRIZE", "heroPrize": "Trip to Bali", "totalWinners": 1200},
        },
        "narratives": {"evaluationNarrative": "A dream trip.", "opinionNarrative": "Add a cashback kicker."},
        "research": {
            "audience": ["a", "b", "c"],
            "category": ["a", "b", "c"],
            "retailers": ["a", "b"],
            "competitors": {"promos": ["1", "2", "3", "4", "5"]},
        },
    }
)


class FailingOfferScorer:
    async def score(self, context: CampaignContext, research: Optional[ResearchPack]) -> OfferIQResult:
        raise OfferScoringError("offer service unavailable")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in ("API_KEY", "OPENAI_API_KEY", "STORAGE_VERDICTS_DIR", "WEB_CORS_ORIGINS"):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def container(tmp_path: Path) -> ServiceContainer:
    container = create_container({"storage": {"verdicts_dir": str(tmp_path / "verdicts")}})
    seed_fixtures(container, [FIXTURE])
    return container


def test_health(container: ServiceContainer) -> None:
    client = TestClient(create_app(container))
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_run_judge_uses_stored_narratives_and_persists(container: ServiceContainer, tmp_path: Path) -> None:
    client = TestClient(create_app(container))

    response = client.post("/api/campaigns/camp-1/judge/run")
    assert response.status_code == 200
    result = response.json()["result"]
    assert result["kind"] == "judge.v1"
    assert result["pass"] is False
    codes = [issue["code"] for issue in result["issues"]]
    assert codes[0] == "PRIZE_NOT_CASHBACK"
    assert "WINNERS_NOT_SURFACED" in codes
    assert "meta" not in result

    saved = list((tmp_path / "verdicts" / "camp-1").glob("*_judge.json"))
    assert len(saved) == 1

    latest = client.get("/api/campaigns/camp-1/judge/latest")
    assert latest.status_code == 200
    body = latest.json()
    assert body["campaignId"] == "camp-1"
    assert body["summary"].startswith("pass=no")
    assert body["result"] == result


def test_run_judge_with_explicit_inputs(container: ServiceContainer) -> None:
    client = TestClient(create_app(container))
    payload = {
        "researchLevel": "MAX",
        "inputs": {
            "evaluation": "Celebrate 1,200 winners. Increase the major prizes to 3 and add instant wins.",
            "opinion": "Replace the hook.",
        },
    }
    response = client.post("/api/campaigns/camp-1/judge/run", json=payload)
    assert response.status_code == 200
    result = response.json()["result"]
    assert result["issues"] == []
    assert result["score"] == 100
    assert result["pass"] is True


def test_use_llm_without_client_has_no_meta(container: ServiceContainer) -> None:
    client = TestClient(create_app(container))
    response = client.post("/api/campaigns/camp-1/judge/run", json={"useLLM": True})
    assert response.status_code == 200
    assert "meta" not in response.json()["result"]


def test_invalid_research_level_is_rejected(container: ServiceContainer) -> None:
    client = TestClient(create_app(container))
    response = client.post("/api/campaigns/camp-1/judge/run", json={"researchLevel": "ULTRA"})
    assert response.status_code == 422


def test_unknown_campaign_returns_404(container: ServiceContainer) -> None:
    client = TestClient(create_app(container))
    response = client.post("/api/campaigns/missing/judge/run")
    assert response.status_code == 404
    assert response.json() == {"detail": "Campaign not found: missing"}
    assert client.get("/api/campaigns/missing/judge/latest").status_code == 404


def test_collaborator_failure_maps_to_bad_gateway(container: ServiceContainer) -> None:
    container.register_singleton(NarrativeJudge, NarrativeJudge(offer_scorer=FailingOfferScorer()))
    client = TestClient(create_app(container))
    response = client.post("/api/campaigns/camp-1/judge/run")
    assert response.status_code == 502
    assert response.json() == {"detail": "offer service unavailable"}


def test_create_app_builds_its_own_container(tmp_path: Path) -> None:
    app = create_app(config={"storage": {"verdicts_dir": str(tmp_path)}, "web": {"cors_origins": ["http://x"]}})
    client = TestClient(app)
    assert client.get("/api/health").status_code == 200
    assert client.post("/api/campaigns/camp-1/judge/run").status_code == 404
