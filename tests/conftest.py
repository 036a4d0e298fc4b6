from __future__ import annotations

import copy
import json
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

# Imported up front so load_dotenv runs before the env fixtures below.
from app.main import app
from app.models.wine import EvidenceItem

ENV_VARS = (
    "GEMINI_API_KEY",
    "GEMINI_MODEL",
    "GEMINI_GROUNDING_MODEL",
    "GEMINI_TEMPERATURE",
    "GEMINI_DEBUG",
    "TAVILY_API_KEY",
    "TAVILY_URL",
)

LABEL_RECORD = {
    "recognizedLabel": {
        "producer": "Château Musar",
        "wine": "Château Musar Rouge",
        "appellation": "Bekaa Valley",
        "region": "Bekaa Valley",
        "country": "Lebanon",
        "vintage": 2016,
    },
    "grapes": [
        {"variety": "Cabernet Sauvignon", "percent": 34},
        {"variety": "Cinsault", "percent": 33},
        {"variety": "Carignan", "percent": 33},
    ],
    "abv": 14,
    "tastingNotes": {
        "nose": ["dried cherry", "cedar"],
        "palate": ["plum", "spice"],
        "finish": "long, savoury",
        "wsetLevel2": {
            "sweetness": "dry",
            "acidity": "medium+",
            "tannin": "medium",
            "body": "medium+",
            "alcohol": "high",
            "finishLength": "long",
        },
    },
    "drinkWindow": {
        "drinkNow": True,
        "from": "2024",
        "to": "2040",
        "peakFrom": "2028",
        "peakTo": "2035",
        "decant": "1 hour",
    },
    "priceEstimate": {
        "currency": "GBP",
        "low": 40,
        "high": 60,
        "confidence": "medium",
        "note": "UK retail",
    },
    "aromasAndFlavours": {
        "primary": ["red cherry"],
        "secondary": ["vanilla"],
        "tertiary": ["leather"],
    },
    "caveats": ["Vintage variation is significant."],
}


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def gemini_key(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "test-gemini-key")


@pytest.fixture
def search_key(monkeypatch):
    monkeypatch.setenv("TAVILY_API_KEY", "tvly-test-key")


@pytest.fixture
def label_record() -> dict:
    return copy.deepcopy(LABEL_RECORD)


@pytest.fixture
def label_json(label_record) -> str:
    return json.dumps(label_record, ensure_ascii=False)


@pytest.fixture
def evidence() -> list[EvidenceItem]:
    return [
        EvidenceItem(
            title=f"Chateau Musar 2016 offer {i}",
            url=f"https://www.wine-searcher.com/find/musar-{i}",
            snippet=f"Chateau Musar 2016 from £{40 + i}",
        )
        for i in range(6)
    ]


@pytest.fixture
def fake_gemini(label_json):
    """Patch the model client; `generate` returns the label record by default."""
    with patch("app.services.pipeline.GeminiClient") as cls:
        instance = cls.return_value
        instance.generate = AsyncMock(return_value=label_json)
        yield instance


@pytest.fixture
def client():
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c
