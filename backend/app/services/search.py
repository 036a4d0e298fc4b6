from __future__ import annotations

import logging
import os
from typing import Any, Optional

import httpx

from app.models.wine import EvidenceItem, RecognizedLabel

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_URL = "https://api.tavily.com/search"
MAX_RESULTS = 6
MAX_TITLE_CHARS = 140
MAX_SNIPPET_CHARS = 500

PRICE_KEYWORD = "price"

# Retailers and price aggregators the query is restricted to.
RETAILER_DOMAINS = (
    "wine-searcher.com",
    "vivino.com",
    "thewinesociety.com",
    "majestic.co.uk",
    "bbr.com",
    "waitrosecellar.com",
    "laithwaites.co.uk",
    "slurp.co.uk",
)


def api_key() -> Optional[str]:
    return os.getenv("TAVILY_API_KEY", "").strip() or None


def _search_url() -> str:
    return os.getenv("TAVILY_URL", DEFAULT_SEARCH_URL).strip() or DEFAULT_SEARCH_URL


def _timeout_seconds() -> float:
    try:
        return float(os.getenv("SEARCH_TIMEOUT_SECONDS", "20").strip())
    except ValueError:
        return 20.0


def build_search_query(label: RecognizedLabel) -> Optional[str]:
    """Query from the identifying label fields, or None when there are none."""
    fields = label.identifying_fields()
    if not fields:
        return None
    sites = " OR ".join(f"site:{d}" for d in RETAILER_DOMAINS)
    return f"{' '.join(fields)} {PRICE_KEYWORD} ({sites})"


def _clip(val: Any, limit: int) -> str:
    s = val.strip() if isinstance(val, str) else ""
    return s[:limit]


def normalize_evidence(payload: Any) -> list[EvidenceItem]:
    """Convert a search response body into evidence items.

    Raises ValueError when the body does not have a `results` list.
    """

    results = payload.get("results") if isinstance(payload, dict) else None
    if not isinstance(results, list):
        raise ValueError("search response has no results list")

    items: list[EvidenceItem] = []
    for r in results:
        if not isinstance(r, dict):
            continue
        url = _clip(r.get("url"), 2048)
        if not url:
            continue
        items.append(
            EvidenceItem(
                title=_clip(r.get("title"), MAX_TITLE_CHARS),
                url=url,
                snippet=_clip(r.get("content"), MAX_SNIPPET_CHARS),
            )
        )
    return items[:MAX_RESULTS]


async def search_evidence(
    query: str,
    key: str,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> list[EvidenceItem]:
    """One search call. Errors propagate; the caller decides whether they matter."""

    body = {
        "query": query,
        "max_results": MAX_RESULTS,
        "search_depth": "advanced",
        "include_answer": False,
    }
    headers = {
        "Authorization": f"Bearer {key}",
        "Cache-Control": "no-cache",
    }

    async with httpx.AsyncClient(timeout=_timeout_seconds(), transport=transport) as client:
        resp = await client.post(_search_url(), json=body, headers=headers)
        resp.raise_for_status()
        payload = resp.json()

    items = normalize_evidence(payload)
    logger.info("search returned %d evidence items", len(items))
    return items
