"""Label analysis pipeline.

Stages run strictly in order, each awaited before the next:

1. validate    - image present and model credential configured (fatal)
2. label       - vision pass over the image, must return a JSON object (fatal)
3. search      - web evidence for pricing (best-effort, failures swallowed)
4. grounding   - text pass refining price/drink window from the evidence
                 (unparseable output degrades to the label record plus a note)

The parse/merge steps are plain functions so they can be tested without any
provider; `analyze` only sequences them and applies each stage's policy.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, TypeVar

from app.errors import ConfigurationError, ModelOutputError, NoImageError
from app.models.wine import EvidenceItem, Source, WineAnalysis
from app.services import gemini, search
from app.services.gemini import GeminiClient, image_part, parse_json_object
from app.services.normalize import MAX_SOURCES, normalize_record
from app.services.prompts import (
    GROUNDING_SYSTEM_PROMPT,
    LABEL_SYSTEM_PROMPT,
    grounding_user_prompt,
    label_user_prompt,
)
from app.services.search import build_search_query, search_evidence

logger = logging.getLogger(__name__)

GROUNDING_FAILED_NOTE = "Grounding failed; prices may be less reliable."

T = TypeVar("T")


class StagePolicy(str, Enum):
    FATAL = "fatal"
    SWALLOW = "swallow"
    DEGRADE = "degrade"


@dataclass(frozen=True)
class Stage:
    name: str
    policy: StagePolicy


LABEL = Stage("label", StagePolicy.FATAL)
SEARCH = Stage("search", StagePolicy.SWALLOW)
GROUNDING = Stage("grounding", StagePolicy.DEGRADE)


def _recover(stage: Stage, exc: Exception, fallback: Callable[[], T]) -> T:
    if stage.policy is StagePolicy.FATAL:
        raise exc
    logger.warning("%s stage failed (%s): %s: %s", stage.name, stage.policy.value, type(exc).__name__, exc)
    return fallback()


def validate_request(image_bytes: Optional[bytes], key: Optional[str]) -> str:
    if not image_bytes:
        raise NoImageError()
    if not key:
        raise ConfigurationError("GEMINI_API_KEY")
    return key


def parse_label_response(raw: str) -> WineAnalysis:
    data = parse_json_object(raw)
    if data is None:
        raise ModelOutputError(raw)
    return normalize_record(WineAnalysis.model_validate(data))


def parse_grounding_response(base: WineAnalysis, raw: str) -> WineAnalysis:
    """Merge the grounded priceEstimate/drinkWindow/sources onto `base`.

    Other sections always come from `base`; sections the grounding output
    omits (or returns as null or the wrong shape) are left as they were.
    """

    data = parse_json_object(raw)
    if data is None:
        raise ModelOutputError(raw)

    grounded = WineAnalysis.model_validate(data)
    update: dict = {}
    if isinstance(data.get("priceEstimate"), dict):
        update["priceEstimate"] = grounded.priceEstimate
    if isinstance(data.get("drinkWindow"), dict):
        update["drinkWindow"] = grounded.drinkWindow
    if isinstance(data.get("sources"), list):
        update["sources"] = grounded.sources[:MAX_SOURCES]
    return normalize_record(base.model_copy(deep=True, update=update))


def degrade_grounding(base: WineAnalysis) -> WineAnalysis:
    rec = base.model_copy(deep=True)
    note = (rec.priceEstimate.note or "").strip()
    rec.priceEstimate.note = f"{note} {GROUNDING_FAILED_NOTE}" if note else GROUNDING_FAILED_NOTE
    return rec


def backfill_sources(rec: WineAnalysis, evidence: list[EvidenceItem]) -> WineAnalysis:
    if rec.sources or not evidence:
        return rec
    rec.sources = [Source(title=e.title, url=e.url) for e in evidence[:MAX_SOURCES]]
    return rec


async def _gather_evidence(rec: WineAnalysis) -> list[EvidenceItem]:
    key = search.api_key()
    if not key:
        return []
    query = build_search_query(rec.recognizedLabel)
    if query is None:
        logger.info("search skipped: no identifying label fields")
        return []
    try:
        return await search_evidence(query, key)
    except Exception as exc:
        return _recover(SEARCH, exc, list)


async def _ground(client: GeminiClient, rec: WineAnalysis, evidence: list[EvidenceItem]) -> WineAnalysis:
    raw = await client.generate(
        system=GROUNDING_SYSTEM_PROMPT,
        parts=[grounding_user_prompt(rec.to_json_dict(), evidence)],
        model=gemini.grounding_model_name(),
        temperature=gemini.temperature(),
    )
    try:
        grounded = parse_grounding_response(rec, raw)
    except ModelOutputError as exc:
        grounded = _recover(GROUNDING, exc, lambda: degrade_grounding(rec))
    return backfill_sources(grounded, evidence)


async def analyze(image_bytes: Optional[bytes], mime_type: Optional[str]) -> WineAnalysis:
    """Run the full pipeline for one uploaded label image."""

    key = validate_request(image_bytes, gemini.api_key())
    client = GeminiClient(key)

    logger.info("label stage: %d bytes (%s)", len(image_bytes or b""), mime_type or "unknown type")
    raw = await client.generate(
        system=LABEL_SYSTEM_PROMPT,
        parts=[label_user_prompt(), image_part(image_bytes or b"", mime_type)],
        model=gemini.model_name(),
        temperature=gemini.temperature(),
    )
    try:
        rec = parse_label_response(raw)
    except ModelOutputError as exc:
        rec = _recover(LABEL, exc, WineAnalysis)

    evidence = await _gather_evidence(rec)
    if not evidence:
        return rec

    logger.info("grounding stage: %d evidence items", len(evidence))
    return await _ground(client, rec, evidence)
