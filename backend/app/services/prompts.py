from __future__ import annotations

import json

from app.models.wine import EvidenceItem

# Shape we ask the model to fill; empty values show the expected types.
SCHEMA_TEMPLATE: dict = {
    "recognizedLabel": {
        "producer": "",
        "wine": "",
        "appellation": "",
        "region": "",
        "country": "",
        "vintage": None,
    },
    "grapes": [{"variety": "", "percent": None}],
    "abv": None,
    "tastingNotes": {
        "nose": [],
        "palate": [],
        "finish": "",
        "wsetLevel2": {
            "sweetness": "",
            "acidity": "",
            "tannin": "",
            "body": "",
            "alcohol": "",
            "finishLength": "",
        },
    },
    "drinkWindow": {
        "drinkNow": False,
        "from": "",
        "to": "",
        "peakFrom": "",
        "peakTo": "",
        "decant": "",
    },
    "priceEstimate": {
        "currency": "GBP",
        "low": None,
        "high": None,
        "confidence": "low",
        "note": "",
    },
    "caveats": [],
    "aromasAndFlavours": {
        "primary": [],
        "secondary": [],
        "tertiary": [],
    },
}

LABEL_SYSTEM_PROMPT = (
    "You are a master sommelier using only information visible on the wine label image and general wine knowledge. "
    "Return ONLY valid JSON matching the provided schema (no prose, no markdown). "
    "If a field is unknown, use null, an empty string, or [] as appropriate. Do not fabricate values. "
    "Never invent numeric facts (abv, grape percentages, vintage) beyond what is visible on the label "
    "or can be reliably inferred; leave them null otherwise. "
    "For price, give a broad typical retail range for this wine (including this vintage) in the user's likely "
    "market (UK/Europe) with low/medium/high confidence. "
    "For drinkWindow, provide a realistic now/peak/from/to and a simple decant recommendation for tonight. "
    "If the wine is past its best, you can provide a date in the past. "
    "Populate WSET Level 2 estimates (sweetness, acidity, tannin, body, alcohol, finishLength). "
    "Also return an 'aromasAndFlavours' section with primary/secondary/tertiary descriptors. "
    'Set "grapes" to an array of objects like {"variety": string, "percent": number|null}, where percent is the '
    "approximate share (0-100) of each variety, summing to ~100 when known, otherwise null. "
    "If the wine is single-varietal, include one entry with percent null."
)

GROUNDING_SYSTEM_PROMPT = (
    "You are a wine pricing analyst. You receive a wine analysis JSON and a list of web evidence items. "
    "Update ONLY priceEstimate and drinkWindow using the evidence; keep every other field exactly as given. "
    "When evidence conflicts or is thin, stay conservative: widen the range and lower the confidence. "
    'Add up to 5 entries to "sources" as {"title": string, "url": string}, only for evidence you actually used. '
    "Return ONLY valid JSON with the same schema (no prose, no markdown)."
)


def label_user_prompt() -> str:
    return (
        "Identify the wine from this label image and fill the following JSON schema exactly. "
        f"Schema: {json.dumps(SCHEMA_TEMPLATE, ensure_ascii=False)}"
    )


def grounding_user_prompt(record_json: dict, evidence: list[EvidenceItem]) -> str:
    items = [e.model_dump() for e in evidence]
    schema = dict(SCHEMA_TEMPLATE, sources=[{"title": "", "url": ""}])
    return (
        "Current analysis JSON:\n"
        f"{json.dumps(record_json, ensure_ascii=False)}\n\n"
        "Web evidence (JSON array of {title, url, snippet}):\n"
        f"{json.dumps(items, ensure_ascii=False)}\n\n"
        f"Schema: {json.dumps(schema, ensure_ascii=False)}\n"
    )
