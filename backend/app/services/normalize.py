from __future__ import annotations

from typing import Optional

from app.models.wine import WineAnalysis

MAX_SOURCES = 5


def _collapse(s: Optional[str]) -> Optional[str]:
    if s is None:
        return None
    return " ".join(s.split())


def _clean_list(items: list[str]) -> list[str]:
    return [c for c in (_collapse(i) for i in items) if c]


def normalize_record(rec: WineAnalysis) -> WineAnalysis:
    # Minimal normalization; runs after every model pass.
    label = rec.recognizedLabel
    label.producer = _collapse(label.producer)
    label.wine = _collapse(label.wine)
    label.appellation = _collapse(label.appellation)
    label.region = _collapse(label.region)
    label.country = _collapse(label.country)
    if isinstance(label.vintage, str):
        label.vintage = _collapse(label.vintage)

    for g in rec.grapes:
        g.variety = _collapse(g.variety) or ""
    rec.grapes = [g for g in rec.grapes if g.variety]

    tn = rec.tastingNotes
    tn.nose = _clean_list(tn.nose)
    tn.palate = _clean_list(tn.palate)

    af = rec.aromasAndFlavours
    af.primary = _clean_list(af.primary)
    af.secondary = _clean_list(af.secondary)
    af.tertiary = _clean_list(af.tertiary)

    rec.caveats = _clean_list(rec.caveats)
    rec.sources = [s for s in rec.sources if s.url][:MAX_SOURCES]
    return rec
