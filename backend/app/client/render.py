from __future__ import annotations

from typing import Any, Optional

from app.models.wine import WineAnalysis

PLACEHOLDER = "—"

FOOTER = "Tip: Prices are indicative; verify locally (Wine-Searcher, retailer)."


def safe_str(v: Any) -> str:
    if v is None:
        return PLACEHOLDER
    s = v if isinstance(v, str) else str(v)
    return s if s.strip() else PLACEHOLDER


def _field(label: str, v: Any) -> str:
    return f"  {label}: {safe_str(v)}"


def _pills(label: str, items: Optional[list[str]]) -> str:
    vals = [i for i in (items or []) if i]
    return f"  {label}: {', '.join(vals) if vals else PLACEHOLDER}"


def _number(v: Optional[float]) -> str:
    if v is None:
        return PLACEHOLDER
    return str(int(v)) if float(v).is_integer() else str(v)


def _heading(title: str) -> list[str]:
    return ["", title, "-" * len(title)]


def render(rec: WineAnalysis) -> str:
    """Plain-text result view; every absent field shows a placeholder."""

    rl = rec.recognizedLabel
    tn = rec.tastingNotes
    w2 = tn.wsetLevel2
    af = rec.aromasAndFlavours
    dw = rec.drinkWindow
    pe = rec.priceEstimate

    lines = ["Wine Information", "----------------"]
    lines += [
        _field("Producer", rl.producer),
        _field("Wine", rl.wine),
        _field("Appellation", rl.appellation),
        _field("Region", rl.region),
        _field("Country", rl.country),
        _field("Vintage", rl.vintage),
        _field("ABV", f"{_number(rec.abv)}%" if rec.abv is not None else None),
    ]
    grapes = [f"{g.variety} {_number(g.percent)}%" if g.percent is not None else g.variety for g in rec.grapes]
    lines.append(_pills("Grapes", grapes))

    lines += _heading("Tasting Notes")
    lines += [
        _pills("Nose", tn.nose),
        _pills("Palate", tn.palate),
        _field("Finish", tn.finish),
    ]

    lines += _heading("WSET Level 2")
    lines += [
        _field("Sweetness", w2.sweetness),
        _field("Acidity", w2.acidity),
        _field("Tannin", w2.tannin),
        _field("Body", w2.body),
        _field("Alcohol", w2.alcohol),
        _field("Finish Length", w2.finishLength),
    ]

    lines += _heading("Aromas and Flavours")
    lines += [
        _pills("Primary", af.primary),
        _pills("Secondary", af.secondary),
        _pills("Tertiary", af.tertiary),
    ]

    lines += _heading("Drink Window")
    lines += [
        _field("From", dw.from_),
        _field("To", dw.to),
        _field("Peak From", dw.peakFrom),
        _field("Peak To", dw.peakTo),
        _field("Decant", dw.decant),
    ]

    price_range = None
    if pe.low is not None and pe.high is not None:
        price_range = f"{_number(pe.low)} – {_number(pe.high)}"
    lines += _heading("Price (estimate)")
    lines += [
        _field("Currency", pe.currency),
        _field("Range", price_range),
        _field("Confidence", pe.confidence),
    ]
    if pe.note:
        lines.append(f"  {pe.note}")

    if rec.caveats:
        lines += _heading("Caveats")
        lines += [f"  - {c}" for c in rec.caveats]

    if rec.sources:
        lines += _heading("Sources")
        lines += [f"  - {s.title or s.url}: {s.url}" for s in rec.sources]

    lines += ["", FOOTER]
    return "\n".join(lines)


def safe_render(rec: Any) -> str:
    """Render, replacing any failure with a visible notice."""
    try:
        if not isinstance(rec, WineAnalysis):
            rec = WineAnalysis.model_validate(rec if isinstance(rec, dict) else {})
        return render(rec)
    except Exception as exc:
        return f"Render failed: {str(exc) or type(exc).__name__}"
