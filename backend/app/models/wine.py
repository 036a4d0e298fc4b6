from __future__ import annotations

import math
import re
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Numbers the model sometimes returns as text: "13.5%", "£12", "12,50", "£1,250".
# A comma is a decimal separator only when one or two digits follow it;
# otherwise it groups thousands.
NUMBER_RE = re.compile(r"(?P<int>-?(?:\d{1,3}(?:,\d{3})+(?!\d)|\d+))(?P<frac>\.\d+|,\d{1,2}(?!\d))?")

CONFIDENCE_LEVELS = {"low", "medium", "high"}


def _to_str(val: Any) -> Optional[str]:
    if val is None:
        return None
    if isinstance(val, str):
        return val
    if isinstance(val, (int, float)) and not isinstance(val, bool):
        return str(val)
    return None


def _parse_number(text: str) -> Optional[float]:
    m = NUMBER_RE.search(text)
    if not m:
        return None
    frac = (m.group("frac") or "").replace(",", ".")
    return float(m.group("int").replace(",", "") + frac)


def _to_number(val: Any) -> Optional[float]:
    if val is None or isinstance(val, bool):
        return None
    try:
        if isinstance(val, (int, float)):
            num: Optional[float] = float(val)
        elif isinstance(val, str):
            num = _parse_number(val)
        else:
            return None
    except OverflowError:
        return None
    # NaN/Infinity cannot be serialized back to JSON.
    if num is None or not math.isfinite(num):
        return None
    return num


def _to_str_list(val: Any) -> list[str]:
    if val is None:
        return []
    if isinstance(val, str):
        return [val] if val.strip() else []
    if isinstance(val, (list, tuple)):
        return [s for s in (_to_str(v) for v in val) if s]
    return []


def _to_section(val: Any) -> Any:
    # Anything that is not an object becomes an empty section.
    return val if isinstance(val, (dict, BaseModel)) else {}


class _Section(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class RecognizedLabel(_Section):
    producer: Optional[str] = None
    wine: Optional[str] = None
    appellation: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None
    vintage: Optional[Union[int, str]] = None

    @field_validator("producer", "wine", "appellation", "region", "country", mode="before")
    @classmethod
    def _text(cls, v: Any) -> Optional[str]:
        return _to_str(v)

    @field_validator("vintage", mode="before")
    @classmethod
    def _vintage(cls, v: Any) -> Optional[Union[int, str]]:
        if isinstance(v, bool):
            return None
        if isinstance(v, float) and v.is_integer():
            return int(v)
        if isinstance(v, (int, str)):
            return v
        return None

    def identifying_fields(self) -> list[str]:
        """Non-blank identifying values, in query order."""
        vals = [self.producer, self.wine, self.appellation, self.region, self.country]
        out = [v.strip() for v in vals if isinstance(v, str) and v.strip()]
        if self.vintage is not None and str(self.vintage).strip():
            out.append(str(self.vintage).strip())
        return out


class GrapePart(_Section):
    variety: str = ""
    percent: Optional[float] = None

    @field_validator("variety", mode="before")
    @classmethod
    def _variety(cls, v: Any) -> str:
        return _to_str(v) or ""

    @field_validator("percent", mode="before")
    @classmethod
    def _percent(cls, v: Any) -> Optional[float]:
        return _to_number(v)


class WsetLevel2(_Section):
    sweetness: Optional[str] = None
    acidity: Optional[str] = None
    tannin: Optional[str] = None
    body: Optional[str] = None
    alcohol: Optional[str] = None
    finishLength: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def _text(cls, v: Any) -> Optional[str]:
        return _to_str(v)


class TastingNotes(_Section):
    nose: list[str] = Field(default_factory=list)
    palate: list[str] = Field(default_factory=list)
    finish: Optional[str] = None
    wsetLevel2: WsetLevel2 = Field(default_factory=WsetLevel2)

    @field_validator("nose", "palate", mode="before")
    @classmethod
    def _lists(cls, v: Any) -> list[str]:
        return _to_str_list(v)

    @field_validator("finish", mode="before")
    @classmethod
    def _finish(cls, v: Any) -> Optional[str]:
        return _to_str(v)

    @field_validator("wsetLevel2", mode="before")
    @classmethod
    def _wset(cls, v: Any) -> Any:
        return _to_section(v)


class DrinkWindow(_Section):
    drinkNow: Optional[bool] = None
    from_: Optional[str] = Field(default=None, alias="from")
    to: Optional[str] = None
    peakFrom: Optional[str] = None
    peakTo: Optional[str] = None
    decant: Optional[str] = None

    @field_validator("drinkNow", mode="before")
    @classmethod
    def _drink_now(cls, v: Any) -> Optional[bool]:
        if isinstance(v, bool):
            return v
        if isinstance(v, str) and v.strip().lower() in {"true", "yes"}:
            return True
        if isinstance(v, str) and v.strip().lower() in {"false", "no"}:
            return False
        return None

    @field_validator("from_", "to", "peakFrom", "peakTo", "decant", mode="before")
    @classmethod
    def _text(cls, v: Any) -> Optional[str]:
        return _to_str(v)


class PriceEstimate(_Section):
    currency: Optional[str] = None
    low: Optional[float] = None
    high: Optional[float] = None
    confidence: Optional[Literal["low", "medium", "high"]] = None
    note: Optional[str] = None

    @field_validator("currency", "note", mode="before")
    @classmethod
    def _text(cls, v: Any) -> Optional[str]:
        return _to_str(v)

    @field_validator("low", "high", mode="before")
    @classmethod
    def _amount(cls, v: Any) -> Optional[float]:
        return _to_number(v)

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, v: Any) -> Optional[str]:
        if isinstance(v, str) and v.strip().lower() in CONFIDENCE_LEVELS:
            return v.strip().lower()
        return None


class AromasAndFlavours(_Section):
    primary: list[str] = Field(default_factory=list)
    secondary: list[str] = Field(default_factory=list)
    tertiary: list[str] = Field(default_factory=list)

    @field_validator("*", mode="before")
    @classmethod
    def _lists(cls, v: Any) -> list[str]:
        return _to_str_list(v)


class Source(_Section):
    title: str = ""
    url: str = ""

    @field_validator("title", "url", mode="before")
    @classmethod
    def _text(cls, v: Any) -> str:
        return _to_str(v) or ""


class EvidenceItem(_Section):
    """One normalized web-search result used to ground estimates."""

    title: str = ""
    url: str = ""
    snippet: str = ""


class WineAnalysis(_Section):
    recognizedLabel: RecognizedLabel = Field(default_factory=RecognizedLabel)

    # Accepts the older list[str] shape; upconverted on parse.
    grapes: list[GrapePart] = Field(default_factory=list)

    abv: Optional[float] = None
    tastingNotes: TastingNotes = Field(default_factory=TastingNotes)
    drinkWindow: DrinkWindow = Field(default_factory=DrinkWindow)
    priceEstimate: PriceEstimate = Field(default_factory=PriceEstimate)
    aromasAndFlavours: AromasAndFlavours = Field(default_factory=AromasAndFlavours)
    caveats: list[str] = Field(default_factory=list)

    # Only populated when grounding ran.
    sources: list[Source] = Field(default_factory=list)

    @field_validator(
        "recognizedLabel", "tastingNotes", "drinkWindow", "priceEstimate", "aromasAndFlavours", mode="before"
    )
    @classmethod
    def _sections(cls, v: Any) -> Any:
        return _to_section(v)

    @field_validator("grapes", mode="before")
    @classmethod
    def _grapes(cls, v: Any) -> list[Any]:
        if not isinstance(v, (list, tuple)):
            return []
        out: list[Any] = []
        for g in v:
            if isinstance(g, str):
                out.append({"variety": g, "percent": None})
            elif isinstance(g, (dict, GrapePart)):
                out.append(g)
        return out

    @field_validator("abv", mode="before")
    @classmethod
    def _abv(cls, v: Any) -> Optional[float]:
        return _to_number(v)

    @field_validator("caveats", mode="before")
    @classmethod
    def _caveats(cls, v: Any) -> list[str]:
        return _to_str_list(v)

    @field_validator("sources", mode="before")
    @classmethod
    def _sources(cls, v: Any) -> list[Any]:
        if not isinstance(v, (list, tuple)):
            return []
        return [s for s in v if isinstance(s, (dict, Source))]

    def to_json_dict(self) -> dict:
        return self.model_dump(by_alias=True)


class AnalyzeEnvelope(BaseModel):
    ok: bool = True
    data: WineAnalysis
