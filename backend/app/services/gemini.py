from __future__ import annotations

import json
import logging
import os
import re
from typing import Any, Optional

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-1.5-flash"
DEFAULT_TEMPERATURE = 0.2


def _flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in {"1", "true", "yes", "on"}


def debug_enabled() -> bool:
    # Prompt and raw-output dumps (enable with GEMINI_DEBUG=1)
    return _flag("GEMINI_DEBUG")


def api_key() -> Optional[str]:
    return os.getenv("GEMINI_API_KEY", "").strip() or None


def model_name() -> str:
    return os.getenv("GEMINI_MODEL", DEFAULT_MODEL).strip() or DEFAULT_MODEL


def grounding_model_name() -> str:
    return os.getenv("GEMINI_GROUNDING_MODEL", "").strip() or model_name()


def temperature() -> float:
    try:
        return float(os.getenv("GEMINI_TEMPERATURE", str(DEFAULT_TEMPERATURE)).strip())
    except ValueError:
        return DEFAULT_TEMPERATURE


def _response_text(resp: object) -> str:
    """Best-effort extraction of full text from google-generativeai responses.

    `.text` raises ValueError when the candidate was blocked or is multi-part,
    so fall back to joining the candidate parts.
    """

    try:
        t = getattr(resp, "text", None)
        if isinstance(t, str) and t.strip():
            return t.strip()
    except ValueError:
        pass

    chunks: list[str] = []
    for cand in getattr(resp, "candidates", None) or []:
        content = getattr(cand, "content", None)
        for p in getattr(content, "parts", None) or []:
            pt = getattr(p, "text", None)
            if isinstance(pt, str) and pt:
                chunks.append(pt)
    return "".join(chunks).strip()


def strip_code_fences(text: str) -> str:
    """Remove a surrounding Markdown code fence while preserving inner content."""
    t = (text or "").strip()
    # ```json ... ``` or ``` ... ```
    t = re.sub(r"^```(?:json)?", "", t, flags=re.IGNORECASE)
    t = re.sub(r"```$", "", t)
    return t.strip()


def _reject_constant(name: str) -> Any:
    # NaN/Infinity are not JSON and cannot be sent back to the client.
    raise ValueError(f"non-finite number {name}")


def parse_json_object(text: str) -> Optional[dict]:
    """Parse model output into a JSON object, or None if it is not one."""
    t = strip_code_fences(text)
    try:
        val = json.loads(t, parse_constant=_reject_constant)
        return val if isinstance(val, dict) else None
    except ValueError:
        pass

    # Common model issue: a sentence before or after the object.
    start = t.find("{")
    end = t.rfind("}")
    if start == -1 or end <= start:
        return None
    try:
        val = json.loads(t[start : end + 1], parse_constant=_reject_constant)
        return val if isinstance(val, dict) else None
    except ValueError:
        return None


def upstream_status(exc: BaseException) -> Optional[int]:
    """HTTP status reported by the model provider for a failed call."""
    if not isinstance(exc, google_exceptions.GoogleAPICallError):
        return None
    code = exc.code
    status = int(code) if isinstance(code, int) else None
    # Gemini reports a bad key as 400 INVALID_ARGUMENT.
    if status == 400 and "API key" in (exc.message or ""):
        return 401
    return status


class GeminiClient:
    """Thin async wrapper around google-generativeai for JSON-returning prompts."""

    def __init__(self, key: str):
        genai.configure(api_key=key)

    async def generate(
        self,
        *,
        system: str,
        parts: list[Any],
        model: str,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> str:
        m = genai.GenerativeModel(
            model,
            system_instruction=system,
            generation_config={
                "temperature": temperature,
                # Hint to return JSON only (ignored by models that do not support it).
                "response_mime_type": "application/json",
            },
        )

        if debug_enabled():
            text_parts = [p for p in parts if isinstance(p, str)]
            logger.debug("[gemini] model=%s prompt=%s", model, " ".join(text_parts))

        resp = await m.generate_content_async(parts)
        text = _response_text(resp)

        if debug_enabled():
            logger.debug("[gemini] raw len=%d preview=%s", len(text), text[:500])
        return text


def image_part(image_bytes: bytes, mime_type: Optional[str]) -> dict:
    """Inline image part; the SDK base64-encodes `data` on the wire."""
    # Uploads without a usable type (e.g. application/octet-stream) are sent as JPEG.
    if not mime_type or not mime_type.lower().startswith("image/"):
        mime_type = "image/jpeg"
    return {"mime_type": mime_type, "data": image_bytes}
