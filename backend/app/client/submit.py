from __future__ import annotations

import io
import mimetypes
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import httpx
from PIL import Image, UnidentifiedImageError

from app.models.wine import WineAnalysis

DEFAULT_API_URL = "http://localhost:8000"

# Two model calls plus one search call, run back to back.
REQUEST_TIMEOUT_SECONDS = 180.0


class SubmissionError(Exception):
    """The analyze call failed; carries whatever the server told us."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        upstream_status: Optional[int] = None,
        raw: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.upstream_status = upstream_status
        self.raw = raw


@dataclass(frozen=True)
class SelectedImage:
    path: Path
    mime_type: str
    data: bytes


def api_url() -> str:
    return os.getenv("WINE_LABEL_API_URL", DEFAULT_API_URL).strip().rstrip("/") or DEFAULT_API_URL


def select_image(path: Union[str, os.PathLike]) -> Optional[SelectedImage]:
    """Pick one image file; returns None when the path is not an image file."""
    p = Path(path)
    if not p.is_file():
        return None
    mime, _ = mimetypes.guess_type(p.name)
    if not mime or not mime.startswith("image/"):
        return None
    return SelectedImage(path=p, mime_type=mime, data=p.read_bytes())


def preview(img: SelectedImage) -> str:
    """One-line local preview of the selected file."""
    size_kb = len(img.data) / 1024
    try:
        with Image.open(io.BytesIO(img.data)) as im:
            dims = f"{im.width}x{im.height}px"
    except (UnidentifiedImageError, OSError):
        dims = "unreadable image"
    return f"{img.path.name} ({img.mime_type}, {dims}, {size_kb:.0f} KB)"


def _error_from_response(resp: httpx.Response) -> SubmissionError:
    try:
        body = resp.json()
    except ValueError:
        body = None

    if isinstance(body, dict) and isinstance(body.get("error"), str):
        message = body["error"]
    else:
        message = f"Request failed ({resp.status_code})"

    upstream = body.get("upstreamStatus") if isinstance(body, dict) else None
    raw = body.get("raw") if isinstance(body, dict) else None
    return SubmissionError(
        message,
        status_code=resp.status_code,
        upstream_status=upstream if isinstance(upstream, int) else None,
        raw=raw if isinstance(raw, str) else None,
    )


def submit(
    img: SelectedImage,
    base_url: Optional[str] = None,
    *,
    transport: Optional[httpx.BaseTransport] = None,
) -> WineAnalysis:
    """POST the image to /api/analyze and parse the returned record."""

    url = f"{(base_url or api_url()).rstrip('/')}/api/analyze"
    files = {"image": (img.path.name, img.data, img.mime_type)}

    try:
        with httpx.Client(timeout=REQUEST_TIMEOUT_SECONDS, transport=transport) as client:
            resp = client.post(url, files=files)
    except httpx.HTTPError as exc:
        raise SubmissionError(str(exc) or type(exc).__name__) from exc

    if resp.status_code >= 400:
        raise _error_from_response(resp)

    try:
        body = resp.json()
    except ValueError as exc:
        raise SubmissionError("Server returned non-JSON", status_code=resp.status_code) from exc

    data = body.get("data") if isinstance(body, dict) else None
    # Legacy shapes (e.g. grapes as plain strings) are upconverted here.
    return WineAnalysis.model_validate(data if isinstance(data, dict) else {})
