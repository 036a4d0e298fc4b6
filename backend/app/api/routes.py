from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, File, UploadFile
from fastapi.responses import JSONResponse

from app.errors import AnalysisError
from app.models.wine import AnalyzeEnvelope
from app.services.gemini import upstream_status
from app.services.pipeline import analyze

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/analyze", response_model=AnalyzeEnvelope)
async def analyze_label(image: Optional[UploadFile] = File(None)):
    try:
        data = await image.read() if image is not None else b""
        record = await analyze(data, image.content_type if image is not None else None)
        return JSONResponse({"ok": True, "data": record.to_json_dict()})
    except AnalysisError as exc:
        if exc.status_code >= 500:
            logger.error("analyze failed: %s", exc.message)
        return JSONResponse(exc.to_body(), status_code=exc.status_code)
    except Exception as exc:
        logger.exception("analyze crashed")
        body: dict = {"error": str(exc) or "Unexpected error"}
        status = upstream_status(exc)
        if status is not None:
            body["upstreamStatus"] = status
        return JSONResponse(body, status_code=500)
