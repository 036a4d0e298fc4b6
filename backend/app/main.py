from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import router as api_router
from app.errors import NoImageError

# Load .env if present (no-op if missing). Credentials are still read per request.
load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Wine Label Scanner", version="0.1.0")

# Allow local dev frontends.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api")


@app.exception_handler(RequestValidationError)
async def _bad_upload(request: Request, exc: RequestValidationError) -> JSONResponse:
    # A non-file `image` field or a non-multipart body is still "no image".
    if request.url.path.endswith("/analyze"):
        err = NoImageError()
        return JSONResponse(err.to_body(), status_code=err.status_code)
    return JSONResponse({"error": "Invalid request", "detail": jsonable_encoder(exc.errors())}, status_code=422)


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}
