"""Request-fatal errors raised by the analysis pipeline."""

from __future__ import annotations

from typing import Optional


class AnalysisError(Exception):
    """Base error; carries the HTTP status the route should answer with."""

    def __init__(self, message: str, status_code: int = 500, raw: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.raw = raw

    def to_body(self) -> dict:
        body: dict = {"error": self.message}
        if self.raw is not None:
            body["raw"] = self.raw
        return body


class NoImageError(AnalysisError):
    def __init__(self, message: str = "No image supplied"):
        super().__init__(message, status_code=400)


class ConfigurationError(AnalysisError):
    def __init__(self, variable: str):
        super().__init__(f"Server misconfiguration: {variable} is not set", status_code=500)
        self.variable = variable


class ModelOutputError(AnalysisError):
    """Stage 1 returned text that is not a JSON object."""

    def __init__(self, raw: str):
        super().__init__("Model returned non-JSON", status_code=502, raw=raw)
