"""Map failed submissions to short, actionable messages."""

from __future__ import annotations

import re
from enum import Enum
from typing import Optional

from app.client.submit import SubmissionError

QUOTA_RE = re.compile(r"\b429\b|quota|rate.?limit|resource.?exhausted", re.IGNORECASE)
AUTH_RE = re.compile(r"\b40[13]\b|unauthori[sz]ed|api.?key|permission.?denied", re.IGNORECASE)
NO_IMAGE_RE = re.compile(r"no image supplied", re.IGNORECASE)


class ErrorCategory(str, Enum):
    QUOTA = "quota"
    CREDENTIALS = "credentials"
    NO_IMAGE = "no_image"
    GENERIC = "generic"


MESSAGES = {
    ErrorCategory.QUOTA: (
        "You've used up the model provider's credits or hit a rate limit. "
        "Check the provider's billing and try again later."
    ),
    ErrorCategory.CREDENTIALS: (
        "API key problem. Check GEMINI_API_KEY in the server environment."
    ),
    ErrorCategory.NO_IMAGE: "Please upload a wine label image before analyzing.",
    ErrorCategory.GENERIC: "Something went wrong.",
}


def _from_status(status: Optional[int]) -> Optional[ErrorCategory]:
    if status == 429:
        return ErrorCategory.QUOTA
    if status in (401, 403):
        return ErrorCategory.CREDENTIALS
    return None


def classify_error(err: BaseException) -> ErrorCategory:
    """Structured status codes first, message text only as a last resort."""

    message = str(err)
    if isinstance(err, SubmissionError):
        message = err.message
        category = _from_status(err.upstream_status) or _from_status(err.status_code)
        if category is not None:
            return category
        if err.status_code == 400 and NO_IMAGE_RE.search(message):
            return ErrorCategory.NO_IMAGE

    if QUOTA_RE.search(message):
        return ErrorCategory.QUOTA
    if AUTH_RE.search(message):
        return ErrorCategory.CREDENTIALS
    if NO_IMAGE_RE.search(message):
        return ErrorCategory.NO_IMAGE
    return ErrorCategory.GENERIC


def user_message(err: BaseException) -> str:
    category = classify_error(err)
    if category is ErrorCategory.GENERIC:
        detail = err.message if isinstance(err, SubmissionError) else str(err)
        generic = MESSAGES[ErrorCategory.GENERIC]
        return f"{generic} ({detail})" if detail else generic
    return MESSAGES[category]
