"""
session/responder.py -- Retry hints for transient storage failures.

before_send() runs at the moment a response body is final. A server error
whose textual body mentions the storage-failure marker gets a Retry-After
header; nothing else about the response changes. This layer never retries
anything itself -- the hint is for the caller.

The classification is a plain substring match, kept in one function
(is_transient_storage_failure) so a structured error code can replace it
without touching callers.

Layer rule: no imports from api/, auth/, or client/.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Union

logger = logging.getLogger("sessionguard.session")

STORAGE_FAILURE_MARKER = "database"
RETRY_AFTER_SECONDS = 5

_TEXTUAL_SUBTYPES = ("json", "xml", "javascript", "x-www-form-urlencoded")


def _is_textual_content_type(content_type: Optional[str]) -> bool:
    if not content_type:
        return False
    media_type = content_type.split(";", 1)[0].strip().lower()
    if media_type.startswith("text/"):
        return True
    return media_type.startswith("application/") and any(sub in media_type for sub in _TEXTUAL_SUBTYPES)


def _body_text(body: Union[str, bytes, None], content_type: Optional[str]) -> Optional[str]:
    """Return the body as text, or None when the body is not textual."""
    if isinstance(body, str):
        return body
    if isinstance(body, (bytes, bytearray)) and _is_textual_content_type(content_type):
        return bytes(body).decode("utf-8", errors="replace")
    return None


def is_transient_storage_failure(
    status_code: int,
    body: Union[str, bytes, None],
    content_type: Optional[str] = None,
    marker: str = STORAGE_FAILURE_MARKER,
) -> bool:
    """True iff status >= 500, the body is text, and the text contains marker."""
    if status_code < 500:
        return False
    text = _body_text(body, content_type)
    return text is not None and marker in text


def before_send(
    envelope: Any,
    retry_after: int = RETRY_AFTER_SECONDS,
    marker: str = STORAGE_FAILURE_MARKER,
) -> Any:
    """Attach Retry-After to a classified envelope and return it.

    Status and body are passed through untouched. If classification fails for
    any reason the envelope goes out exactly as the handler built it.
    """
    try:
        content_type = envelope.headers.get("content-type")
        if is_transient_storage_failure(envelope.status_code, envelope.body, content_type, marker):
            envelope.headers["Retry-After"] = str(retry_after)
            logger.info("Transient storage failure (%d) -- Retry-After %ds", envelope.status_code, retry_after)
    except Exception:
        logger.warning("Retry hint classification failed; sending response unmodified", exc_info=True)
    return envelope
