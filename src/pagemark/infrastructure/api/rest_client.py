from __future__ import annotations

import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from typing import Any

from pagemark.core.errors import AnnotationNotFoundError, StoreUnavailableError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


class JsonApiClient:
    """
    Minimal JSON-over-HTTP client for the review backend.

    Responses use the envelope ``{"success": bool, "data": ..., "error":
    {"message": ...}}``; ``request`` returns the ``data`` object. A 404 becomes
    ``AnnotationNotFoundError``; every other transport or HTTP failure becomes
    ``StoreUnavailableError``.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.headers = dict(headers or {})

    def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, object] | None = None,
        body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        if params:
            query = urllib.parse.urlencode({k: v for k, v in params.items() if v is not None})
            url = f"{url}?{query}"

        data = json.dumps(body).encode("utf-8") if body is not None else None
        headers = {"Accept": "application/json", **self.headers}
        if data is not None:
            headers["Content-Type"] = "application/json"

        request = urllib.request.Request(url, data=data, headers=headers, method=method)
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                raw = response.read()
        except urllib.error.HTTPError as exc:
            message = _error_message(exc)
            if exc.code == 404:
                raise AnnotationNotFoundError(message) from exc
            logger.warning("%s %s failed with HTTP %s: %s", method, path, exc.code, message)
            raise StoreUnavailableError(f"HTTP {exc.code}: {message}") from exc
        except (urllib.error.URLError, TimeoutError, OSError) as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise StoreUnavailableError(f"Review backend unreachable: {exc}") from exc

        if not raw:
            raise StoreUnavailableError(f"Review backend returned an empty response for {path}")
        try:
            envelope = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise StoreUnavailableError(f"Review backend returned invalid JSON for {path}") from exc
        if not isinstance(envelope, dict):
            raise StoreUnavailableError(f"Review backend returned a non-object response for {path}")
        if envelope.get("success") is False:
            raise StoreUnavailableError(_envelope_message(envelope) or f"Request failed: {path}")
        data = envelope.get("data", envelope)
        if not isinstance(data, dict):
            raise StoreUnavailableError(f"Review backend returned no data object for {path}")
        return data


def _envelope_message(envelope: dict[str, Any]) -> str | None:
    error = envelope.get("error")
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    detail = envelope.get("detail")
    if detail:
        return str(detail)
    return None


def _error_message(exc: urllib.error.HTTPError) -> str:
    try:
        raw = exc.read()
        envelope = json.loads(raw.decode("utf-8")) if raw else {}
    except (UnicodeDecodeError, json.JSONDecodeError, OSError):
        envelope = {}
    if isinstance(envelope, dict):
        message = _envelope_message(envelope)
        if message:
            return message
    return str(exc.reason)
