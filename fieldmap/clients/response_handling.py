"""Shared HTTP response helpers for the remote location services."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Type

import requests

from ..errors import ServiceResponseError, ServiceUnavailableError

RequestsJSONDecodeError: Type[Exception] = requests.exceptions.JSONDecodeError

LOGGER = logging.getLogger(__name__)

__all__ = [
    "fetch_json",
    "check_response_status",
    "extract_error",
]


def fetch_json(
    session: Any,
    url: str,
    *,
    params: Optional[Dict[str, Any]] = None,
    timeout: float,
    context: str,
) -> Any:
    """GET ``url`` and return the decoded JSON body.

    Raises:
        ServiceUnavailableError: On connection failures and timeouts.
        ServiceResponseError: On non-2xx statuses or undecodable bodies.
    """

    LOGGER.debug("%s GET %s params=%s", context, url, params)
    try:
        response = session.get(url, params=params, timeout=timeout)
    except requests.RequestException as exc:
        raise ServiceUnavailableError(f"{context} request failed: {exc}") from exc
    check_response_status(response, context)
    try:
        return response.json()
    except (ValueError, RequestsJSONDecodeError) as exc:
        raise ServiceResponseError(f"{context} returned invalid JSON") from exc


def check_response_status(response: requests.Response, context: str) -> None:
    """Raise :class:`ServiceResponseError` for any non-2xx status."""

    status = response.status_code
    if 200 <= status < 300:
        return
    detail = extract_error(response)
    message = f"{context} request failed (status {status})"
    if detail:
        message = f"{message} | {detail}"
    raise ServiceResponseError(message)


def extract_error(resp: Optional[requests.Response]) -> Optional[str]:
    """Return compact string with service error info if present."""

    if resp is None:
        return None
    data = _safe_json(resp)
    if data is None:
        return _extract_error_text(resp)
    if not isinstance(data, dict):
        return None
    parts = _collect_error_parts(data)
    return " | ".join(parts) if parts else None


def _safe_json(resp: requests.Response) -> Optional[Any]:
    try:
        return resp.json()
    except (ValueError, RequestsJSONDecodeError) as exc:
        LOGGER.debug(
            "Failed to decode JSON from %s: %s", getattr(resp, "url", "?"), exc
        )
        return None


def _extract_error_text(resp: requests.Response) -> Optional[str]:
    """Best-effort plain-text extraction when JSON parsing fails."""

    text = getattr(resp, "text", "")
    if not isinstance(text, str):
        return None
    trimmed = text.strip()
    if not trimmed:
        return None
    return (trimmed[:197] + "...") if len(trimmed) > 200 else trimmed


def _collect_error_parts(data: Dict[str, Any]) -> List[str]:
    # OpenRouteService: {"error": {"code": 2010, "message": "..."}}
    # Photon: {"message": "..."}
    parts: List[str] = []
    message = data.get("message")
    if message:
        parts.append(str(message))
    error = data.get("error")
    if isinstance(error, dict):
        if error.get("message"):
            parts.append(str(error["message"]))
        if error.get("code") is not None:
            parts.append(f"code:{error['code']}")
    elif error:
        parts.append(str(error))
    return parts
