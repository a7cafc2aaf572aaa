from __future__ import annotations

import logging
from typing import Any, Dict

import requests

from repoprompt.domain.constants import APP_NAME, CURRENT_CONFIG_VERSION
from repoprompt.domain.errors import NetworkFailure

logger = logging.getLogger(__name__)

USER_AGENT = f"{APP_NAME}-Client/{CURRENT_CONFIG_VERSION}"
DEFAULT_TIMEOUT = 10


def request_json(method: str, url: str, timeout: float = DEFAULT_TIMEOUT, **kwargs: Any) -> Dict[str, Any]:
    """
    Perform an HTTP call and decode a JSON object body.

    Error statuses are not raised on their own: the workspace server reports
    failures inside the JSON body ({"success": false, "error": ...}).

    Raises:
        NetworkFailure: On timeout, transport error or a non-object body.
    """
    headers = kwargs.pop("headers", None) or {}
    headers.setdefault("User-Agent", USER_AGENT)

    try:
        response = requests.request(method, url, headers=headers, timeout=timeout, **kwargs)
    except requests.exceptions.Timeout as e:
        logger.warning(f"Network: {method} {url} timed out after {timeout}s.")
        raise NetworkFailure(f"Request timed out: {url}") from e
    except requests.exceptions.RequestException as e:
        logger.error(f"Network: Communication error on {method} {url}: {e}")
        raise NetworkFailure(f"Request failed: {e}") from e

    try:
        data = response.json()
    except ValueError as e:
        raise NetworkFailure(f"Invalid JSON from {url} (HTTP {response.status_code}).") from e

    if not isinstance(data, dict):
        raise NetworkFailure(f"Malformed response from {url}: root is not an object.")
    return data
