"""Open Tree of Life API client.

All queries are JSON POSTs against the v3 API.

API docs: https://github.com/OpenTreeOfLife/germinator/wiki/Open-Tree-of-Life-Web-APIs
"""

from __future__ import annotations

from typing import Any

import requests

from inat_phylo.errors import RequestRejected, ServiceUnavailable
from inat_phylo.services.http import DEFAULT_TIMEOUT, QUERY_POST_RETRY, create_session

API_BASE = "https://api.opentreeoflife.org/v3"

session = create_session(retry=QUERY_POST_RETRY)


def _error_body(resp: requests.Response | None) -> dict[str, Any] | None:
    if resp is None or not 400 <= resp.status_code < 500:
        return None
    try:
        body = resp.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def post(
    endpoint: str,
    payload: dict[str, Any],
    *,
    api_base: str = API_BASE,
    timeout: float = DEFAULT_TIMEOUT,
) -> dict[str, Any]:
    """POST a JSON query and return the decoded body.

    Raises:
        RequestRejected: 4xx response with a JSON body (kept on the exception
            so callers can tell which inputs the service refused).
        ServiceUnavailable: Transport failure, other HTTP errors or a non-JSON body.
    """
    url = f"{api_base}/{endpoint}"
    try:
        resp = session.post(url, json=payload, timeout=timeout)
        resp.raise_for_status()
        data: dict[str, Any] = resp.json()
    except requests.HTTPError as e:
        msg = f"Open Tree request to {endpoint} failed: {e}"
        error_resp = e.response
        body = _error_body(error_resp)
        if error_resp is not None and body is not None:
            raise RequestRejected(msg, error_resp.status_code, body) from e
        raise ServiceUnavailable(msg) from e
    except requests.RequestException as e:
        msg = f"Open Tree request to {endpoint} failed: {e}"
        raise ServiceUnavailable(msg) from e
    return data
