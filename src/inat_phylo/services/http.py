"""
HTTP sessions for the iNaturalist and Open Tree clients.

Both APIs throttle and occasionally time out under load. Sessions built here
retry 429/502/503/504 responses and dropped connections with exponential
backoff, send an identifying User-Agent, and fall back to a default timeout
when the caller doesn't pass one.

Usage::

    from inat_phylo.services.http import QUERY_POST_RETRY, create_session

    session = create_session(retry=QUERY_POST_RETRY)
    resp = session.post("https://api.opentreeoflife.org/v3/tnrs/match_names", json={...})
    resp.raise_for_status()
"""

from __future__ import annotations

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from inat_phylo import __version__

TRANSIENT_STATUSES = (429, 502, 503, 504)

#: iNaturalist: only idempotent reads are retried.
DEFAULT_RETRY = Retry(
    total=4,
    backoff_factor=2,  # waits of 0, 2, 4, 8 s
    status_forcelist=TRANSIENT_STATUSES,
    allowed_methods=["GET", "HEAD", "OPTIONS"],
    raise_on_status=False,  # callers use raise_for_status()
)

#: Open Tree exposes its queries as POST, but they are side-effect free.
QUERY_POST_RETRY = Retry(
    total=4,
    backoff_factor=2,
    status_forcelist=TRANSIENT_STATUSES,
    allowed_methods=["GET", "POST"],
    raise_on_status=False,
)

DEFAULT_TIMEOUT = 30  # seconds

USER_AGENT = f"inat-phylo/{__version__} (python-requests)"


def create_session(
    retry: Retry | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> requests.Session:
    """
    New session with a retrying adapter on http and https.

    Args:
        retry: Retry policy, ``DEFAULT_RETRY`` if omitted.
        timeout: Used for any request sent without an explicit timeout.
    """
    session = requests.Session()
    adapter = HTTPAdapter(max_retries=retry or DEFAULT_RETRY)
    for scheme in ("https://", "http://"):
        session.mount(scheme, adapter)
    session.headers["User-Agent"] = USER_AGENT

    send = session.send

    def send_with_default_timeout(
        request: requests.PreparedRequest, **kwargs: object
    ) -> requests.Response:
        # Session.request always passes timeout, as None when the caller gave none.
        if kwargs.get("timeout") is None:
            kwargs["timeout"] = timeout
        return send(request, **kwargs)  # type: ignore[arg-type]

    session.send = send_with_default_timeout  # type: ignore[method-assign]
    return session
