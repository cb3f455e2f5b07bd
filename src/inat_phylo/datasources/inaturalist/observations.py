"""Observation retrieval for a user and/or project, flattened to taxon records."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import partial
from typing import TYPE_CHECKING, Any, Literal

from inat_phylo.datasources.inaturalist import client
from inat_phylo.datasources.inaturalist.pagination import RequestCursor, iter_pages
from inat_phylo.errors import InvalidArgument, ServiceUnavailable

if TYPE_CHECKING:
    from collections.abc import Iterable

    from inat_phylo.datasources.inaturalist.pagination import Page

logger = logging.getLogger(__name__)

UNKNOWN_ICONIC_TAXON = "unknown"

PageErrorPolicy = Literal["ignore", "warn"]

# =============================================================================
# Data Model
# =============================================================================


@dataclass
class ObservationRecord:
    """The identified taxon of one observation."""

    name: str
    taxon_id: int
    iconic_taxon_name: str = UNKNOWN_ICONIC_TAXON
    iconic_taxon_id: int | None = None


# =============================================================================
# Parsing
# =============================================================================


def parse_observation(obs: dict[str, Any]) -> ObservationRecord | None:
    """
    Map one ``/observations`` result onto an ObservationRecord.

    Schema read::

        {
          "taxon": {
            "name": str,               -> name
            "id": int,                 -> taxon_id
            "iconic_taxon_name": str,  -> iconic_taxon_name ("unknown" if null)
            "iconic_taxon_id": int     -> iconic_taxon_id
          },
          ...
        }

    Returns None for observations without an identified taxon.
    """
    taxon = obs.get("taxon")
    if not isinstance(taxon, dict):
        return None
    name = taxon.get("name")
    taxon_id = taxon.get("id")
    if not name or taxon_id is None:
        return None

    iconic_id = taxon.get("iconic_taxon_id")
    return ObservationRecord(
        name=str(name),
        taxon_id=int(taxon_id),
        iconic_taxon_name=taxon.get("iconic_taxon_name") or UNKNOWN_ICONIC_TAXON,
        iconic_taxon_id=int(iconic_id) if iconic_id is not None else None,
    )


def flatten_pages(pages: Iterable[Page], limit: int | None = None) -> list[ObservationRecord]:
    """Concatenate page results in order, keeping at most ``limit`` records."""
    records: list[ObservationRecord] = []
    for page in pages:
        for obs in page.results:
            parsed = parse_observation(obs)
            if parsed is None:
                continue
            records.append(parsed)
            if limit is not None and len(records) >= limit:
                return records
    return records


# =============================================================================
# API Fetching
# =============================================================================


def _is_filter(value: object) -> bool:
    return isinstance(value, str) and bool(value.strip())


def build_query(user_id: str | None, project_id: str | None, per_page: int) -> dict[str, Any]:
    """Base query parameters, newest observations first. ``page`` is added per request."""
    params: dict[str, Any] = {
        "per_page": per_page,
        "order": "desc",
        "order_by": "created_at",
    }
    if _is_filter(user_id):
        params["user_id"] = user_id
    if _is_filter(project_id):
        params["project_id"] = project_id
    return params


def _fetch_page(
    number: int, params: dict[str, Any], api_base: str, timeout: float
) -> dict[str, Any]:
    return client.get_observations({**params, "page": number}, api_base=api_base, timeout=timeout)


def fetch_observations(
    user_id: str | None = None,
    project_id: str | None = None,
    iconic_taxon: str | None = None,
    *,
    per_page: int = client.MAX_PER_PAGE,
    max_requests: int = client.MAX_REQUESTS,
    requests_per_second: float = client.DEFAULT_REQUESTS_PER_SECOND,
    on_page_error: PageErrorPolicy = "ignore",
    strict: bool = True,
    limiter: client.RateLimiter | None = None,
    api_base: str = client.API_BASE,
    timeout: float = client.DEFAULT_TIMEOUT,
) -> list[ObservationRecord]:
    """
    Fetch the identified taxa of every observation visible for a user and/or project.

    Pages are requested sequentially, newest first, throttled to
    ``requests_per_second``, until every page reported by the first response
    has been requested or ``max_requests`` requests have been issued
    (200 x 50 = the 10k results iNaturalist recommends as a ceiling).

    Args:
        user_id: iNaturalist login or numeric user id.
        project_id: Project slug or numeric id.
        iconic_taxon: Reserved. Accepted but not applied to the query yet.
        per_page: Results per request (API max 200).
        max_requests: Hard cap on page requests.
        requests_per_second: Throttle ceiling; ignored when ``limiter`` is given.
        on_page_error: ``"ignore"`` logs dropped pages at debug level,
            ``"warn"`` at warning level.
        strict: Raise ServiceUnavailable when no page succeeds; otherwise
            return an empty list.
        limiter: Custom rate limiter.
        api_base: API root URL.
        timeout: Per-request timeout in seconds.

    Returns:
        One ObservationRecord per identified observation, not deduplicated.

    Raises:
        InvalidArgument: Neither ``user_id`` nor ``project_id`` is a non-empty string.
        ServiceUnavailable: ``strict`` and every page request failed.
    """
    if not (_is_filter(user_id) or _is_filter(project_id)):
        msg = "at least one of user_id or project_id needs to be specified (as a string)"
        raise InvalidArgument(msg)
    if on_page_error not in ("ignore", "warn"):
        msg = f"on_page_error must be 'ignore' or 'warn', got {on_page_error!r}"
        raise InvalidArgument(msg)
    if iconic_taxon is not None:
        logger.debug("iconic_taxon=%r is reserved and not applied to the query", iconic_taxon)

    log_level = logging.WARNING if on_page_error == "warn" else logging.DEBUG

    def _on_error(number: int, exc: Exception) -> None:
        logger.log(log_level, "Dropping observations page %d: %s", number, exc)

    params = build_query(user_id, project_id, per_page)
    cursor = RequestCursor(max_requests=max_requests)
    pages = list(
        iter_pages(
            partial(_fetch_page, params=params, api_base=api_base, timeout=timeout),
            per_page=per_page,
            cursor=cursor,
            limiter=limiter or client.RateLimiter.from_rate(requests_per_second),
            on_error=_on_error,
        )
    )

    if not pages:
        if strict:
            msg = f"iNaturalist returned no usable pages ({cursor.requests_issued} requests issued)"
            raise ServiceUnavailable(msg)
        return []

    records = flatten_pages(pages, limit=per_page * max_requests)
    logger.info(
        "Fetched %d observation records from %d/%d pages (%s)",
        len(records),
        len(pages),
        cursor.requests_issued,
        cursor.state,
    )
    return records
