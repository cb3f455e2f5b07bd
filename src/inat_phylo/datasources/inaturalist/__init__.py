"""iNaturalist observation data source.

Fetches every observation for a user and/or project and flattens it to the
identified taxon (name, id, iconic taxon).

Public API:
  - client: API constants, RateLimiter, get_observations
  - pagination: Page, RequestCursor, CursorState, iter_pages
  - observations: ObservationRecord, parse_observation, fetch_observations
"""

from inat_phylo.datasources.inaturalist.client import (
    MAX_PER_PAGE,
    MAX_REQUESTS,
    MAX_RESULTS,
    RateLimiter,
)
from inat_phylo.datasources.inaturalist.observations import (
    UNKNOWN_ICONIC_TAXON,
    ObservationRecord,
    fetch_observations,
    flatten_pages,
    parse_observation,
)
from inat_phylo.datasources.inaturalist.pagination import (
    CursorState,
    MalformedPageError,
    Page,
    RequestCursor,
    iter_pages,
)

__all__ = [
    "MAX_PER_PAGE",
    "MAX_REQUESTS",
    "MAX_RESULTS",
    "UNKNOWN_ICONIC_TAXON",
    "CursorState",
    "MalformedPageError",
    "ObservationRecord",
    "Page",
    "RateLimiter",
    "RequestCursor",
    "fetch_observations",
    "flatten_pages",
    "iter_pages",
    "parse_observation",
]
