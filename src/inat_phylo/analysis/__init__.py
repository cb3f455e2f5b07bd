"""Joins between datasources.

Dependency rule: analysis/ imports datasource *models* only. It never
fetches data, touches the filesystem or renders anything.

Modules:
  - resolution: TNRS candidates -> accepted OTT ids, plus loss accounting
"""

from inat_phylo.analysis.resolution import (
    DEFAULT_MIN_SCORE,
    ResolutionSummary,
    ResolvedTaxon,
    select_matches,
    unique_ott_ids,
)

__all__ = [
    "DEFAULT_MIN_SCORE",
    "ResolutionSummary",
    "ResolvedTaxon",
    "select_matches",
    "unique_ott_ids",
]
