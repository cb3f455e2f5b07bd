"""Open Tree of Life data source.

Resolves names to Open Tree Taxonomy (OTT) ids and extracts induced
subtrees of the synthetic tree.

Public API:
  - client: API_BASE, post
  - tnrs: match_names, OpenTreeNameResolver
  - subtree: InducedSubtree, induced_subtree, unknown_ott_ids, OpenTreeSubtreeProvider
"""

from inat_phylo.datasources.opentree.client import API_BASE
from inat_phylo.datasources.opentree.subtree import (
    LABEL_FORMATS,
    MIN_OTT_IDS,
    InducedSubtree,
    OpenTreeSubtreeProvider,
    induced_subtree,
    unknown_ott_ids,
)
from inat_phylo.datasources.opentree.tnrs import (
    MAX_NAMES_PER_REQUEST,
    OpenTreeNameResolver,
    match_names,
)

__all__ = [
    "API_BASE",
    "LABEL_FORMATS",
    "MAX_NAMES_PER_REQUEST",
    "MIN_OTT_IDS",
    "InducedSubtree",
    "OpenTreeNameResolver",
    "OpenTreeSubtreeProvider",
    "induced_subtree",
    "match_names",
    "unknown_ott_ids",
]
