"""inat-phylo - iNaturalist observations drawn on the Open Tree of Life.

Architecture::

    datasources/   External APIs (iNaturalist observations, Open Tree TNRS + synthesis tree)
    reference/     Static domain tables (iconic taxon -> TNRS context)
    analysis/      Match filtering and OTT id selection
    tree.py        Newick persistence and unified node indexing
    renderers/     Circular tree layout and matplotlib rendering
    flows/         Prefect orchestration (build-tree flow)
    services/      Shared utilities (HTTP client with retry)

Data flow: datasources/inaturalist -> reference (contexts) -> datasources/opentree (TNRS)
-> analysis -> datasources/opentree (induced subtree) -> tree.py -> renderers
"""

__version__ = "0.1.0"

from inat_phylo.config import Settings, get_settings
from inat_phylo.errors import InvalidArgument, ServiceUnavailable

__all__ = ["InvalidArgument", "ServiceUnavailable", "Settings", "__version__", "get_settings"]
