"""Static taxonomic reference data.

Reference data that doesn't change with API calls: the mapping from
iNaturalist iconic taxa to Open Tree TNRS contexts.

Adding a new module:
1. Create ``reference/{name}.py`` with constants/dataclasses
2. Re-export from this ``__init__.py``
"""

from inat_phylo.reference.contexts import ALL_LIFE as ALL_LIFE
from inat_phylo.reference.contexts import ICONIC_TAXON_CONTEXTS as ICONIC_TAXON_CONTEXTS
from inat_phylo.reference.contexts import assign_context as assign_context
from inat_phylo.reference.contexts import group_names_by_context as group_names_by_context
