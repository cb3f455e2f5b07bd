"""iNaturalist iconic taxon -> Open Tree TNRS context name.

TNRS uses a context to disambiguate homonyms across kingdoms (e.g. the
plant genus and the insect genus *Morus*). Context names must match the
service's list: https://api.opentreeoflife.org/v3/tnrs/contexts
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from inat_phylo.datasources.inaturalist import ObservationRecord

ALL_LIFE = "All life"

# Keys are iNaturalist ``iconic_taxon_name`` values.
ICONIC_TAXON_CONTEXTS: dict[str, str] = {
    "Animalia": "Animals",
    "Actinopterygii": "Vertebrates",
    "Amphibia": "Amphibians",
    "Aves": "Birds",
    "Mammalia": "Mammals",
    "Reptilia": "Tetrapods",  # no dedicated reptile context
    "Arachnida": "Arachnids",
    "Insecta": "Insects",
    "Mollusca": "Molluscs",
    "Plantae": "Land plants",
    "Fungi": "Fungi",
    "Chromista": "SAR group",
    "Protozoa": ALL_LIFE,
}


def assign_context(iconic_taxon_name: str | None) -> str:
    """TNRS context for an iconic taxon; unknown tags fall back to "All life"."""
    if not iconic_taxon_name:
        return ALL_LIFE
    return ICONIC_TAXON_CONTEXTS.get(iconic_taxon_name, ALL_LIFE)


def group_names_by_context(records: Iterable[ObservationRecord]) -> dict[str, list[str]]:
    """Unique taxon names per TNRS context, in first-seen order."""
    grouped: dict[str, list[str]] = {}
    seen: set[tuple[str, str]] = set()
    for record in records:
        context = assign_context(record.iconic_taxon_name)
        key = (context, record.name)
        if key in seen:
            continue
        seen.add(key)
        grouped.setdefault(context, []).append(record.name)
    return grouped
