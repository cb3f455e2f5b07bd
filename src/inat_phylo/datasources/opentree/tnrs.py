"""Taxonomic name resolution against the Open Tree Taxonomy (OTT)."""

from __future__ import annotations

from typing import Any

from inat_phylo.datasources.opentree import client
from inat_phylo.reference.contexts import ALL_LIFE
from inat_phylo.schemas import NameResolution, TaxonMatch

MAX_NAMES_PER_REQUEST = 1000


def _parse_results(payload: dict[str, Any], context: str) -> dict[str, NameResolution]:
    parsed: dict[str, NameResolution] = {}
    for result in payload.get("results", []):
        name = result.get("name", "")
        matches = [TaxonMatch.from_api(m) for m in result.get("matches", [])]
        parsed[name] = NameResolution(name=name, context=context, matches=matches)
    return parsed


def match_names(
    names: list[str],
    context_name: str = ALL_LIFE,
    *,
    approximate: bool = False,
    api_base: str = client.API_BASE,
    timeout: float = client.DEFAULT_TIMEOUT,
) -> list[NameResolution]:
    """
    Match names against OTT within one TNRS context.

    Args:
        names: Scientific names to look up.
        context_name: TNRS context (see ``reference.contexts``).
        approximate: Allow fuzzy matching (slower, lower scores).
        api_base: API root URL.
        timeout: Per-request timeout in seconds.

    Returns:
        One NameResolution per input name, in input order. Names the service
        did not return come back with no matches.

    Raises:
        ServiceUnavailable: The service could not be reached.
    """
    resolved: dict[str, NameResolution] = {}
    for start in range(0, len(names), MAX_NAMES_PER_REQUEST):
        batch = names[start : start + MAX_NAMES_PER_REQUEST]
        payload = client.post(
            "tnrs/match_names",
            {
                "names": batch,
                "context_name": context_name,
                "do_approximate_matching": approximate,
            },
            api_base=api_base,
            timeout=timeout,
        )
        resolved.update(_parse_results(payload, context_name))

    return [
        resolved.get(name, NameResolution(name=name, context=context_name)) for name in names
    ]


class OpenTreeNameResolver:
    """Name resolver backed by the live TNRS service."""

    def __init__(
        self,
        api_base: str = client.API_BASE,
        *,
        approximate: bool = False,
        timeout: float = client.DEFAULT_TIMEOUT,
    ) -> None:
        self.api_base = api_base
        self.approximate = approximate
        self.timeout = timeout

    def resolve(self, names: list[str], context: str) -> list[NameResolution]:
        return match_names(
            names,
            context,
            approximate=self.approximate,
            api_base=self.api_base,
            timeout=self.timeout,
        )
