"""Choose which TNRS matches become tips of the tree.

A name is kept when at least one candidate scores strictly above the
threshold and is present in the synthetic tree. Everything else is dropped
without error; the only trace is the gap between submitted and resolved
counts in ``ResolutionSummary``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from inat_phylo.schemas import NameResolution

DEFAULT_MIN_SCORE = 0.9


@dataclass
class ResolvedTaxon:
    """A searched name accepted onto an OTT taxon."""

    search_name: str
    context: str
    ott_id: int
    unique_name: str
    score: float


@dataclass
class ResolutionSummary:
    """Counts of names sent to TNRS and names that survived filtering."""

    submitted: int
    resolved: int

    @property
    def dropped(self) -> int:
        return self.submitted - self.resolved


def select_matches(
    resolutions: Iterable[NameResolution],
    min_score: float = DEFAULT_MIN_SCORE,
) -> list[ResolvedTaxon]:
    """Best qualifying candidate per name (highest score, service order on ties)."""
    accepted: list[ResolvedTaxon] = []
    for resolution in resolutions:
        candidates = [m for m in resolution.matches if m.score > min_score and m.in_synth_tree]
        if not candidates:
            continue
        best = max(candidates, key=lambda m: m.score)
        accepted.append(
            ResolvedTaxon(
                search_name=resolution.name,
                context=resolution.context,
                ott_id=best.ott_id,
                unique_name=best.unique_name,
                score=best.score,
            )
        )
    return accepted


def unique_ott_ids(resolved: Iterable[ResolvedTaxon]) -> list[int]:
    """OTT ids in first-seen order (synonyms can map several names to one id)."""
    return list(dict.fromkeys(r.ott_id for r in resolved))
