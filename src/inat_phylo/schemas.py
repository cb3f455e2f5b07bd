"""
Response models for the Open Tree of Life APIs.

Pydantic models for the parts of the TNRS payload we rely on. Clients
normalize API responses to these; unknown fields are ignored so additions on
the service side don't break parsing.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Taxonomy flags that keep a taxon out of the synthetic tree.
# See https://github.com/OpenTreeOfLife/reference-taxonomy/wiki/Taxon-flags
SYNTH_EXCLUDING_FLAGS = frozenset(
    {
        "barren",
        "environmental",
        "extinct",
        "extinct_inherited",
        "hidden",
        "hidden_inherited",
        "hybrid",
        "incertae_sedis",
        "incertae_sedis_inherited",
        "inconsistent",
        "major_rank_conflict",
        "major_rank_conflict_inherited",
        "merged",
        "not_otu",
        "unclassified",
        "unclassified_inherited",
        "unplaced",
        "unplaced_inherited",
        "viral",
        "was_container",
    }
)


class TaxonMatch(BaseModel):
    """One TNRS candidate for a searched name."""

    model_config = ConfigDict(extra="ignore")

    matched_name: str
    score: float = Field(..., ge=0, le=1)
    ott_id: int
    unique_name: str
    rank: str | None = None
    is_synonym: bool = False
    is_approximate_match: bool = False
    flags: list[str] = Field(default_factory=list)
    is_suppressed_from_synth: bool = False

    @property
    def in_synth_tree(self) -> bool:
        """True when the taxon can appear in the synthesis tree."""
        if self.is_suppressed_from_synth:
            return False
        return not SYNTH_EXCLUDING_FLAGS.intersection(f.lower() for f in self.flags)

    @classmethod
    def from_api(cls, match: dict[str, Any]) -> TaxonMatch:
        """Flatten a ``results[].matches[]`` entry (taxon fields are nested)."""
        taxon = match.get("taxon") or {}
        return cls(
            matched_name=match.get("matched_name", ""),
            score=match.get("score", 0.0),
            ott_id=taxon["ott_id"],
            unique_name=taxon.get("unique_name") or taxon.get("name", ""),
            rank=taxon.get("rank"),
            is_synonym=match.get("is_synonym", False),
            is_approximate_match=match.get("is_approximate_match", False),
            flags=taxon.get("flags") or [],
            is_suppressed_from_synth=taxon.get("is_suppressed_from_synth", False),
        )


class NameResolution(BaseModel):
    """All TNRS candidates for one searched name, in service order."""

    name: str
    context: str
    matches: list[TaxonMatch] = Field(default_factory=list)
