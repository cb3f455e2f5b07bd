"""
Prefect flow turning a user's or project's iNaturalist observations into a
circular tree of life figure.

Stages, each a task:
  fetch-observations -> assign-contexts -> resolve-names -> extract-subtree -> render-tree

The three external services sit behind one-method protocols held in
module-level defaults (``name_resolver``, ``subtree_provider``, ``renderer``);
replace them to run the flow against fakes.

Run locally:
    python -m inat_phylo.flows.pipeline <user_id>
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from prefect import flow, task

from inat_phylo.analysis.resolution import (
    ResolutionSummary,
    ResolvedTaxon,
    select_matches,
    unique_ott_ids,
)
from inat_phylo.config import get_settings
from inat_phylo.datasources import inaturalist
from inat_phylo.datasources.inaturalist import ObservationRecord
from inat_phylo.datasources.opentree import OpenTreeNameResolver, OpenTreeSubtreeProvider
from inat_phylo.datasources.opentree.subtree import MIN_OTT_IDS, InducedSubtree, LabelFormat
from inat_phylo.errors import InvalidArgument, ServiceUnavailable, UnknownTaxa
from inat_phylo.reference.contexts import group_names_by_context
from inat_phylo.renderers.circular_tree import MatplotlibTreeRenderer, TreeAnnotations
from inat_phylo.schemas import NameResolution
from inat_phylo.tree import collapse_unary, internal_node_labels, read_tree, tip_labels, write_newick

if TYPE_CHECKING:
    import dendropy


# =============================================================================
# Service boundaries
# =============================================================================


class NameResolver(Protocol):
    def resolve(self, names: list[str], context: str) -> list[NameResolution]: ...


class SubtreeProvider(Protocol):
    def induced_subtree(self, ott_ids: list[int], label_format: LabelFormat) -> InducedSubtree: ...


class TreeRenderer(Protocol):
    def render(
        self,
        tree: dendropy.Tree,
        annotations: TreeAnnotations | None,
        output_base: Path,
        title: str | None = None,
    ) -> list[Path]: ...


name_resolver: NameResolver = OpenTreeNameResolver(
    get_settings().otol_api_base, timeout=get_settings().request_timeout
)
subtree_provider: SubtreeProvider = OpenTreeSubtreeProvider(
    get_settings().otol_api_base, timeout=get_settings().request_timeout
)
renderer: TreeRenderer = MatplotlibTreeRenderer()


# =============================================================================
# Tasks
# =============================================================================


@task(name="fetch-observations")
def fetch_observations(
    user_id: str | None,
    project_id: str | None,
    iconic_taxon: str | None = None,
) -> list[ObservationRecord]:
    """Fetch observation taxa from iNaturalist using the configured limits."""
    settings = get_settings()
    return inaturalist.fetch_observations(
        user_id,
        project_id,
        iconic_taxon,
        per_page=settings.per_page,
        max_requests=settings.max_requests,
        requests_per_second=settings.requests_per_second,
        on_page_error=settings.page_error_policy,
        strict=settings.strict_retrieval,
        api_base=settings.inat_api_base,
        timeout=settings.request_timeout,
    )


@task(name="assign-contexts")
def assign_contexts(records: list[ObservationRecord]) -> dict[str, list[str]]:
    """Group unique taxon names by TNRS context."""
    return group_names_by_context(records)


@task(name="resolve-names", retries=2, retry_delay_seconds=5)
def resolve_names(
    names_by_context: dict[str, list[str]],
    min_score: float,
) -> tuple[list[ResolvedTaxon], ResolutionSummary]:
    """Resolve every context group and keep confident, in-tree matches."""
    resolved: list[ResolvedTaxon] = []
    submitted = 0
    for context, names in names_by_context.items():
        submitted += len(names)
        accepted = select_matches(name_resolver.resolve(names, context), min_score)
        print(f"  {context}: {len(accepted)}/{len(names)} names resolved")
        resolved.extend(accepted)
    return resolved, ResolutionSummary(submitted=submitted, resolved=len(resolved))


@task(name="extract-subtree", retries=2, retry_delay_seconds=5)
def extract_subtree(
    ott_ids: list[int], label_format: LabelFormat, tree_path: Path
) -> tuple[Path, list[int]]:
    """
    Fetch the induced subtree and persist its Newick (unary nodes kept).

    Ids the service reports as absent from the synthetic tree are dropped and
    the request is repeated once without them.

    Returns:
        The written Newick path and the ids the tree was induced from.
    """
    try:
        subtree = subtree_provider.induced_subtree(ott_ids, label_format)
    except UnknownTaxa as e:
        missing = set(e.ott_ids)
        ott_ids = [i for i in ott_ids if i not in missing]
        print(f"{len(missing)} resolved taxa are not in the synthetic tree and were dropped")
        if len(ott_ids) < MIN_OTT_IDS:
            msg = f"only {len(ott_ids)} resolved taxa are in the synthetic tree"
            raise ServiceUnavailable(msg) from e
        subtree = subtree_provider.induced_subtree(ott_ids, label_format)
    if subtree.broken:
        print(f"{len(subtree.broken)} taxa are not monophyletic and were placed at an MRCA node")
    return write_newick(subtree.newick, tree_path), ott_ids


@task(name="render-tree")
def render_tree(
    tree_path: Path,
    annotations: TreeAnnotations | None,
    output_base: Path,
    collapse: bool = False,
    title: str | None = None,
) -> dict[str, Any]:
    """Re-read the persisted tree and draw it."""
    tree = read_tree(tree_path)
    if collapse:
        tree = collapse_unary(tree)
    outputs = renderer.render(tree, annotations, output_base, title=title)
    return {
        "tips": len(tip_labels(tree)),
        "internal_nodes": len(internal_node_labels(tree)),
        "outputs": [str(p) for p in outputs],
    }


# =============================================================================
# Flow
# =============================================================================


def check_annotation_images(annotations: TreeAnnotations | None) -> None:
    """Fail before any network I/O if an annotation image is missing."""
    if annotations is None:
        return
    missing = [str(p) for p in annotations.images.values() if not Path(p).is_file()]
    if missing:
        msg = f"annotation images not found: {', '.join(missing)}"
        raise InvalidArgument(msg)


@flow(name="build-tree", log_prints=True, validate_parameters=False)
def build_tree(
    user_id: str | None = None,
    project_id: str | None = None,
    iconic_taxon: str | None = None,
    output_dir: Path | None = None,
    annotations: TreeAnnotations | None = None,
    label_format: LabelFormat | None = None,
    collapse: bool = False,
    title: str | None = None,
) -> dict[str, Any]:
    """
    Build the tree of observed taxa for a user and/or project.

    Losses along the way (failed pages, unmatched names, taxa missing from
    the synthetic tree) shrink the tree but don't stop the flow; only a stage
    that yields nothing raises.

    Annotation labels can only be checked once the tree exists, right before
    rendering; image files are checked up front.

    Raises:
        InvalidArgument: Neither user_id nor project_id given, or an
            annotation image doesn't exist.
        ServiceUnavailable: No observations, or fewer than two names resolved
            into the tree.
        UnknownNodeLabel: An annotation names a node the tree doesn't have.
    """
    check_annotation_images(annotations)
    settings = get_settings()
    output_dir = output_dir or settings.output_dir
    label_format = label_format or settings.label_format
    stem = settings.output_stem

    print(f"Fetching observations (user_id={user_id}, project_id={project_id})...")
    records = fetch_observations(user_id, project_id, iconic_taxon)
    print(f"Fetched {len(records)} observation records")

    names_by_context = assign_contexts(records)
    print(f"Resolving names in {len(names_by_context)} taxonomic contexts...")
    resolved, summary = resolve_names(names_by_context, settings.min_match_score)
    if summary.dropped:
        print(f"{summary.dropped} of {summary.submitted} names dropped during resolution")

    ott_ids = unique_ott_ids(resolved)
    if not ott_ids:
        msg = "no observed name resolved to a taxon in the synthetic tree"
        raise ServiceUnavailable(msg)
    if len(ott_ids) < MIN_OTT_IDS:
        msg = f"only {len(ott_ids)} observed taxon resolved; a tree needs at least {MIN_OTT_IDS}"
        raise ServiceUnavailable(msg)

    print(f"Extracting induced subtree for {len(ott_ids)} taxa...")
    tree_path, tree_ids = extract_subtree(ott_ids, label_format, output_dir / f"{stem}.tre")
    print(f"Saved tree to {tree_path}")

    rendered = render_tree(tree_path, annotations, output_dir / stem, collapse, title)
    print(f"Rendered {rendered['tips']} tips to {', '.join(rendered['outputs'])}")

    return {
        "records": len(records),
        "names_submitted": summary.submitted,
        "names_resolved": summary.resolved,
        "ott_ids": len(tree_ids),
        "taxa_not_in_tree": len(ott_ids) - len(tree_ids),
        "tree_path": str(tree_path),
        **rendered,
    }


if __name__ == "__main__":
    result = build_tree(user_id=sys.argv[1] if len(sys.argv) > 1 else None)
    print(f"Flow complete: {result}")
