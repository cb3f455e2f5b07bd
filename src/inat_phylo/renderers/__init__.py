"""Tree renderers: parsed tree + annotations -> image files.

All renderers follow the same pattern:
  - Input: dendropy.Tree (from ``inat_phylo.tree``) and TreeAnnotations
  - Output: list of written file paths
  - No network access, no Prefect decorators

Used by flows/pipeline.py through the ``TreeRenderer`` protocol.

Public API:
  - circular_tree: TreeAnnotations, circular_layout, render_circular_tree,
    MatplotlibTreeRenderer
  - palette: build_group_palette
"""

from inat_phylo.renderers.circular_tree import (
    MatplotlibTreeRenderer,
    NodePosition,
    TreeAnnotations,
    circular_layout,
    display_label,
    render_circular_tree,
)
from inat_phylo.renderers.palette import build_group_palette

__all__ = [
    "MatplotlibTreeRenderer",
    "NodePosition",
    "TreeAnnotations",
    "build_group_palette",
    "circular_layout",
    "display_label",
    "render_circular_tree",
]
