"""Circular cladogram rendering with matplotlib.

Layout: tips evenly spaced around the outer ring, each internal node at the
midpoint angle of its children and at a radius set by its height (edges to
its deepest tip), so every tip sits on the same circle. Branch lengths are
ignored; induced subtrees from the synthetic tree don't carry them.

Output is written without timestamps, so the same tree, annotations and
fonts give byte-identical files.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from pathlib import Path  # noqa: TC003 (dataclass field types are resolved at runtime)
from typing import TYPE_CHECKING

import matplotlib as mpl
import numpy as np
from matplotlib.figure import Figure
from matplotlib.image import imread
from matplotlib.offsetbox import AnnotationBbox, OffsetImage
from matplotlib.patches import Patch

from inat_phylo.renderers.palette import build_group_palette
from inat_phylo.tree import find_node, node_label

if TYPE_CHECKING:
    import dendropy
    from matplotlib.axes import Axes

BRANCH_COLOR = "#333333"
BRANCH_WIDTH = 0.6
HIGHLIGHT_ALPHA = 0.25

# Per-format savefig metadata that would otherwise embed a timestamp.
_STABLE_METADATA: dict[str, dict[str, None]] = {
    "pdf": {"CreationDate": None},
    "svg": {"Date": None},
    "png": {},
}


@dataclass
class TreeAnnotations:
    """Per-node decorations, keyed by node label (tip or internal)."""

    highlights: dict[str, str] = field(default_factory=dict)  # node -> group
    labels: dict[str, str] = field(default_factory=dict)  # node -> text
    images: dict[str, Path] = field(default_factory=dict)  # node -> image file

    def node_labels(self) -> list[str]:
        """Every node label referenced, in declaration order."""
        return list(dict.fromkeys([*self.highlights, *self.labels, *self.images]))


@dataclass(frozen=True)
class NodePosition:
    """Polar position of a node (radians, tree-depth units)."""

    angle: float
    radius: float


# =============================================================================
# Layout
# =============================================================================


def _node_heights(tree: dendropy.Tree) -> dict[dendropy.Node, int]:
    heights: dict[dendropy.Node, int] = {}
    for node in tree.postorder_node_iter():
        children = node.child_nodes()
        heights[node] = 1 + max(heights[c] for c in children) if children else 0
    return heights


def circular_layout(
    tree: dendropy.Tree,
    *,
    start_angle: float = 0.0,
    span: float = 2 * math.pi,
) -> dict[dendropy.Node, NodePosition]:
    """Compute polar positions for every node of ``tree``."""
    heights = _node_heights(tree)
    outer = float(heights[tree.seed_node])
    leaves = list(tree.leaf_node_iter())
    step = span / len(leaves) if leaves else 0.0

    positions: dict[dendropy.Node, NodePosition] = {}
    for i, leaf in enumerate(leaves):
        positions[leaf] = NodePosition(angle=start_angle + i * step, radius=outer)
    for node in tree.postorder_internal_node_iter():
        angles = [positions[c].angle for c in node.child_node_iter()]
        positions[node] = NodePosition(
            angle=(min(angles) + max(angles)) / 2,
            radius=outer - heights[node],
        )
    return positions


def display_label(label: str) -> str:
    """Human-readable form of a Newick label."""
    return label.replace("_", " ").strip()


# =============================================================================
# Drawing
# =============================================================================


def _draw_branches(
    ax: Axes, tree: dendropy.Tree, positions: dict[dendropy.Node, NodePosition]
) -> None:
    for node in tree.preorder_internal_node_iter():
        parent = positions[node]
        children = [positions[c] for c in node.child_node_iter()]
        if len(children) > 1:
            theta = np.linspace(
                min(c.angle for c in children), max(c.angle for c in children), 64
            )
            ax.plot(theta, np.full_like(theta, parent.radius), color=BRANCH_COLOR, lw=BRANCH_WIDTH)
        for child in children:
            ax.plot(
                [child.angle, child.angle],
                [parent.radius, child.radius],
                color=BRANCH_COLOR,
                lw=BRANCH_WIDTH,
            )


def _draw_tip_labels(
    ax: Axes,
    tree: dendropy.Tree,
    positions: dict[dendropy.Node, NodePosition],
    offset: float,
    fontsize: float,
) -> None:
    for leaf in tree.leaf_node_iter():
        pos = positions[leaf]
        degrees = math.degrees(pos.angle) % 360
        flipped = 90 < degrees < 270
        ax.text(
            pos.angle,
            pos.radius + offset,
            display_label(node_label(leaf)),
            rotation=degrees + 180 if flipped else degrees,
            rotation_mode="anchor",
            ha="right" if flipped else "left",
            va="center",
            fontsize=fontsize,
            fontstyle="italic",
        )


def _draw_highlights(
    ax: Axes,
    tree: dendropy.Tree,
    positions: dict[dendropy.Node, NodePosition],
    highlights: dict[str, str],
    outer: float,
    step: float,
) -> list[Patch]:
    palette = build_group_palette(highlights.values())
    for label, group in highlights.items():
        node = find_node(tree, label)
        angles = [positions[leaf].angle for leaf in node.leaf_iter()]
        start = min(angles) - step / 2
        end = max(angles) + step / 2
        bottom = max(positions[node].radius - 0.5, 0.0)
        ax.bar(
            (start + end) / 2,
            outer + 0.5 - bottom,
            width=end - start,
            bottom=bottom,
            color=palette[group],
            alpha=HIGHLIGHT_ALPHA,
            linewidth=0,
            zorder=0,
        )
    return [Patch(facecolor=color, alpha=0.6, label=group) for group, color in palette.items()]


def _draw_node_labels(
    ax: Axes,
    tree: dendropy.Tree,
    positions: dict[dendropy.Node, NodePosition],
    labels: dict[str, str],
    fontsize: float,
) -> None:
    for label, text in labels.items():
        pos = positions[find_node(tree, label)]
        ax.text(
            pos.angle,
            pos.radius,
            text,
            ha="center",
            va="bottom",
            fontsize=fontsize,
            fontweight="bold",
            bbox={"boxstyle": "round,pad=0.2", "fc": "white", "ec": "none", "alpha": 0.8},
            zorder=3,
        )


def _draw_images(
    ax: Axes,
    tree: dendropy.Tree,
    positions: dict[dendropy.Node, NodePosition],
    images: dict[str, Path],
    zoom: float,
) -> None:
    for label, image_path in images.items():
        pos = positions[find_node(tree, label)]
        box = AnnotationBbox(
            OffsetImage(imread(str(image_path)), zoom=zoom),
            (pos.angle, pos.radius),
            frameon=False,
            zorder=4,
        )
        ax.add_artist(box)


def render_circular_tree(
    tree: dendropy.Tree,
    annotations: TreeAnnotations | None,
    output_base: Path,
    *,
    formats: tuple[str, ...] = ("pdf", "png"),
    dpi: int = 300,
    title: str | None = None,
    font_family: str = "DejaVu Sans",
    image_zoom: float = 0.15,
) -> list[Path]:
    """
    Draw ``tree`` as an annotated circular cladogram.

    Args:
        tree: Parsed tree (see ``inat_phylo.tree``).
        annotations: Highlight groups, node labels and images. Every label
            must name a node of ``tree``.
        output_base: Path without suffix; one file per format is written.
        formats: Matplotlib output formats (vector and raster by default).
        dpi: Raster resolution.
        title: Optional figure title.
        font_family: Font for all text.
        image_zoom: Scale applied to node images.

    Returns:
        Paths of the written files, in ``formats`` order.

    Raises:
        UnknownNodeLabel: An annotation references a label not in the tree.
    """
    annotations = annotations or TreeAnnotations()
    for label in annotations.node_labels():
        find_node(tree, label)

    positions = circular_layout(tree)
    leaves = list(tree.leaf_node_iter())
    outer = max((p.radius for p in positions.values()), default=0.0)
    step = 2 * math.pi / len(leaves) if leaves else 0.0
    fontsize = max(3.0, min(9.0, 600 / max(len(leaves), 1)))
    label_room = max(outer * 0.6, 2.0)

    output_base.parent.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    with mpl.rc_context({"font.family": font_family, "pdf.fonttype": 42, "svg.hashsalt": "inat-phylo"}):
        fig = Figure(figsize=(10, 10))
        ax = fig.add_subplot(projection="polar")
        ax.set_axis_off()
        ax.set_ylim(0, outer + label_room)

        handles = _draw_highlights(ax, tree, positions, annotations.highlights, outer, step)
        _draw_branches(ax, tree, positions)
        _draw_tip_labels(ax, tree, positions, offset=0.3, fontsize=fontsize)
        _draw_node_labels(ax, tree, positions, annotations.labels, fontsize=fontsize + 1)
        _draw_images(ax, tree, positions, annotations.images, zoom=image_zoom)

        if handles:
            fig.legend(handles=handles, loc="lower left", frameon=False)
        if title:
            fig.suptitle(title)

        for fmt in formats:
            path = output_base.with_suffix(f".{fmt}")
            fig.savefig(path, format=fmt, dpi=dpi, metadata=_STABLE_METADATA.get(fmt, {}))
            written.append(path)
    return written


class MatplotlibTreeRenderer:
    """Tree renderer writing a circular cladogram with matplotlib."""

    def __init__(self, *, formats: tuple[str, ...] = ("pdf", "png"), dpi: int = 300) -> None:
        self.formats = formats
        self.dpi = dpi

    def render(
        self,
        tree: dendropy.Tree,
        annotations: TreeAnnotations | None,
        output_base: Path,
        title: str | None = None,
    ) -> list[Path]:
        return render_circular_tree(
            tree, annotations, output_base, formats=self.formats, dpi=self.dpi, title=title
        )
