"""
Tests for circular tree layout and rendering.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

import numpy as np
import pytest
from matplotlib.image import imsave

from inat_phylo.renderers import palette
from inat_phylo.renderers.circular_tree import (
    MatplotlibTreeRenderer,
    TreeAnnotations,
    circular_layout,
    display_label,
    render_circular_tree,
)
from inat_phylo.tree import find_node, parse_newick

if TYPE_CHECKING:
    from pathlib import Path

NEWICK = (
    "((((Apis_mellifera,Bombus_terrestris)Apidae,(Danaus_plexippus)Lepidoptera)Insecta,"
    "(Turdus_migratorius)Aves)Metazoa,Quercus_alba)Eukaryota;"
)

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"


class TestCircularLayout:
    """Test node placement."""

    def test_tips_on_outer_ring(self) -> None:
        tree = parse_newick(NEWICK)
        positions = circular_layout(tree)
        assert {positions[leaf].radius for leaf in tree.leaf_node_iter()} == {4.0}

    def test_internal_radius_by_height(self) -> None:
        tree = parse_newick(NEWICK)
        positions = circular_layout(tree)
        assert positions[tree.seed_node].radius == 0.0
        assert positions[find_node(tree, "Insecta")].radius == 2.0
        assert positions[find_node(tree, "Lepidoptera")].radius == 3.0

    def test_angles(self) -> None:
        tree = parse_newick(NEWICK)
        positions = circular_layout(tree)
        step = 2 * math.pi / 5

        assert positions[find_node(tree, "Apis mellifera")].angle == 0.0
        assert positions[find_node(tree, "Bombus terrestris")].angle == pytest.approx(step)
        assert positions[find_node(tree, "Apidae")].angle == pytest.approx(step / 2)
        # Unary node sits directly above its only child.
        assert positions[find_node(tree, "Aves")].angle == pytest.approx(3 * step)


class TestPalette:
    """Test highlight group colours."""

    def test_first_seen_order(self) -> None:
        colors = palette.build_group_palette(["bees", "birds", "bees"])
        assert list(colors) == ["bees", "birds"]
        assert colors["bees"] != colors["birds"]

    def test_distinct_until_colormap_exhausted(self) -> None:
        groups = [f"g{i}" for i in range(25)]
        colors = palette.build_group_palette(groups)
        assert len({colors[f"g{i}"] for i in range(20)}) == 20
        assert colors["g20"] == colors["g0"]

    def test_hex_colors(self) -> None:
        colors = palette.build_group_palette(["a"], colormap="tab10")
        assert colors["a"].startswith("#")
        assert len(colors["a"]) == 7


class TestRender:
    """Test file output."""

    def test_writes_pdf_and_png(self, tmp_path: Path) -> None:
        tree = parse_newick(NEWICK)
        outputs = render_circular_tree(tree, None, tmp_path / "tree", dpi=50)

        assert outputs == [tmp_path / "tree.pdf", tmp_path / "tree.png"]
        assert outputs[0].read_bytes().startswith(b"%PDF")
        assert outputs[1].read_bytes().startswith(PNG_MAGIC)

    def test_with_annotations(self, tmp_path: Path) -> None:
        icon = tmp_path / "bee.png"
        imsave(icon, np.zeros((8, 8, 3)))
        annotations = TreeAnnotations(
            highlights={"Insecta": "insects", "Aves": "birds"},
            labels={"Apidae": "bees", "Quercus_alba": "oak"},
            images={"Apis mellifera": icon},
        )
        outputs = render_circular_tree(
            parse_newick(NEWICK), annotations, tmp_path / "out" / "tree", dpi=50, title="Observed"
        )
        assert all(p.stat().st_size > 0 for p in outputs)

    def test_png_is_reproducible(self, tmp_path: Path) -> None:
        annotations = TreeAnnotations(highlights={"Insecta": "insects"})
        first = render_circular_tree(
            parse_newick(NEWICK), annotations, tmp_path / "a", formats=("png",), dpi=50
        )
        second = render_circular_tree(
            parse_newick(NEWICK), annotations, tmp_path / "b", formats=("png",), dpi=50
        )
        assert first[0].read_bytes() == second[0].read_bytes()

    def test_unknown_label_writes_nothing(self, tmp_path: Path) -> None:
        annotations = TreeAnnotations(labels={"Canis lupus": "wolf"})
        with pytest.raises(KeyError):
            render_circular_tree(parse_newick(NEWICK), annotations, tmp_path / "tree", dpi=50)
        assert list(tmp_path.iterdir()) == []

    def test_renderer_formats(self, tmp_path: Path) -> None:
        renderer = MatplotlibTreeRenderer(formats=("svg",), dpi=50)
        outputs = renderer.render(parse_newick(NEWICK), None, tmp_path / "tree")
        assert outputs == [tmp_path / "tree.svg"]
        assert b"<svg" in outputs[0].read_bytes()


class TestTreeAnnotations:
    """Test annotation bookkeeping."""

    def test_node_labels_deduplicated(self) -> None:
        annotations = TreeAnnotations(
            highlights={"Insecta": "insects"},
            labels={"Insecta": "insects", "Aves": "birds"},
        )
        assert annotations.node_labels() == ["Insecta", "Aves"]

    def test_display_label(self) -> None:
        assert display_label("Apis_mellifera") == "Apis mellifera"
