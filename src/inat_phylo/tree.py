"""Newick persistence and node lookup for induced subtrees.

The service's Newick is written to disk untouched and parsed back with
dendropy, so unary internal nodes (a genus with one observed species, an
order with one observed family, ...) keep their clade labels. Collapsing
them is available as ``collapse_unary`` but never happens implicitly.

Node indexing follows one space for tips and internal nodes::

    0 .. T-1        tips, left to right as written in the Newick
    T .. T+I-1      internal nodes in preorder (root is T)

so the internal node at position ``k`` of ``internal_node_labels(tree)``
has unified index ``T + k``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import dendropy

from inat_phylo.errors import UnknownNodeLabel

if TYPE_CHECKING:
    from pathlib import Path


def write_newick(newick: str, path: Path) -> Path:
    """Persist Newick text verbatim (plus a terminating ``;`` if missing)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    text = newick.strip()
    if not text.endswith(";"):
        text += ";"
    path.write_text(text + "\n", encoding="utf-8")
    return path


def parse_newick(newick: str) -> dendropy.Tree:
    """Parse Newick text, keeping underscores and unary nodes as written."""
    return dendropy.Tree.get(data=newick, schema="newick", preserve_underscores=True)


def read_tree(path: Path) -> dendropy.Tree:
    """Read a persisted Newick file."""
    return dendropy.Tree.get(path=str(path), schema="newick", preserve_underscores=True)


def write_tree(tree: dendropy.Tree, path: Path) -> Path:
    """Serialize a parsed tree back to Newick."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tree.write(path=str(path), schema="newick", suppress_rooting=True, unquoted_underscores=True)
    return path


def collapse_unary(tree: dendropy.Tree) -> dendropy.Tree:
    """Copy of ``tree`` with single-child internal nodes (and their labels) removed."""
    collapsed = tree.clone(depth=1)
    collapsed.suppress_unifurcations()
    return collapsed


# =============================================================================
# Labels and indexing
# =============================================================================


def node_label(node: dendropy.Node) -> str:
    """Tip taxon label or internal node label, ``""`` when unlabeled."""
    if node.taxon is not None and node.taxon.label:
        return str(node.taxon.label)
    return str(node.label) if node.label else ""


def normalize_label(label: str) -> str:
    """Compare labels the way Newick writers differ: ``_`` == space, no quotes."""
    return label.strip().strip("'\"").replace("_", " ").strip()


def tip_labels(tree: dendropy.Tree) -> list[str]:
    return [node_label(n) for n in tree.leaf_node_iter()]


def internal_node_labels(tree: dendropy.Tree) -> list[str]:
    """Internal node labels in preorder; unlabeled nodes hold ``""`` to keep positions."""
    return [node_label(n) for n in tree.preorder_internal_node_iter()]


def indexed_nodes(tree: dendropy.Tree) -> list[dendropy.Node]:
    """All nodes in unified index order (tips first)."""
    return [*tree.leaf_node_iter(), *tree.preorder_internal_node_iter()]


def node_index(tree: dendropy.Tree, label: str) -> int:
    """
    Unified index of the node carrying ``label``.

    Tips are searched before internal nodes, so a name used for both resolves
    to the tip.

    Raises:
        UnknownNodeLabel: No node has this label (a KeyError).
    """
    wanted = normalize_label(label)
    tips = tip_labels(tree)
    for i, tip in enumerate(tips):
        if normalize_label(tip) == wanted:
            return i
    for k, internal in enumerate(internal_node_labels(tree)):
        if internal and normalize_label(internal) == wanted:
            return len(tips) + k
    raise UnknownNodeLabel(label)


def node_at(tree: dendropy.Tree, index: int) -> dendropy.Node:
    """Node at a unified index. Raises IndexError when out of range."""
    nodes = indexed_nodes(tree)
    if not 0 <= index < len(nodes):
        msg = f"node index {index} out of range (tree has {len(nodes)} nodes)"
        raise IndexError(msg)
    return nodes[index]


def find_node(tree: dendropy.Tree, label: str) -> dendropy.Node:
    """Node carrying ``label``. Raises UnknownNodeLabel when absent."""
    return node_at(tree, node_index(tree, label))
