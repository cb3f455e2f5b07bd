"""Highlight-group colours, shared by every tree renderer."""

from __future__ import annotations

from typing import TYPE_CHECKING

import matplotlib as mpl
from matplotlib.colors import to_hex

if TYPE_CHECKING:
    from collections.abc import Iterable

# Qualitative, 20 colours; reused cyclically past that.
GROUP_COLORMAP = "tab20"


def group_colors(colormap: str = GROUP_COLORMAP) -> list[str]:
    return [to_hex(c) for c in mpl.colormaps[colormap].colors]


def build_group_palette(groups: Iterable[str], colormap: str = GROUP_COLORMAP) -> dict[str, str]:
    """Assign a colour to each distinct group, in first-seen order."""
    colors = group_colors(colormap)
    palette: dict[str, str] = {}
    for group in groups:
        if group not in palette:
            palette[group] = colors[len(palette) % len(colors)]
    return palette
