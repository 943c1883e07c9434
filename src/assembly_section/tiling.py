"""Unit-cell tiling for unitized elements (blocks, panels, tiles)."""

from __future__ import annotations

import logging
import math
from typing import Optional, Tuple

import trimesh

from assembly_section.booleans import box_solid, empty_solid
from assembly_section.contracts import ElementBase
from assembly_section.materials import RenderMaterial
from assembly_section.scene import SceneNode

logger = logging.getLogger(__name__)


def grid_shape(element: ElementBase, assembly_width: float, assembly_height: float) -> Tuple[int, int]:
    """(rows, cols) of cells needed to cover the footprint; never below 1."""
    rows = max(1, math.ceil(assembly_height / element.height)) if element.height > 0 else 1
    cols = max(1, math.ceil(assembly_width / element.width)) if element.width > 0 else 1
    return rows, cols


def build_unitized(
    element: ElementBase,
    assembly_width: float,
    assembly_height: float,
    material: Optional[RenderMaterial] = None,
) -> SceneNode:
    """Lay carved cells out on an x, y grid and merge them into one mesh.

    Cells are concatenated, not unioned: cells overhanging the footprint are
    trimmed later by the subassembly clipping solid. The first cell is
    centered on the origin; the node's offsets hold one cell's half size so
    the caller can shift the grid back onto the footprint center.
    """
    rows, cols = grid_shape(element, assembly_width, assembly_height)
    logger.debug("%s: cols %d rows %d", element.name, cols, rows)

    cell = box_solid((element.carved_width, element.carved_height, element.carved_thickness))
    if len(cell.faces) == 0:
        geometry = empty_solid()
    else:
        cells = []
        for row in range(rows):
            for col in range(cols):
                unit = cell.copy()
                unit.apply_translation((col * element.width, row * element.height, 0.0))
                cells.append(unit)
        geometry = trimesh.util.concatenate(cells)

    node = SceneNode(element.name, geometry=geometry, material=material)
    node.set_footprint(
        width=cols * element.width,
        height=rows * element.height,
        offset_x=element.width / 2.0,
        offset_y=element.height / 2.0,
    )
    return node
