"""
Per-layer metrics for a built section.

Coverage is measured in plan: the upward-facing triangles of each layer are
projected onto the XY plane, unioned with Shapely and compared with the
assembly footprint. A continuous sheet covers 1.0; a tiled layer with joints
or a punched layer covers less.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

import numpy as np
import trimesh
from shapely.geometry import MultiPolygon, Polygon, box
from shapely.ops import unary_union

from assembly_section.booleans import flatten
from assembly_section.stacking import StackResult

logger = logging.getLogger(__name__)


def plan_footprint(mesh: trimesh.Trimesh, min_normal_z: float = 0.9):
    """Union of the mesh's upward-facing triangles projected to XY."""
    if len(mesh.faces) == 0:
        return Polygon()
    up = np.where(mesh.face_normals[:, 2] > min_normal_z)[0]
    polygons: List[Polygon] = []
    for tri in mesh.vertices[mesh.faces[up]]:
        p = Polygon(tri[:, :2])
        if p.is_valid and p.area > 0:
            polygons.append(p)
    if not polygons:
        return Polygon()
    return unary_union(polygons)


def coverage_ratio(mesh: trimesh.Trimesh, width: float, height: float) -> float:
    """Fraction of the centered width x height footprint covered in plan."""
    footprint = box(-width / 2.0, -height / 2.0, width / 2.0, height / 2.0)
    if footprint.area <= 0:
        return 0.0
    covered = plan_footprint(mesh).intersection(footprint)
    return float(covered.area / footprint.area)


def section_report(stack: StackResult, width: float, height: float) -> Dict[str, Any]:
    """JSON-ready summary of every placed layer."""
    layers = []
    for placed in stack.layers:
        solid = flatten(placed.node)
        footprint = plan_footprint(solid)
        parts = len(footprint.geoms) if isinstance(footprint, MultiPolygon) else int(not footprint.is_empty)
        layers.append(
            {
                "index": placed.index,
                "name": placed.name,
                "thickness": float(placed.thickness),
                "z_min": float(placed.z_min),
                "z_max": float(placed.z_max),
                "volume": float(solid.volume) if len(solid.faces) else 0.0,
                "coverage": coverage_ratio(solid, width, height),
                "plan_parts": parts,
            }
        )
    logger.info("Report: %d layers", len(layers))
    return {
        "assembly": {"width": float(width), "height": float(height)},
        "total_thickness": float(stack.total_thickness),
        "layers": layers,
    }
