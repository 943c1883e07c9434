"""
Boolean solid operations for assembly composition.

Solids are ``trimesh.Trimesh`` volumes. Intersect/subtract run on the
manifold3d engine through ``trimesh.boolean``; the engine partitions both
operands into a robust manifold representation and rebuilds a mesh, so the
result is consistently wound (cavities included) and has no placement of
its own.

The mesh-level functions return geometry only. Node-level variants bake every
node's placement into its solid before the operation and require the caller
to say where the resulting tree goes (``placement``).
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence

import numpy as np
import trimesh

from assembly_section.errors import GeometryOperationError
from assembly_section.scene import SceneNode

logger = logging.getLogger(__name__)

ENGINE = "manifold"
VOLUME_EPS = 1e-9


def empty_solid() -> trimesh.Trimesh:
    return trimesh.Trimesh(
        vertices=np.zeros((0, 3), dtype=float),
        faces=np.zeros((0, 3), dtype=np.int64),
        process=False,
    )


def box_solid(extents: Sequence[float]) -> trimesh.Trimesh:
    """Axis-aligned box centered at the origin; empty if any extent <= 0."""
    extents = [float(e) for e in extents]
    if min(extents) <= 0:
        logger.warning("Carved box has non-positive extent %s; using empty solid", extents)
        return empty_solid()
    return trimesh.creation.box(extents=extents)


def is_degenerate(mesh: Optional[trimesh.Trimesh]) -> bool:
    if mesh is None or len(mesh.faces) == 0:
        return True
    return abs(float(mesh.volume)) < VOLUME_EPS


def intersect(a: trimesh.Trimesh, b: trimesh.Trimesh) -> trimesh.Trimesh:
    """Volume common to *a* and *b*."""
    try:
        _require_volume(a, "intersect", "left")
        _require_volume(b, "intersect", "right")
        result = _run("intersection", a, b)
    except GeometryOperationError as exc:
        logger.warning("%s; using empty solid", exc)
        return empty_solid()
    return _finish(result)


def subtract(a: trimesh.Trimesh, b: trimesh.Trimesh) -> trimesh.Trimesh:
    """Volume of *a* outside *b*."""
    if is_degenerate(b) and not is_degenerate(a):
        return _finish(a.copy())
    try:
        _require_volume(a, "subtract", "left")
        result = _run("difference", a, b)
    except GeometryOperationError as exc:
        logger.warning("%s; using empty solid", exc)
        return empty_solid()
    return _finish(result)


def intersect_node(node: SceneNode, solid: trimesh.Trimesh, *, placement: Sequence[float]) -> SceneNode:
    """Intersect every solid under *node* with *solid* (given in the node's parent frame)."""
    return _map_tree(node, lambda mesh: intersect(mesh, solid), placement)


def subtract_node(node: SceneNode, solid: trimesh.Trimesh, *, placement: Sequence[float]) -> SceneNode:
    """Subtract *solid* (given in the node's parent frame) from every solid under *node*."""
    return _map_tree(node, lambda mesh: subtract(mesh, solid), placement)


def flatten(node: SceneNode) -> trimesh.Trimesh:
    """Bake all solids under *node* into one mesh in the node's parent frame."""
    meshes: List[trimesh.Trimesh] = []
    _collect(node, np.zeros(3), meshes)
    if not meshes:
        return empty_solid()
    if len(meshes) == 1:
        return meshes[0]
    return trimesh.util.concatenate(meshes)


# ─── Internal helpers ────────────────────────────────────────────────────────

def _require_volume(mesh: trimesh.Trimesh, op: str, side: str) -> None:
    if is_degenerate(mesh):
        raise GeometryOperationError(f"{op}: {side} operand has no volume")


def _run(op: str, a: trimesh.Trimesh, b: trimesh.Trimesh) -> trimesh.Trimesh:
    fn = getattr(trimesh.boolean, op)
    try:
        return fn([a, b], engine=ENGINE, check_volume=False)
    except (ValueError, RuntimeError) as exc:
        raise GeometryOperationError(f"{op} failed: {exc}") from exc


def _finish(mesh: trimesh.Trimesh) -> trimesh.Trimesh:
    if len(mesh.faces) == 0:
        return empty_solid()
    mesh.remove_unreferenced_vertices()
    return mesh


def _map_tree(
    node: SceneNode,
    op: Callable[[trimesh.Trimesh], trimesh.Trimesh],
    placement: Sequence[float],
) -> SceneNode:
    result = _rebuild(node, op, np.zeros(3))
    result.position = np.asarray(placement, dtype=float).copy()
    return result


def _rebuild(
    node: SceneNode,
    op: Callable[[trimesh.Trimesh], trimesh.Trimesh],
    offset: np.ndarray,
) -> SceneNode:
    offset = offset + node.position
    geometry = None
    if node.has_geometry:
        baked = node.geometry.copy()
        baked.apply_translation(offset)
        geometry = op(baked)
    copy = node.derive(geometry=geometry, position=(0.0, 0.0, 0.0))
    for child in node.children:
        copy.add(_rebuild(child, op, offset))
    return copy


def _collect(node: SceneNode, offset: np.ndarray, out: List[trimesh.Trimesh]) -> None:
    offset = offset + node.position
    if node.has_geometry:
        baked = node.geometry.copy()
        baked.apply_translation(offset)
        out.append(baked)
    for child in node.children:
        _collect(child, offset, out)
