"""
Minimal scene graph for compiled assemblies.

Nodes carry translation-only placement, an optional ``trimesh.Trimesh``
geometry in local coordinates, and the footprint metadata the compositor
uses to re-anchor solids after boolean operations. The graph can be handed
to any renderer through ``to_trimesh_scene``.

Coordinate frame: layers stack along +Z; the footprint spans X (width) and
Y (height).
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence, Tuple

import numpy as np
import trimesh

from assembly_section.materials import RenderMaterial

logger = logging.getLogger(__name__)

ORIGIN = (0.0, 0.0, 0.0)


class SceneNode:
    """A node in the section scene graph.

    Attributes:
        name: Display name (from the layer or element name)
        geometry: Local-space solid, or None for pure groups
        position: Translation relative to the parent node
        material: Appearance used for rendering and highlighting
        width, height: Footprint extents of the node's content
        offset_x, offset_y: Half-footprint of one cell, used for re-anchoring
        pickable: Whether pointer rays may select this node
        wireframe: Render only crease edges (bounding-box helpers)
    """

    def __init__(
        self,
        name: str,
        geometry: Optional[trimesh.Trimesh] = None,
        position: Sequence[float] = ORIGIN,
        material: Optional[RenderMaterial] = None,
        pickable: bool = True,
        wireframe: bool = False,
    ):
        self.name = name
        self.geometry = geometry
        self.position = position
        self.material = material if material is not None else RenderMaterial()
        self.pickable = pickable
        self.wireframe = wireframe
        self.keep_visual = False
        self.width = 0.0
        self.height = 0.0
        self.offset_x = 0.0
        self.offset_y = 0.0
        self.parent: Optional[SceneNode] = None
        self.children: List[SceneNode] = []

    def __repr__(self) -> str:
        return f"SceneNode({self.name!r}, children={len(self.children)})"

    @property
    def position(self) -> np.ndarray:
        return self._position

    @position.setter
    def position(self, value: Sequence[float]) -> None:
        self._position = np.array(value, dtype=float).reshape(3)

    @property
    def has_geometry(self) -> bool:
        return self.geometry is not None and len(self.geometry.faces) > 0

    def set_footprint(self, width: float, height: float, offset_x: float, offset_y: float) -> None:
        self.width = float(width)
        self.height = float(height)
        self.offset_x = float(offset_x)
        self.offset_y = float(offset_y)

    def derive(
        self,
        geometry: Optional[trimesh.Trimesh],
        position: Sequence[float],
    ) -> "SceneNode":
        """New childless node with this node's identity, new geometry and placement."""
        node = SceneNode(
            self.name,
            geometry=geometry,
            position=position,
            material=self.material.copy(),
            pickable=self.pickable,
            wireframe=self.wireframe,
        )
        node.set_footprint(self.width, self.height, self.offset_x, self.offset_y)
        return node

    def add(self, child: "SceneNode") -> "SceneNode":
        if child.parent is not None:
            child.parent.remove(child)
        child.parent = self
        self.children.append(child)
        return child

    def remove(self, child: "SceneNode") -> None:
        self.children.remove(child)
        child.parent = None

    def iter_nodes(self) -> Iterator["SceneNode"]:
        """Depth-first walk including this node."""
        yield self
        for child in self.children:
            yield from child.iter_nodes()

    def world_position(self) -> np.ndarray:
        pos = self.position.copy()
        node = self.parent
        while node is not None:
            pos += node.position
            node = node.parent
        return pos

    def world_geometry(self) -> Optional[trimesh.Trimesh]:
        if not self.has_geometry:
            return None
        mesh = self.geometry.copy()
        mesh.apply_translation(self.world_position())
        return mesh

    def bounds(self) -> Optional[np.ndarray]:
        """World-space AABB (2, 3) of every solid under this node."""
        lows, highs = [], []
        for node in self.iter_nodes():
            if node.wireframe or not node.has_geometry:
                continue
            b = node.geometry.bounds + node.world_position()
            lows.append(b[0])
            highs.append(b[1])
        if not lows:
            return None
        return np.array([np.min(lows, axis=0), np.max(highs, axis=0)])


@dataclass
class Viewport:
    """Pixel size of the host's drawing surface."""

    width: int = 800
    height: int = 600

    @property
    def aspect(self) -> float:
        return self.width / self.height if self.height else 1.0

    def normalize(self, px: float, py: float) -> Tuple[float, float]:
        """Pixel coordinates -> normalized device coordinates in [-1, 1], +Y up."""
        x = (px / self.width) * 2.0 - 1.0
        y = -(py / self.height) * 2.0 + 1.0
        return (x, y)


@dataclass
class Camera:
    """Perspective camera used for pointer ray projection."""

    position: np.ndarray = field(default_factory=lambda: np.array([1000.0, 500.0, 1000.0]))
    target: np.ndarray = field(default_factory=lambda: np.zeros(3))
    up: np.ndarray = field(default_factory=lambda: np.array([0.0, 1.0, 0.0]))
    fov_deg: float = 30.0
    aspect: float = 1.0
    near: float = 0.1
    far: float = 10000.0

    @classmethod
    def for_assembly(cls, width: float, height: float, aspect: float = 1.0) -> "Camera":
        """Camera pulled back from the footprint, looking at the origin."""
        return cls(
            position=np.array([width * 2.0, height, width * 2.0]),
            target=np.zeros(3),
            aspect=aspect,
        )

    def ray(self, ndc_x: float, ndc_y: float) -> Tuple[np.ndarray, np.ndarray]:
        """World-space (origin, unit direction) through a normalized pointer position."""
        forward = np.asarray(self.target, dtype=float) - self.position
        forward /= np.linalg.norm(forward)
        right = np.cross(forward, self.up)
        right /= np.linalg.norm(right)
        true_up = np.cross(right, forward)
        half = math.tan(math.radians(self.fov_deg) / 2.0)
        direction = forward + ndc_x * half * self.aspect * right + ndc_y * half * true_up
        return np.asarray(self.position, dtype=float).copy(), direction / np.linalg.norm(direction)


@dataclass
class RayHit:
    node: SceneNode
    distance: float
    location: np.ndarray


def cast_ray(root: SceneNode, origin: np.ndarray, direction: np.ndarray) -> List[RayHit]:
    """All hits of a ray against pickable solids under *root*, nearest first."""
    hits: List[RayHit] = []
    for node in root.iter_nodes():
        if not node.pickable or node.wireframe or not node.has_geometry:
            continue
        offset = node.world_position()
        locations, _, _ = node.geometry.ray.intersects_location(
            ray_origins=[origin - offset],
            ray_directions=[direction],
        )
        if len(locations) == 0:
            continue
        world = locations + offset
        distances = np.linalg.norm(world - origin, axis=1)
        nearest = int(np.argmin(distances))
        hits.append(RayHit(node=node, distance=float(distances[nearest]), location=world[nearest]))
    hits.sort(key=lambda h: h.distance)
    return hits


# ─── Helpers ────────────────────────────────────────────────────────────────

def bounding_box_helper(bounds: np.ndarray, color: int, name: str) -> SceneNode:
    """Non-pickable wireframe box spanning world-space *bounds*."""
    extents = bounds[1] - bounds[0]
    center = (bounds[0] + bounds[1]) / 2.0
    box = trimesh.creation.box(extents=np.maximum(extents, 1e-6))
    return SceneNode(
        name,
        geometry=box,
        position=center,
        material=RenderMaterial(color=color, opacity=1.0),
        pickable=False,
        wireframe=True,
    )


def origin_marker(length: float = 500.0) -> SceneNode:
    """RGB axis triad at the origin."""
    marker = trimesh.creation.axis(origin_size=length * 0.02, axis_length=length)
    node = SceneNode("origin", geometry=marker, pickable=False)
    node.keep_visual = True
    return node


def _crease_edges(mesh: trimesh.Trimesh) -> np.ndarray:
    """Edge segments between non-coplanar faces (drops triangulation diagonals)."""
    sharp = mesh.face_adjacency_angles > 1e-3
    return mesh.vertices[mesh.face_adjacency_edges[sharp]]


def _planar_uv(mesh: trimesh.Trimesh) -> np.ndarray:
    lo = mesh.bounds[0][:2]
    span = np.maximum(mesh.extents[:2], 1e-9)
    return (mesh.vertices[:, :2] - lo) / span


def to_trimesh_scene(root: SceneNode, background: int = 0xFFFFFF) -> trimesh.Scene:
    """Flatten the graph into a ``trimesh.Scene`` with baked world transforms."""
    scene = trimesh.Scene()
    scene.metadata["background"] = int(background)
    for index, node in enumerate(root.iter_nodes()):
        mesh = node.world_geometry()
        if mesh is None:
            continue
        key = f"{node.name}_{index}"
        if node.wireframe:
            path = trimesh.load_path(_crease_edges(mesh))
            for entity in path.entities:
                entity.color = node.material.rgba()
            scene.add_geometry(path, node_name=key, geom_name=key)
            continue
        if not node.keep_visual:
            handle = node.material.texture
            if handle is not None and handle.ready:
                mesh.visual = trimesh.visual.TextureVisuals(
                    uv=_planar_uv(mesh), image=handle.image
                )
            else:
                mesh.visual.face_colors = np.tile(node.material.rgba(), (len(mesh.faces), 1))
        scene.add_geometry(mesh, node_name=key, geom_name=key)
    logger.debug("Exported %d scene geometries", len(scene.geometry))
    return scene
