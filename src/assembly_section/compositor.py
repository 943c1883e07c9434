"""
Subassembly compositing: one layer in, one composite node out.

A subassembly is clipped member by member to the maximum assembly volume.
After clipping, every member but the first has the first member subtracted
from it, so inlays and punch-outs never re-occupy the base sheet's volume.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Sequence

from assembly_section.booleans import box_solid, flatten, intersect_node, subtract_node
from assembly_section.contracts import (
    ElementBase,
    Frame,
    Group,
    Infill,
    Layer,
    SectionOptions,
    Sheet,
    Unit,
    Void,
)
from assembly_section.errors import MalformedModelError
from assembly_section.materials import VOID_MATERIAL, TextureLoader, make_render_material
from assembly_section.scene import ORIGIN, SceneNode
from assembly_section.tiling import build_unitized

logger = logging.getLogger(__name__)

DEFAULT_LAYER_NAME = "layer name"


class SubassemblyCompositor:
    """Resolves layers into scene nodes for one section's configuration."""

    def __init__(self, options: SectionOptions, textures: Optional[TextureLoader] = None):
        self.options = options
        self.textures = textures
        self._builders: Dict[type, Callable[[ElementBase], SceneNode]] = {
            Sheet: self._build_slab,
            Frame: self._build_slab,
            Infill: self._build_slab,
            Void: self._build_void,
            Unit: self._build_unit,
        }

    def resolve(self, layer: Layer) -> SceneNode:
        """Resolve an element to its raw solid, or a group to its composite."""
        if isinstance(layer, Group):
            node = self._composite(layer.members)
        else:
            node = self._resolve_element(layer)
        node.name = layer.name or DEFAULT_LAYER_NAME
        return node

    def composite(self, layer: Layer) -> SceneNode:
        """Resolve a top-level layer; single elements are clipped like a group of one."""
        if isinstance(layer, Group):
            return self.resolve(layer)
        node = self._composite((layer,))
        node.name = layer.name or DEFAULT_LAYER_NAME
        return node

    def clipping_solid(self):
        o = self.options
        return box_solid((o.assembly_width, o.assembly_height, o.max_layer_thickness))

    # ─── Subassemblies ──────────────────────────────────────────────────────

    def _composite(self, members: Sequence[Layer]) -> SceneNode:
        if not members:
            raise MalformedModelError("empty subassembly")
        clip = self.clipping_solid()
        clipped: List[SceneNode] = []
        for member in members:
            node = self.resolve(member)
            # Shift so the content is centered on the footprint before clipping.
            node.position = [
                -(node.width / 2.0) + node.offset_x,
                -(node.height / 2.0) + node.offset_y,
                0.0,
            ]
            node = intersect_node(node, clip, placement=ORIGIN)
            self._center_footprint(node)
            clipped.append(node)

        if len(clipped) == 1:
            return clipped[0]

        base = clipped[0]
        base_solid = flatten(base)
        group = SceneNode(base.name, pickable=False)
        self._center_footprint(group)
        group.add(base)
        for item in clipped[1:]:
            punched = subtract_node(item, base_solid, placement=ORIGIN)
            self._center_footprint(punched)
            group.add(punched)
        logger.debug("Composited %d members onto base %s", len(clipped), base.name)
        return group

    def _center_footprint(self, node: SceneNode) -> None:
        w, h = self.options.assembly_width, self.options.assembly_height
        node.set_footprint(w, h, w / 2.0, h / 2.0)

    # ─── Elements ───────────────────────────────────────────────────────────

    def _resolve_element(self, element: ElementBase) -> SceneNode:
        builder = self._builders.get(type(element))
        if builder is None:
            raise MalformedModelError(f"No geometry builder for {type(element).__name__}")
        return builder(element)

    def _build_slab(self, element: ElementBase) -> SceneNode:
        return self._box_node(element, make_render_material(element.surface, self.textures))

    def _build_void(self, element: ElementBase) -> SceneNode:
        return self._box_node(element, make_render_material(VOID_MATERIAL))

    def _build_unit(self, element: ElementBase) -> SceneNode:
        return build_unitized(
            element,
            self.options.assembly_width,
            self.options.assembly_height,
            material=make_render_material(element.surface, self.textures),
        )

    def _box_node(self, element: ElementBase, material) -> SceneNode:
        width, height = element.carved_width, element.carved_height
        geometry = box_solid((width, height, element.carved_thickness))
        node = SceneNode(element.name, geometry=geometry, material=material)
        node.set_footprint(width, height, width / 2.0, height / 2.0)
        return node
