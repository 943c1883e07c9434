"""Layer stacking along +Z, starting at the construction plane."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Sequence

from assembly_section.compositor import SubassemblyCompositor
from assembly_section.contracts import Layer, SectionOptions
from assembly_section.normalize import layer_thickness
from assembly_section.scene import SceneNode, bounding_box_helper

logger = logging.getLogger(__name__)

LAYER_BOX_COLOR = 0xFF0000
ASSEMBLY_BOX_COLOR = 0xFDC00D


@dataclass
class PlacedLayer:
    """A resolved layer and where it landed in the stack."""

    index: int
    name: str
    thickness: float
    z_min: float
    node: SceneNode

    @property
    def z_center(self) -> float:
        return self.z_min + self.thickness / 2.0

    @property
    def z_max(self) -> float:
        return self.z_min + self.thickness


@dataclass
class StackResult:
    root: SceneNode
    layers: List[PlacedLayer] = field(default_factory=list)
    helpers: List[SceneNode] = field(default_factory=list)

    @property
    def total_thickness(self) -> float:
        return sum(layer.thickness for layer in self.layers)


class LayerStackBuilder:
    """Places each resolved layer directly on top of the previous one."""

    def __init__(self, options: SectionOptions, compositor: SubassemblyCompositor):
        self.options = options
        self.compositor = compositor

    def effective_thickness(self, layer: Layer) -> float:
        return max(layer_thickness(layer), self.options.min_thickness)

    def build(self, layers: Sequence[Layer]) -> StackResult:
        root = SceneNode("assembly", pickable=False)
        result = StackResult(root=root)
        z = 0.0
        for index, layer in enumerate(layers):
            thickness = self.effective_thickness(layer)
            node = self.compositor.composite(layer)
            node.position = [0.0, 0.0, z + thickness / 2.0]
            root.add(node)
            result.layers.append(
                PlacedLayer(index=index, name=node.name, thickness=thickness, z_min=z, node=node)
            )
            z += thickness
            if self.options.show_layer_bounding_box:
                bounds = node.bounds()
                if bounds is not None:
                    result.helpers.append(
                        bounding_box_helper(bounds, LAYER_BOX_COLOR, f"{node.name} bounds")
                    )

        if self.options.show_assembly_bounding_box:
            bounds = root.bounds()
            if bounds is not None:
                result.helpers.append(
                    bounding_box_helper(bounds, ASSEMBLY_BOX_COLOR, "assembly bounds")
                )
        logger.info("Stacked %d layers, total thickness %.2f", len(result.layers), z)
        return result
