"""
Section: one visualization instance of an assembly.

Owns the scene graph, camera, selection state and configuration snapshot.
Rendering, camera controls and the frame loop belong to the host; the host
calls ``set_pointer`` on pointer moves and ``tick`` once per frame.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

import trimesh

from assembly_section.compositor import SubassemblyCompositor
from assembly_section.contracts import SectionOptions
from assembly_section.materials import TextureLoader
from assembly_section.normalize import RawModel, normalize_model
from assembly_section.scene import Camera, SceneNode, Viewport, origin_marker, to_trimesh_scene
from assembly_section.selection import SelectionController, SelectionState
from assembly_section.stacking import LayerStackBuilder, StackResult

logger = logging.getLogger(__name__)

PACKAGE_LOGGER = "assembly_section"


class Section:
    """Compile an assembly model into a scene and track pointer selection.

    Args:
        viewport: Host drawing surface size
        model: Raw model (list of layers or mapping with ``layers``)
        options: ``SectionOptions`` or a mapping of option keys
    """

    def __init__(
        self,
        viewport: Viewport,
        model: RawModel,
        options: Union[SectionOptions, Mapping[str, Any], None] = None,
    ):
        if not isinstance(options, SectionOptions):
            options = SectionOptions.from_dict(options)
        self.options = options
        self.model = model
        self.viewport = viewport
        self.handlers: Dict[str, List[Callable[..., Any]]] = {}
        self.pointer = (0.0, 0.0)
        self.stack: Optional[StackResult] = None

        if options.debug:
            logging.getLogger(PACKAGE_LOGGER).setLevel(logging.DEBUG)

        self.scene = SceneNode("scene", pickable=False)
        self.camera = Camera.for_assembly(
            options.assembly_width, options.assembly_height, aspect=viewport.aspect
        )
        self.textures = TextureLoader()
        self.selection = SelectionController(
            highlight_color=options.selected_material_color,
            highlight_opacity=options.selected_material_opacity,
        )
        self._helpers: List[SceneNode] = []
        if options.show_origin_marker:
            self.scene.add(origin_marker(500.0))

    def build(self) -> SceneNode:
        """Populate the scene from the model and return the assembly root.

        A malformed model raises before anything is added to the scene.
        """
        self.clear()
        layers = normalize_model(self.model, self.options.default_element)
        compositor = SubassemblyCompositor(self.options, textures=self.textures)
        stack = LayerStackBuilder(self.options, compositor).build(layers)

        self.stack = stack
        self.scene.add(stack.root)
        for helper in stack.helpers:
            self.scene.add(helper)
        self._helpers = list(stack.helpers)
        logger.info("Built section with %d layers", len(stack.layers))
        return stack.root

    def clear(self) -> None:
        """Remove the built assembly and its helpers from the scene."""
        self.selection.clear()
        if self.stack is not None:
            self.scene.remove(self.stack.root)
            self.stack = None
        for helper in self._helpers:
            self.scene.remove(helper)
        self._helpers = []

    def on(self, event: str, handler: Callable[..., Any]) -> None:
        """Register an event handler. No events are emitted yet."""
        self.handlers.setdefault(event, []).append(handler)

    def set_pointer(self, px: float, py: float) -> None:
        """Record the pointer position in viewport pixels."""
        self.pointer = self.viewport.normalize(px, py)

    def tick(self) -> Optional[SelectionState]:
        """Per-frame selection update; no-op unless selection is enabled."""
        if not self.options.enable_selection:
            return None
        return self.selection.tick(self.scene, self.camera, self.pointer)

    def to_trimesh_scene(self) -> trimesh.Scene:
        return to_trimesh_scene(self.scene, background=self.options.background)

    def export(self, path: Union[str, Path]) -> Path:
        """Write the scene to a mesh file; format follows the suffix (.glb, .ply, ...)."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.to_trimesh_scene().export(str(path))
        logger.info("Exported section: %s", path)
        return path

    def close(self) -> None:
        self.clear()
        self.textures.shutdown(wait=False)
