"""
Pointer hover selection.

One object at a time is highlighted. The controller is a two-state machine
(``Idle`` / ``Hovering``) evaluated once per frame from the nearest ray hit:
every highlight it applies is paired with a restore of the saved appearance.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from assembly_section.scene import Camera, SceneNode, cast_ray

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SavedAppearance:
    color: int
    opacity: float


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True, eq=False)
class Hovering:
    node: SceneNode
    saved: SavedAppearance


SelectionState = Union[Idle, Hovering]


class SelectionController:
    """Highlights the nearest object under the pointer and restores it on exit."""

    def __init__(self, highlight_color: int = 0xFFFF00, highlight_opacity: Optional[float] = None):
        self.highlight_color = highlight_color
        self.highlight_opacity = highlight_opacity
        self.state: SelectionState = Idle()

    @property
    def selected(self) -> Optional[SceneNode]:
        return self.state.node if isinstance(self.state, Hovering) else None

    def update(self, hit: Optional[SceneNode]) -> SelectionState:
        """Advance one tick given the nearest hit node (or None)."""
        state = self.state
        if isinstance(state, Hovering):
            if hit is state.node:
                return state
            self._restore(state)
        if hit is None:
            self.state = Idle()
        else:
            self.state = self._highlight(hit)
        return self.state

    def pick(self, root: SceneNode, camera: Camera, pointer: Tuple[float, float]) -> Optional[SceneNode]:
        origin, direction = camera.ray(*pointer)
        hits = cast_ray(root, origin, direction)
        if not hits:
            return None
        logger.debug("Nearest hit %s at %.2f", hits[0].node.name, hits[0].distance)
        return hits[0].node

    def tick(self, root: SceneNode, camera: Camera, pointer: Tuple[float, float]) -> SelectionState:
        return self.update(self.pick(root, camera, pointer))

    def clear(self) -> None:
        """Drop any selection, restoring the highlighted node."""
        self.update(None)

    def _highlight(self, node: SceneNode) -> Hovering:
        material = node.material
        saved = SavedAppearance(color=material.color, opacity=material.opacity)
        material.color = self.highlight_color
        if self.highlight_opacity is not None:
            material.opacity = self.highlight_opacity
        return Hovering(node=node, saved=saved)

    @staticmethod
    def _restore(state: Hovering) -> None:
        state.node.material.color = state.saved.color
        state.node.material.opacity = state.saved.opacity
