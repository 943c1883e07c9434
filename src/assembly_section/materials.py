"""
Material catalog and render materials for assembly layers.

Catalog entries give common envelope materials a recognizable color so a
model can say ``"material": "mineral_wool"`` instead of spelling out colors.
Texture images load in the background; until a texture arrives (or when it
never does) the flat color is used.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

import numpy as np
from PIL import Image

from assembly_section.contracts import Material
from assembly_section.errors import MaterialLoadError

logger = logging.getLogger(__name__)


MATERIALS: Dict[str, Material] = {
    # Boards and sheathing
    "gypsum_board": Material(color=0xF2F0EB, opacity=1.0),
    "plywood_sheathing": Material(color=0xD4B896, opacity=1.0),
    "osb_sheathing": Material(color=0xC8A165, opacity=1.0),
    "cement_board": Material(color=0xB5B5AD, opacity=1.0),
    # Insulation and membranes
    "mineral_wool": Material(color=0xE8D36A, opacity=1.0),
    "rigid_insulation": Material(color=0xF5B7C8, opacity=1.0),
    "vapor_barrier": Material(color=0x5B8DB8, opacity=0.6),
    "weather_barrier": Material(color=0xE6E6F0, opacity=0.8),
    # Cladding and structure
    "brick": Material(color=0xA5533B, opacity=1.0),
    "concrete": Material(color=0x9E9E9E, opacity=1.0),
    "timber_stud": Material(color=0xDEB887, opacity=1.0),
    "steel_stud": Material(color=0xA8A8A8, opacity=1.0),
    "aluminum_mullion": Material(color=0xC0C0C0, opacity=1.0),
    "glass": Material(color=0xCFE8F3, opacity=0.35),
}

# Voids always render as a faint blue volume regardless of declared material.
VOID_MATERIAL = Material(color=0x9999FF, opacity=0.1)


def color_to_rgba(color: int, opacity: float = 1.0) -> np.ndarray:
    """Convert a 0xRRGGBB integer and opacity into a uint8 RGBA array."""
    return np.array(
        [
            (color >> 16) & 0xFF,
            (color >> 8) & 0xFF,
            color & 0xFF,
            int(round(max(0.0, min(1.0, opacity)) * 255)),
        ],
        dtype=np.uint8,
    )


class TextureHandle:
    """Shared slot a background texture load resolves into."""

    def __init__(self, path: str):
        self.path = path
        self.image: Optional[Image.Image] = None
        self.failed = False
        self._done = threading.Event()

    @property
    def ready(self) -> bool:
        return self.image is not None

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the load settled. Only tests and exporters need this."""
        return self._done.wait(timeout)

    def _settle(self, future: Future) -> None:
        exc = future.exception()
        if exc is not None:
            self.failed = True
            logger.warning("Could not load texture %s (%s); using flat color", self.path, exc)
        else:
            self.image = future.result()
        self._done.set()


@dataclass
class RenderMaterial:
    """Mutable per-node appearance. Selection highlighting edits it in place."""

    color: int = 0xCCCCCC
    opacity: float = 1.0
    texture: Optional[TextureHandle] = None

    def rgba(self) -> np.ndarray:
        return color_to_rgba(self.color, self.opacity)

    def copy(self) -> "RenderMaterial":
        # The texture handle is shared so late loads reach every copy.
        return dataclasses.replace(self)


def read_texture(path: str) -> Image.Image:
    """Read a texture image fully into memory."""
    try:
        with Image.open(Path(path)) as image:
            return image.convert("RGBA")
    except (OSError, ValueError) as exc:
        raise MaterialLoadError(f"Unreadable texture {path}: {exc}") from exc


class TextureLoader:
    """Fire-and-forget texture loading on a small thread pool."""

    def __init__(self, max_workers: int = 2):
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="texture"
        )
        self._handles: Dict[str, TextureHandle] = {}

    def request(self, path: str) -> TextureHandle:
        handle = self._handles.get(path)
        if handle is not None:
            return handle
        handle = TextureHandle(path)
        self._handles[path] = handle
        future = self._executor.submit(read_texture, path)
        future.add_done_callback(handle._settle)
        logger.debug("Requested texture %s", path)
        return handle

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


def make_render_material(
    material: Material,
    textures: Optional[TextureLoader] = None,
) -> RenderMaterial:
    """Create a node material; the texture (if any) arrives later."""
    handle = None
    if material.texture and textures is not None:
        handle = textures.request(material.texture)
    return RenderMaterial(color=material.color, opacity=material.opacity, texture=handle)
