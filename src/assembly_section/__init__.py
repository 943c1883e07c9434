"""Public API for compiling architectural assembly sections into 3D solids."""

from assembly_section.contracts import DEFAULT_ELEMENT, SectionOptions
from assembly_section.errors import (
    GeometryOperationError,
    MalformedModelError,
    MaterialLoadError,
)
from assembly_section.normalize import apply_defaults, normalize_model
from assembly_section.scene import Camera, SceneNode, Viewport
from assembly_section.section import Section

__all__ = [
    "DEFAULT_ELEMENT",
    "Camera",
    "GeometryOperationError",
    "MalformedModelError",
    "MaterialLoadError",
    "SceneNode",
    "Section",
    "SectionOptions",
    "Viewport",
    "apply_defaults",
    "normalize_model",
]
