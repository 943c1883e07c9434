"""Contracts for the assembly section compiler.

Raw models are loosely structured JSON-like data (mappings and lists). They
are defaulted and parsed once into the immutable tree defined here: every
layer is either one of the element variants or a ``Group`` of layers.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple, Union


Vec3 = Tuple[float, float, float]

# Defaults for every element attribute. Width/height of the default element
# double as the assembly footprint.
DEFAULT_ELEMENT: Dict[str, Any] = {
    "name": "element",
    "constructionPlane": 90,  # degrees around the X axis
    "height": 500,
    "width": 500,
    "thickness": 10,
    "maxLayerThickness": 1000,
    "color": 0xCCCCCC,
    "opacity": 1.0,
    "material": None,
    "transparency": 1.0,
    "type": "sheet",  # sheet, unit, frame, infill, void
    "offset": {"top": 0, "left": 0, "bottom": 0, "right": 0, "front": 0, "back": 0},
}


@dataclass(frozen=True)
class Offset:
    """Inset of an element's carved solid from its declared envelope."""

    top: float = 0.0
    left: float = 0.0
    bottom: float = 0.0
    right: float = 0.0
    front: float = 0.0
    back: float = 0.0

    @classmethod
    def from_mapping(cls, values: Optional[Mapping[str, Any]]) -> "Offset":
        if not values:
            return cls()
        if not isinstance(values, Mapping):
            raise TypeError(f"offset must be a mapping, got {type(values).__name__}")
        return cls(**{k: float(values.get(k, 0.0)) for k in cls.__dataclass_fields__})


@dataclass(frozen=True)
class Material:
    """Surface description: flat color plus an optional texture reference."""

    color: int = 0xCCCCCC
    opacity: float = 1.0
    texture: Optional[str] = None


@dataclass(frozen=True)
class ElementBase:
    """Fields shared by every element variant."""

    name: str
    width: float
    height: float
    thickness: float
    max_layer_thickness: float = 1000.0
    offset: Offset = field(default_factory=Offset)
    material: Optional[Material] = None
    color: int = 0xCCCCCC
    opacity: float = 1.0
    transparency: float = 1.0
    construction_plane: float = 90.0

    @property
    def carved_width(self) -> float:
        return self.width - self.offset.left - self.offset.right

    @property
    def carved_height(self) -> float:
        return self.height - self.offset.top - self.offset.bottom

    @property
    def carved_thickness(self) -> float:
        return self.thickness - self.offset.front - self.offset.back

    @property
    def surface(self) -> Material:
        """Declared material, or the element's own color/opacity."""
        if self.material is not None:
            return self.material
        return Material(color=self.color, opacity=self.opacity)


@dataclass(frozen=True)
class Sheet(ElementBase):
    """Continuous sheet material spanning the footprint."""


@dataclass(frozen=True)
class Unit(ElementBase):
    """Repeating unit cell tiled across the footprint."""


@dataclass(frozen=True)
class Frame(ElementBase):
    """Framing layer, rendered as a solid slab."""


@dataclass(frozen=True)
class Infill(ElementBase):
    """Infill between framing members."""


@dataclass(frozen=True)
class Void(ElementBase):
    """Air space or cavity."""


Element = Union[Sheet, Unit, Frame, Infill, Void]

ELEMENT_TYPES: Dict[str, type] = {
    "sheet": Sheet,
    "unit": Unit,
    "frame": Frame,
    "infill": Infill,
    "void": Void,
}


@dataclass(frozen=True)
class Group:
    """Ordered subassembly. The first member is the punch-out base."""

    members: Tuple["Layer", ...]
    name: Optional[str] = None


Layer = Union[ElementBase, Group]


# Option keys as the host application passes them, mapped to field names.
_OPTION_KEYS = {
    "background": "background",
    "debug": "debug",
    "defaultElement": "default_element",
    "enableSelection": "enable_selection",
    "fps": "fps",
    "minThickness": "min_thickness",
    "selectedMaterialColor": "selected_material_color",
    "selectedMaterialOpacity": "selected_material_opacity",
    "showAssemblyBoundingBox": "show_assembly_bounding_box",
    "showLayerBoundingBox": "show_layer_bounding_box",
    "showOriginMarker": "show_origin_marker",
}


@dataclass(frozen=True)
class SectionOptions:
    """Configuration snapshot for one section visualization."""

    background: int = 0xFFFFFF
    debug: bool = False
    default_element: Dict[str, Any] = field(
        default_factory=lambda: copy.deepcopy(DEFAULT_ELEMENT)
    )
    enable_selection: bool = False
    fps: float = 30.0
    # Selection misbehaves on layers thinner than this.
    min_thickness: float = 5.0
    selected_material_color: int = 0xFFFF00
    selected_material_opacity: float = 0.2
    show_assembly_bounding_box: bool = True
    show_layer_bounding_box: bool = True
    show_origin_marker: bool = True

    def __post_init__(self):
        if not self.min_thickness > 0:
            raise ValueError(f"minThickness must be positive, got {self.min_thickness}")

    @property
    def assembly_width(self) -> float:
        return float(self.default_element["width"])

    @property
    def assembly_height(self) -> float:
        return float(self.default_element["height"])

    @property
    def max_layer_thickness(self) -> float:
        return float(self.default_element["maxLayerThickness"])

    @classmethod
    def from_dict(cls, values: Optional[Mapping[str, Any]] = None) -> "SectionOptions":
        """Build options from camelCase or snake_case keys.

        A partial ``defaultElement`` is completed from ``DEFAULT_ELEMENT``.
        """
        kwargs: Dict[str, Any] = {}
        fields = set(cls.__dataclass_fields__)
        for key, value in (values or {}).items():
            name = _OPTION_KEYS.get(key, key)
            if name not in fields:
                raise ValueError(f"Unknown section option: {key}")
            kwargs[name] = value
        if "default_element" in kwargs:
            element = copy.deepcopy(dict(kwargs["default_element"]))
            for key, value in DEFAULT_ELEMENT.items():
                element.setdefault(key, copy.deepcopy(value))
            kwargs["default_element"] = element
        return cls(**kwargs)
