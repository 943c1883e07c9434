"""
Model normalization: default filling and parsing into the typed layer tree.

Raw models usually come from JSON::

    {"layers": [
        {"name": "gypsum", "thickness": 12.7},
        [{"type": "frame", "thickness": 90}, {"type": "void", "thickness": 90}],
        {"type": "unit", "width": 200, "height": 65, "thickness": 90},
    ]}

A nested list is a subassembly whose first member acts as the punch-out
base for the members after it, so member order matters.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, List, Mapping, MutableMapping, Optional, Sequence, Tuple, Union

from assembly_section.contracts import (
    ELEMENT_TYPES,
    ElementBase,
    Group,
    Layer,
    Material,
    Offset,
)
from assembly_section.errors import MalformedModelError
from assembly_section.materials import MATERIALS

logger = logging.getLogger(__name__)

RawModel = Union[Mapping[str, Any], Sequence[Any]]


def apply_defaults(node: Any, defaults: Mapping[str, Any]) -> None:
    """Fill missing keys in place; present keys always win.

    Sequences are walked recursively and keep their nesting. Applying twice
    is the same as applying once.
    """
    if isinstance(node, list):
        for entry in node:
            apply_defaults(entry, defaults)
        return
    if isinstance(node, MutableMapping):
        for key, value in defaults.items():
            if key not in node:
                node[key] = copy.deepcopy(value)


def model_layers(model: RawModel) -> List[Any]:
    """The top-level layer list of a raw model."""
    if isinstance(model, Mapping):
        layers = model.get("layers", [])
    else:
        layers = model
    if not isinstance(layers, list):
        raise MalformedModelError("Model layers must be a list")
    return layers


def normalize_model(model: RawModel, defaults: Mapping[str, Any]) -> Tuple[Layer, ...]:
    """Default the raw model in place and parse it into immutable layers."""
    layers = model_layers(model)
    apply_defaults(layers, defaults)
    parsed = tuple(parse_layer(raw, path=f"layers[{i}]") for i, raw in enumerate(layers))
    logger.info("Normalized model: %d layers", len(parsed))
    return parsed


def parse_layer(raw: Any, path: str = "layer") -> Layer:
    if isinstance(raw, list):
        if not raw:
            raise MalformedModelError(f"{path}: empty subassembly")
        members = tuple(parse_layer(m, path=f"{path}[{i}]") for i, m in enumerate(raw))
        return Group(members=members)
    if isinstance(raw, Mapping):
        return parse_element(raw, path=path)
    raise MalformedModelError(f"{path}: expected element mapping or list, got {type(raw).__name__}")


def parse_element(raw: Mapping[str, Any], path: str = "element") -> ElementBase:
    kind = raw.get("type")
    cls = ELEMENT_TYPES.get(kind) if isinstance(kind, str) else None
    if cls is None:
        raise MalformedModelError(f"{path}: unrecognized element type {kind!r}")
    try:
        return cls(
            name=str(raw["name"]),
            width=float(raw["width"]),
            height=float(raw["height"]),
            thickness=float(raw["thickness"]),
            max_layer_thickness=float(raw["maxLayerThickness"]),
            offset=Offset.from_mapping(raw.get("offset")),
            material=_parse_material(raw.get("material"), path),
            color=int(raw["color"]),
            opacity=float(raw["opacity"]),
            transparency=float(raw["transparency"]),
            construction_plane=float(raw["constructionPlane"]),
        )
    except KeyError as exc:
        raise MalformedModelError(f"{path}: missing attribute {exc.args[0]!r}") from exc
    except (TypeError, ValueError) as exc:
        raise MalformedModelError(f"{path}: {exc}") from exc


def layer_thickness(layer: Layer) -> float:
    """Own thickness of an element; thickest member of a subassembly."""
    if isinstance(layer, Group):
        return max(layer_thickness(m) for m in layer.members)
    return layer.thickness


def _parse_material(raw: Any, path: str) -> Optional[Material]:
    if raw is None:
        return None
    if isinstance(raw, str):
        material = MATERIALS.get(raw)
        if material is None:
            raise MalformedModelError(f"{path}: unknown material {raw!r}")
        return material
    if isinstance(raw, Mapping):
        return Material(
            color=int(raw.get("color", 0xCCCCCC)),
            opacity=float(raw.get("opacity", 1.0)),
            texture=raw.get("texture"),
        )
    raise MalformedModelError(f"{path}: material must be a name or mapping")
