"""Tests for model normalization and option parsing."""
import copy

import pytest

from assembly_section.contracts import (
    DEFAULT_ELEMENT,
    Frame,
    Group,
    Infill,
    Material,
    SectionOptions,
    Sheet,
    Unit,
    Void,
)
from assembly_section.errors import MalformedModelError
from assembly_section.materials import MATERIALS
from assembly_section.normalize import (
    apply_defaults,
    layer_thickness,
    model_layers,
    normalize_model,
    parse_layer,
)


class TestApplyDefaults:
    """Missing keys are filled; present keys win; structure is preserved."""

    def test_fills_missing_keys(self, defaults):
        element = {"name": "osb"}
        apply_defaults(element, defaults)
        assert element["name"] == "osb"
        assert element["thickness"] == 10
        assert element["type"] == "sheet"
        assert element["offset"]["front"] == 0

    def test_never_overwrites(self, defaults):
        element = {"thickness": 42, "type": "void", "offset": {"front": 3}}
        apply_defaults(element, defaults)
        assert element["thickness"] == 42
        assert element["type"] == "void"
        assert element["offset"] == {"front": 3}

    def test_nested_structure_preserved(self, defaults):
        model = [{"name": "a"}, [{"name": "b"}, [{"name": "c"}]]]
        apply_defaults(model, defaults)
        assert isinstance(model[1], list)
        assert isinstance(model[1][1], list)
        assert model[1][1][0]["name"] == "c"
        assert model[1][1][0]["thickness"] == 10

    def test_idempotent(self, defaults, scenario_model):
        once = copy.deepcopy(scenario_model["layers"])
        apply_defaults(once, defaults)
        twice = copy.deepcopy(once)
        apply_defaults(twice, defaults)
        assert once == twice

    def test_defaults_not_aliased(self, defaults):
        a, b = {}, {}
        apply_defaults([a, b], defaults)
        a["offset"]["front"] = 7
        assert b["offset"]["front"] == 0
        assert defaults["offset"]["front"] == 0


class TestNormalizeModel:
    """Parsing into the typed layer tree."""

    def test_variants(self, defaults):
        raw = [{"type": t} for t in ("sheet", "unit", "frame", "infill", "void")]
        layers = normalize_model(raw, defaults)
        assert [type(layer) for layer in layers] == [Sheet, Unit, Frame, Infill, Void]

    def test_mapping_and_list_models(self, defaults, scenario_model):
        from_mapping = normalize_model(copy.deepcopy(scenario_model), defaults)
        from_list = normalize_model(copy.deepcopy(scenario_model["layers"]), defaults)
        assert from_mapping == from_list
        assert isinstance(from_mapping[1], Group)
        assert [m.name for m in from_mapping[1].members] == ["base", "inlay"]

    def test_mutates_raw_model_in_place(self, defaults, scenario_model):
        normalize_model(scenario_model, defaults)
        assert scenario_model["layers"][0]["type"] == "sheet"
        assert scenario_model["layers"][1][0]["width"] == 500

    def test_unknown_type_raises(self, defaults):
        with pytest.raises(MalformedModelError, match="unrecognized element type"):
            normalize_model([{"type": "membrane"}], defaults)

    @pytest.mark.parametrize("kind", [["sheet"], {"sheet": 1}, 3])
    def test_non_string_type_raises(self, defaults, kind):
        with pytest.raises(MalformedModelError, match="unrecognized element type"):
            normalize_model([{"type": kind}], defaults)

    @pytest.mark.parametrize("offset", [5, "top", [1, 2], {"top": None}, {"left": "wide"}])
    def test_bad_offset_raises(self, defaults, offset):
        with pytest.raises(MalformedModelError, match=r"layers\[0\]"):
            normalize_model([{"offset": offset}], defaults)

    def test_empty_subassembly_raises(self, defaults):
        with pytest.raises(MalformedModelError, match="empty subassembly"):
            normalize_model([{"name": "a"}, []], defaults)

    def test_non_list_layers_raise(self):
        with pytest.raises(MalformedModelError):
            model_layers({"layers": "gypsum"})

    def test_scalar_entry_raises(self):
        with pytest.raises(MalformedModelError):
            parse_layer(12)

    def test_offsets_and_carving(self, defaults):
        (element,) = normalize_model(
            [{"width": 200, "height": 100, "thickness": 30,
              "offset": {"left": 5, "right": 15, "top": 10, "front": 2, "back": 3}}],
            defaults,
        )
        assert element.carved_width == pytest.approx(180)
        assert element.carved_height == pytest.approx(90)
        assert element.carved_thickness == pytest.approx(25)

    def test_material_from_catalog(self, defaults):
        (element,) = normalize_model([{"material": "brick"}], defaults)
        assert element.surface == MATERIALS["brick"]

    def test_material_mapping(self, defaults):
        (element,) = normalize_model(
            [{"material": {"color": 0x112233, "opacity": 0.5, "texture": "wood.png"}}],
            defaults,
        )
        assert element.surface == Material(color=0x112233, opacity=0.5, texture="wood.png")

    def test_element_color_when_no_material(self, defaults):
        (element,) = normalize_model([{"color": 0xABCDEF, "opacity": 0.4}], defaults)
        assert element.surface == Material(color=0xABCDEF, opacity=0.4)

    def test_unknown_material_raises(self, defaults):
        with pytest.raises(MalformedModelError, match="unknown material"):
            normalize_model([{"material": "unobtainium"}], defaults)


class TestLayerThickness:

    def test_element(self, defaults):
        (layer,) = normalize_model([{"thickness": 12}], defaults)
        assert layer_thickness(layer) == 12

    def test_group_uses_thickest_member(self, defaults):
        (layer,) = normalize_model([[{"thickness": 5}, [{"thickness": 3}, {"thickness": 30}]]], defaults)
        assert layer_thickness(layer) == 30


class TestSectionOptions:

    def test_default_values(self):
        options = SectionOptions()
        assert options.min_thickness == 5
        assert options.selected_material_color == 0xFFFF00
        assert options.assembly_width == 500
        assert options.max_layer_thickness == 1000

    def test_camel_case_keys(self):
        options = SectionOptions.from_dict(
            {"minThickness": 2, "enableSelection": True, "showOriginMarker": False}
        )
        assert options.min_thickness == 2
        assert options.enable_selection is True
        assert options.show_origin_marker is False

    def test_snake_case_keys(self):
        assert SectionOptions.from_dict({"min_thickness": 3}).min_thickness == 3

    def test_partial_default_element_completed(self):
        options = SectionOptions.from_dict({"defaultElement": {"width": 1200}})
        assert options.assembly_width == 1200
        assert options.assembly_height == DEFAULT_ELEMENT["height"]
        assert options.default_element["offset"] == DEFAULT_ELEMENT["offset"]

    @pytest.mark.parametrize("value", [0, -2.5])
    def test_non_positive_min_thickness_rejected(self, value):
        with pytest.raises(ValueError, match="minThickness must be positive"):
            SectionOptions(min_thickness=value)
        with pytest.raises(ValueError):
            SectionOptions.from_dict({"minThickness": value})

    def test_unknown_key_raises(self):
        with pytest.raises(ValueError, match="Unknown section option"):
            SectionOptions.from_dict({"antialias": True})
