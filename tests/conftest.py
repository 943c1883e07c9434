"""
Shared test fixtures for the assembly section compiler.
"""
import copy
import sys
from pathlib import Path

import pytest
import trimesh

# Add src/ to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from assembly_section.compositor import SubassemblyCompositor
from assembly_section.contracts import DEFAULT_ELEMENT, SectionOptions
from assembly_section.stacking import LayerStackBuilder


@pytest.fixture
def options():
    """Default options without helpers: 500x500 footprint, min thickness 5."""
    return SectionOptions(
        show_assembly_bounding_box=False,
        show_layer_bounding_box=False,
        show_origin_marker=False,
    )


@pytest.fixture
def defaults():
    return copy.deepcopy(DEFAULT_ELEMENT)


@pytest.fixture
def compositor(options):
    return SubassemblyCompositor(options)


@pytest.fixture
def stack_builder(options, compositor):
    return LayerStackBuilder(options, compositor)


@pytest.fixture
def box_mesh():
    """A 100x100x100 box centered at the origin."""
    return trimesh.creation.box(extents=[100, 100, 100])


@pytest.fixture
def scenario_model():
    """Three layers, the middle one a two-member subassembly."""
    return {
        "layers": [
            {"name": "exterior", "thickness": 10},
            [
                {"name": "base", "thickness": 5},
                {"name": "inlay", "thickness": 20},
            ],
            {"name": "interior", "thickness": 8},
        ]
    }


@pytest.fixture
def wall_model():
    """A framed wall: sheathing, studs with insulation, brick veneer."""
    return {
        "layers": [
            {"name": "gypsum", "thickness": 12.7, "material": "gypsum_board"},
            [
                {
                    "name": "studs",
                    "type": "unit",
                    "width": 400,
                    "height": 500,
                    "thickness": 90,
                    "offset": {"left": 181, "right": 181},
                    "material": "timber_stud",
                },
                {"name": "insulation", "type": "infill", "thickness": 90, "material": "mineral_wool"},
            ],
            {"name": "air gap", "type": "void", "thickness": 25},
            {
                "name": "brick",
                "type": "unit",
                "width": 200,
                "height": 65,
                "thickness": 90,
                "offset": {"right": 10, "top": 10},
                "material": "brick",
            },
        ]
    }
