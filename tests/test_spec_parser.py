from utils.spec_parser import (
    CHEMICAL_KEYS,
    parse_chemical_composition,
    parse_hardness,
    parse_master_specs,
    parse_microstructure,
    parse_tensile,
)


def test_chemistry_from_dict_and_json():
    out = parse_chemical_composition({"C": "3.5-3.8", "Silicon": 2.4, "Ni": "1"})
    assert set(out) == set(CHEMICAL_KEYS)
    assert out["c"] == "3.5-3.8"
    assert out["si"] == "2.4"
    assert out["mn"] == ""

    assert parse_chemical_composition('{"mg": "0.04"}')["mg"] == "0.04"


def test_chemistry_from_free_text():
    out = parse_chemical_composition("C: 3.5% Si: 2.1% Mn 0.4 Cu=0.5-0.7")
    assert out["c"] == "3.5"
    assert out["si"] == "2.1"
    assert out["mn"] == "0.4"
    assert out["cu"] == "0.5-0.7"


def test_chemistry_blank_input():
    assert parse_chemical_composition(None) == {k: "" for k in CHEMICAL_KEYS}
    assert parse_chemical_composition(42) == {k: "" for k in CHEMICAL_KEYS}


def test_tensile_in_order():
    out = parse_tensile("≥ 500 MPa, ≥ 320 MPa, ≥ 7%")
    assert out["tensile_strength"] == "≥500"
    assert out["yield_strength"] == "≥320"
    assert out["elongation"] == "≥7"


def test_tensile_single_line_by_keyword():
    out = parse_tensile("Yield strength 320 min")
    assert out["yield_strength"] == "≥320"
    assert out["tensile_strength"] == ""


def test_tensile_impact_lines():
    out = parse_tensile("500 MPa\n320 MPa\nImpact at -20°C: 12 J min\nImpact room temp: 17 J")
    assert out["impact_cold"] == "≥12"
    assert out["impact_room"] == "17"


def test_microstructure():
    out = parse_microstructure("Nodularity: 85% min\nPearlite: 40-60%\nCarbide: 5% max")
    assert out == {"nodularity": "≥85", "pearlite": "40-60", "carbide": "≤5"}
    assert parse_microstructure("") == {"nodularity": "--", "pearlite": "--", "carbide": "--"}


def test_hardness():
    assert parse_hardness("Surface: 170-230 BHN\nCore: 160-220 BHN") == {"surface": "170-230", "core": "160-220"}
    assert parse_hardness("200 BHN") == {"surface": "200", "core": "--"}
    assert parse_hardness(None) == {"surface": "--", "core": "--"}


def test_master_specs_from_dict():
    specs = parse_master_specs({"chemical_composition": {"c": "3.6"}, "xray": "Level 2"})
    assert specs["chemical_composition"]["c"] == "3.6"
    assert specs["xray"] == "Level 2"
    assert specs["impact"] == ""
    assert specs["hardness"] == {"surface": "--", "core": "--"}
