"""Tests for botanical name formatting and name-derived identifiers."""
from plantcards.services.plant_names import (
    build_full_plant_name,
    build_image_filename,
    generate_suffix,
    plant_display_name,
    render_plant_name,
    slugify,
)


def test_species_with_common_name_and_family():
    plant = {"genus": "Quercus", "specific_epithet": "robur", "common_name": "English oak", "family": "Fagaceae"}
    assert render_plant_name(plant) == "<i>Quercus</i> <i>robur</i>, English oak, <i>Fagaceae</i>"


def test_subspecies_rank_shown_as_ssp():
    plant = {
        "genus": "Cornus", "specific_epithet": "sericea",
        "infraspecies_rank": "subsp.", "infraspecies_epithet": "occidentalis",
    }
    assert render_plant_name(plant) == "<i>Cornus</i> <i>sericea</i> ssp. <i>occidentalis</i>"


def test_variety_forma_and_cultivar():
    plant = {
        "genus": "Acer", "specific_epithet": "palmatum",
        "variety": "dissectum", "forma": "atropurpureum", "cultivar": "Garnet",
    }
    assert render_plant_name(plant) == (
        "<i>Acer</i> <i>palmatum</i> var. <i>dissectum</i> f. <i>atropurpureum</i> 'Garnet'"
    )


def test_hybrid_marker_positions():
    before = {"genus": "Chitalpa", "specific_epithet": "tashkentensis",
              "hybrid_marker": "x", "hybrid_marker_position": "before_genus"}
    between = {"genus": "Mentha", "specific_epithet": "piperita",
               "hybrid_marker": "x", "hybrid_marker_position": "between_genus_species"}
    assert render_plant_name(before) == "x <i>Chitalpa</i> <i>tashkentensis</i>"
    assert render_plant_name(between) == "<i>Mentha</i> x <i>piperita</i>"


def test_hybrid_marker_without_position_is_ignored():
    plant = {"genus": "Mentha", "specific_epithet": "piperita", "hybrid_marker": "x"}
    assert render_plant_name(plant) == "<i>Mentha</i> <i>piperita</i>"


def test_empty_plant_renders_nothing():
    assert build_full_plant_name(None) == []
    assert build_full_plant_name({}) == []
    assert render_plant_name(None) == ""


def test_scientific_name_used_when_taxonomy_missing():
    parts = build_full_plant_name({"scientific_name": "Rosa canina", "common_name": "Dog rose"})
    assert [part.html() for part in parts] == ["<i>Rosa canina</i>", "Dog rose"]


def test_display_name_strips_tags():
    plant = {"genus": "Quercus", "specific_epithet": "robur", "common_name": "English oak"}
    assert plant_display_name(plant) == "Quercus robur, English oak"


def test_image_filename_from_name_fields():
    plant = {
        "genus": "Acer", "specific_epithet": "palmatum", "infraspecies_rank": "var.",
        "variety": "dissectum", "cultivar": "Red Dragon",
    }
    assert build_image_filename(plant) == "acer-palmatum-var-dissectum-reddragon"


def test_image_filename_drops_empty_and_collapses_hyphens():
    plant = {"genus": "Acer", "specific_epithet": "", "cultivar": "-Orange--Dream-"}
    assert build_image_filename(plant) == "acer-orange-dream-"


def test_suffix_is_base36():
    suffix = generate_suffix()
    assert len(suffix) == 4
    assert all(ch.isdigit() or ch.islower() for ch in suffix)


def test_slugify_removes_diacritics():
    assert slugify("Rosa × Hybrida 'Gloire de Dijon'") == "rosa-hybrida-gloire-de-dijon"
    assert slugify("Épilobe") == "epilobe"
    assert slugify(None) == ""
