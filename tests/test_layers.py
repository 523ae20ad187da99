import pytest

from fakes import COUNTRY, point, square
from vigisaude.data.reference import get_sanitation_table
from vigisaude.maps.canvas import bounds_intersect
from vigisaude.maps.layers import (
    NO_DATA_FILL,
    disease_style,
    feature_bounds,
    heat_blobs,
    heat_radius,
    heatmap_svg,
    project,
    relief_markers,
    relief_radius,
    sanitation_color,
    sanitation_opacity,
    sanitation_style,
    state_bounds,
    state_popup_html,
    treatment_color,
)
from vigisaude.maps.legend import legend_for

SANITATION = get_sanitation_table()
PE = square(26, -9.5, -41.4, -7.3, -34.8)
SP = square(35, -25.3, -53.1, -19.8, -44.2)


@pytest.mark.parametrize(
    "pct, color",
    [(95, "#06b6d4"), (80, "#06b6d4"), (79.9, "#22d3ee"), (60, "#22d3ee"), (45, "#67e8f9"), (20, "#f59e0b"), (19.9, "#ef4444")],
)
def test_sanitation_ramp(pct, color):
    assert sanitation_color(pct) == color


def test_sanitation_opacity_scales_with_coverage():
    assert sanitation_opacity(0) == pytest.approx(0.35)
    assert sanitation_opacity(100) == pytest.approx(0.75)


@pytest.mark.parametrize("pct, color", [(70, "#06b6d4"), (55, "#22d3ee"), (40, "#a3e635"), (25, "#f59e0b"), (10, "#ef4444")])
def test_treatment_ramp(pct, color):
    assert treatment_color(pct) == color


def test_disease_style_colors_dims_and_filters_by_region():
    alerts = {"PE": point(202510, alert_level=4)}

    style = disease_style(alerts)
    assert style(PE)["fillColor"] == "#ef4444"
    assert style(PE)["fillOpacity"] == pytest.approx(0.55)
    assert style(SP)["fillColor"] == NO_DATA_FILL

    assert disease_style(alerts, "sudeste")(PE)["fillOpacity"] == pytest.approx(0.15)
    assert disease_style(alerts, "nordeste")(PE)["fillOpacity"] == pytest.approx(0.55)
    assert disease_style(alerts, dimmed=True)(PE)["fillOpacity"] == pytest.approx(0.1)


def test_sanitation_style_uses_requested_metric():
    record = SANITATION["SP"]
    collection = sanitation_style(SANITATION, "collection")(SP)
    treatment = sanitation_style(SANITATION, "treatment")(SP)
    assert collection["fillColor"] == sanitation_color(record.sewage_collection_pct)
    assert treatment["fillColor"] == sanitation_color(record.sewage_treatment_pct)
    assert treatment["fillOpacity"] == pytest.approx(sanitation_opacity(record.sewage_treatment_pct))


def test_feature_and_state_bounds():
    assert feature_bounds(PE) == ((-9.5, -41.4), (-7.3, -34.8))
    bounds = state_bounds(COUNTRY)
    assert set(bounds) == {35, 33, 26, 13}


def test_bounds_of_multipart_and_collection_geometries():
    multi = {
        "properties": {"codarea": "29"},
        "geometry": {
            "type": "MultiPolygon",
            "coordinates": [
                [[[-46.0, -18.0], [-45.0, -18.0], [-45.0, -17.0], [-46.0, -18.0]]],
                [[[-39.0, -10.0], [-37.5, -10.0], [-37.5, -8.5], [-39.0, -10.0]]],
            ],
        },
    }
    assert feature_bounds(multi) == ((-18.0, -46.0), (-8.5, -37.5))

    collection = {
        "properties": {"codarea": "15"},
        "geometry": {
            "type": "GeometryCollection",
            "geometries": [
                {"type": "Polygon", "coordinates": [[[-58.0, -9.0], [-47.0, -9.0], [-47.0, 2.5], [-58.0, -9.0]]]},
                {"type": "Point", "coordinates": [-46.5, -1.0]},
            ],
        },
    }
    assert feature_bounds(collection) == ((-9.0, -58.0), (2.5, -46.5))
    assert set(state_bounds({"features": [multi, collection]})) == {29, 15}

    assert feature_bounds({"properties": {"codarea": "11"}, "geometry": None}) is None


def test_viewport_intersection_uses_bounding_boxes():
    sp = ((-25.3, -53.1), (-19.8, -44.2))
    assert bounds_intersect(sp, ((-24.0, -48.0), (-22.0, -46.0)))
    assert bounds_intersect(sp, ((-19.8, -44.2), (-18.0, -40.0)))
    assert not bounds_intersect(sp, ((-23.4, -44.1), (-20.8, -40.9)))


def test_projection_maps_brazil_extent_onto_viewbox():
    assert project(5.27, -73.99) == pytest.approx((0.0, 0.0))
    assert project(-33.75, -34.79) == pytest.approx((1000.0, 800.0))


def test_heat_blobs_scale_against_max_over_loaded_diseases():
    blobs = heat_blobs({"dengue": {"PE": 400, "SP": 0}, "zika": {"PE": 100}})

    assert {(b.disease, b.uf) for b in blobs} == {("dengue", "PE"), ("zika", "PE")}
    radius = {b.disease: b.radius for b in blobs}
    assert radius["dengue"] == pytest.approx(200.0)
    assert radius["zika"] == pytest.approx(40 + 0.5 * 160)
    assert heat_radius(5, 1) == pytest.approx(40 + 5 ** 0.5 * 160)


def test_heatmap_svg_groups_blend_and_blur():
    svg = heatmap_svg(heat_blobs({"dengue": {"PE": 10}, "chikungunya": {"SP": 5}}))

    assert svg.startswith("<svg") and 'viewBox="0 0 1000 800"' in svg
    assert svg.count("mix-blend-mode: screen") == 2
    assert 'stdDeviation="28"' in svg
    assert 'fill="url(#grad-dengue)"' in svg


def test_relief_radius_normalization():
    assert relief_radius(90, 10, 90) == pytest.approx(55)
    assert relief_radius(10, 10, 90) == pytest.approx(10)
    assert relief_radius(50, 50, 50) == pytest.approx(10)


def test_relief_markers_per_state():
    markers = relief_markers(SANITATION)
    assert len(markers) == 4 * 27

    halo, core, dot, label = markers[:4]
    assert halo.radius == pytest.approx(core.radius + 5)
    assert halo.fill_opacity == pytest.approx(0.08)
    assert core.fill_opacity == pytest.approx(0.45)
    assert dot.fill_color == "#ffffff" and dot.radius >= 4
    assert label.kind == "label" and ">AC<" in label.html
    assert core.color == treatment_color(SANITATION["AC"].sewage_treatment_pct)


def test_state_popup_lists_alert_and_sanitation():
    html = state_popup_html("PE", point(202510, cases=1234, alert_level=3), "dengue", SANITATION["PE"])
    assert "Pernambuco (PE)" in html
    assert "1.234" in html and "SE 10/2025" in html
    assert "Alerta" in html and "IDH" in html
    assert "Sem dados de Dengue" in state_popup_html("PE", None, "dengue", None)


def test_legends_per_layer():
    assert legend_for("disease", "dengue").items[0].label == "Nível 1 — Verde"
    assert legend_for("heatmap", "dengue", loaded_diseases=["zika"]).note == "Intensidade por nº de casos"
    assert [i.label for i in legend_for("heatmap", "dengue", loaded_diseases=["zika"]).items] == ["Zika"]
    assert legend_for("sewageCollection", "dengue").items[0].label == "≥ 80% Coleta de Esgoto"
    assert legend_for("sewageRelief", "dengue").note == "Tamanho = % coleta · Cor = % tratamento"
    assert "Sem dados" in legend_for("disease", "zika").to_html()
