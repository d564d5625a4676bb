import pytest

from catalog_errors import DataSourceError, InvalidArgumentError
from wms_catalog import CatalogRow, WMSCatalog
from wms_layer import LayerCollection, LayerRecord
from wms_layers_catalog import WMS_LAYERS
from wms_query import refine, refine_limits, search


ROWS = [
    CatalogRow("Global server", "https://global.example/wms", "Global Temperature", "temp_global",
               (-90, 90), (-180, 180)),
    CatalogRow("France server", "https://france.example/wms", "France Temperature", "temp_fr",
               (41, 51), (-5, 10)),
    CatalogRow("France server", "https://france.example/wms", "Rivers", "hydro_fr",
               (41, 51), (-5, 10)),
    CatalogRow("Ocean server", "https://ocean.example/wms", "Pacific Currents", "currents",
               (-60, 60), (120, 290)),
]


def names(layers):
    return [layer.layer_name for layer in layers]


@pytest.fixture
def catalog():
    return WMSCatalog(loader=lambda version: ROWS)


@pytest.fixture
def global_layers():
    return LayerCollection([
        LayerRecord(layer_name=f"layer_{i}", latlim=[-90, 90], lonlim=lonlim)
        for i, lonlim in enumerate([[-180, 180], [0, 360], [-180, 180]])
    ])


def test_search_text(catalog):
    found = search("temperature", catalog=catalog)
    assert isinstance(found, LayerCollection)
    assert names(found) == ["temp_global", "temp_fr"]


def test_search_keeps_catalog_order(catalog):
    assert names(search("*", catalog=catalog)) == ["temp_global", "temp_fr", "hydro_fr", "currents"]


def test_search_no_match_is_empty(catalog):
    found = search("volcano", catalog=catalog)
    assert isinstance(found, LayerCollection)
    assert len(found) == 0


def test_search_server_fields(catalog):
    assert names(search("france", "server", catalog=catalog)) == ["temp_fr", "hydro_fr"]
    assert names(search("france", catalog=catalog)) == ["temp_fr"]


def test_search_exact(catalog):
    assert names(search("rivers", match_type="exact", catalog=catalog)) == ["hydro_fr"]
    assert names(search("rivers", match_type="exact", ignore_case=False, catalog=catalog)) == []


def test_search_with_point(catalog):
    found = search("*", latlim=45, lonlim=2, catalog=catalog)
    assert names(found) == ["temp_global", "temp_fr", "hydro_fr"]


def test_search_with_limits_in_other_convention(catalog):
    assert names(search("*", lonlim=[-100, -80], catalog=catalog)) == ["temp_global", "currents"]
    assert names(search("*", latlim=[40, 50], catalog=catalog)) == ["temp_global", "currents"]


def test_search_requires_full_containment(catalog):
    # [40, 52] déborde des limites des couches françaises
    assert names(search("*", latlim=[40, 52], lonlim=[0, 5], catalog=catalog)) == ["temp_global"]


def test_invalid_limits_raise_before_loading():
    def loader(version):
        raise AssertionError("le catalogue ne doit pas être chargé")

    catalog = WMSCatalog(loader=loader)
    with pytest.raises(InvalidArgumentError) as excinfo:
        search("*", latlim=[100, 110], catalog=catalog)
    assert excinfo.value.parameter == "Latlim"
    assert not catalog.is_loaded("installed")


@pytest.mark.parametrize(
    "kwargs, parameter",
    [
        ({"version": "beta"}, "Version"),
        ({"match_type": "fuzzy"}, "MatchType"),
        ({"search_fields": "colour"}, "SearchFields"),
        ({"ignore_case": 1}, "IgnoreCase"),
        ({"lonlim": [-10, 200]}, "Lonlim"),
    ],
)
def test_search_argument_errors(kwargs, parameter):
    catalog = WMSCatalog(loader=lambda version: ROWS)
    with pytest.raises(InvalidArgumentError) as excinfo:
        search("*", catalog=catalog, **kwargs)
    assert excinfo.value.parameter == parameter


def test_search_query_must_be_text(catalog):
    with pytest.raises(InvalidArgumentError, match="QueryStr"):
        search(42, catalog=catalog)


def test_search_empty_catalog_is_a_data_source_error():
    catalog = WMSCatalog(loader=lambda version: [])
    with pytest.raises(DataSourceError) as excinfo:
        search("*", catalog=catalog)
    assert excinfo.value.version == "installed"


def test_refine_composes_with_search(catalog):
    everything = search("*", catalog=catalog)
    assert refine(everything, "temperature") == search("temperature", catalog=catalog)
    assert names(refine(search("temp", catalog=catalog), "france")) == ["temp_fr"]


def test_refine_limits_composes_with_search(catalog):
    combined = search("*", latlim=[42, 50], lonlim=[0, 5], catalog=catalog)
    chained = refine_limits(search("*", catalog=catalog), latlim=[42, 50], lonlim=[0, 5])
    assert combined == chained
    assert names(chained) == ["temp_global", "temp_fr", "hydro_fr"]


def test_results_do_not_share_mutable_state_with_catalog(catalog):
    first = search("rivers", catalog=catalog)
    with pytest.raises(AttributeError):
        first[0].latlim = [0, 1]
    moved = LayerCollection([first[0].with_limits(latlim=[0, 1])])
    assert moved[0].latlim.bounds == (0.0, 1.0)

    again = search("rivers", latlim=45, catalog=catalog)
    assert names(again) == ["hydro_fr"]
    assert again[0].latlim.bounds == (41.0, 51.0)
    assert first[0].latlim.bounds == (41.0, 51.0)


def test_refine_is_idempotent(catalog):
    once = refine(search("*", catalog=catalog), "temp")
    assert refine(once, "temp") == once


def test_refine_without_query_returns_input(catalog):
    layers = search("*", catalog=catalog)
    assert refine(layers) is layers
    assert refine(layers, None, match_type="exact") is layers


def test_refine_empty_collection_returns_input():
    empty = LayerCollection()
    assert refine(empty, "anything") is empty
    assert refine_limits(empty, latlim=[0, 1]) is empty


def test_refine_options(catalog):
    layers = search("*", catalog=catalog)
    assert names(refine(layers, "https://ocean.example/wms", "serverurl", "exact")) == ["currents"]
    assert names(refine(layers, "RIVERS", ignore_case=False)) == []


def test_refine_star_keeps_everything(global_layers):
    assert refine(global_layers, "*") == global_layers


def test_refine_limits_on_global_layers_keeps_everything(global_layers):
    assert refine_limits(global_layers, latlim=[-10, 10], lonlim=[170, 190]) == global_layers
    assert refine_limits(global_layers, latlim=0, lonlim=-179) == global_layers


def test_refine_limits_without_limits_returns_input(global_layers):
    assert refine_limits(global_layers) is global_layers
    assert refine_limits(global_layers, latlim=[], lonlim=None) is global_layers


@pytest.mark.parametrize(
    "args, kwargs, parameter",
    [
        ((None,), {"search_fields": "bogus"}, "SearchFields"),
        ((None,), {"match_type": "fuzzy"}, "MatchType"),
        ((None,), {"ignore_case": "no"}, "IgnoreCase"),
        ((42,), {}, "QueryStr"),
    ],
)
def test_refine_validates_before_shortcut(args, kwargs, parameter):
    for layers in (LayerCollection(), LayerCollection([LayerRecord(layer_name="a")])):
        with pytest.raises(InvalidArgumentError) as excinfo:
            refine(layers, *args, **kwargs)
        assert excinfo.value.parameter == parameter


def test_refine_limits_validates_even_when_empty():
    with pytest.raises(InvalidArgumentError, match="Lonlim"):
        refine_limits(LayerCollection(), lonlim=["a", "b"])


def test_refine_requires_a_collection():
    with pytest.raises(InvalidArgumentError) as excinfo:
        refine([LayerRecord()], "a")
    assert excinfo.value.parameter == "layers"
    with pytest.raises(InvalidArgumentError):
        refine_limits("layers", latlim=0)


def test_collection_methods_delegate(catalog):
    layers = search("*", catalog=catalog)
    assert layers.refine("rivers") == refine(layers, "rivers")
    assert layers.refine_limits(latlim=0) == refine_limits(layers, latlim=0)


def test_catalog_is_loaded_once():
    calls = []

    def loader(version):
        calls.append(version)
        return ROWS

    catalog = WMSCatalog(loader=loader)
    search("temp", catalog=catalog)
    search("rivers", catalog=catalog)
    assert calls == ["installed"]


def test_installed_catalog():
    catalog = WMSCatalog()
    everything = search("*", catalog=catalog)
    assert len(everything) == len(WMS_LAYERS)

    found = search("temperature", catalog=catalog)
    assert "Global Temperature Anomalies 1880-2020" in [layer.layer_title for layer in found]
    assert all(not layer.to_dict().get("abstract") for layer in found)

    pacific = search("currents", lonlim=[-150, -120], catalog=catalog)
    assert names(pacific) == ["3827_23000"]
