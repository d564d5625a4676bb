import asyncio
import json
from collections import OrderedDict

import pytest

import catalog_cache
import wms_catalog
import wms_catalog_mcp
from catalog_errors import DataSourceError
from wms_catalog import CatalogRow, WMSCatalog
from wms_layers_catalog import WMS_LAYERS


ROWS = [
    CatalogRow("Global server", "https://global.example/wms", "Global Temperature", "temp_global",
               (-90, 90), (-180, 180)),
    CatalogRow("France server", "https://france.example/wms", "France Temperature", "temp_fr",
               (41, 51), (-5, 10)),
    CatalogRow("France server", "https://france.example/wms", "Rivers", "hydro_fr",
               (41, 51), (-5, 10)),
]


def loader(version):
    if version == "online":
        raise DataSourceError("réseau indisponible", version)
    return ROWS


@pytest.fixture(autouse=True)
def server_state(tmp_path, monkeypatch):
    monkeypatch.setattr(wms_catalog, "_default_catalog", WMSCatalog(loader=loader))
    monkeypatch.setattr(wms_catalog_mcp, "_result_sets", OrderedDict())
    monkeypatch.setattr(catalog_cache, "CACHE_DIR", tmp_path / "cache")


def call(name, **arguments):
    contents = asyncio.run(wms_catalog_mcp.call_tool(name, arguments))
    assert len(contents) == 1
    return contents[0].text


def call_json(name, **arguments):
    return json.loads(call(name, **arguments))


def test_tools_are_listed():
    tools = asyncio.run(wms_catalog_mcp.list_tools())
    assert [tool.name for tool in tools] == [
        "search_wms_layers",
        "refine_wms_layers",
        "refine_wms_layers_limits",
        "list_wms_servers",
        "describe_wms_layers",
        "get_wms_catalog_stats",
        "clear_wms_catalog_cache",
    ]


def test_search():
    payload = call_json("search_wms_layers", query="temperature")
    assert payload["count"] == 2
    assert payload["truncated"] is False
    assert [layer["layer_name"] for layer in payload["layers"]] == ["temp_global", "temp_fr"]
    assert payload["layers"][0]["latlim"] == [-90.0, 90.0]
    assert "abstract" not in payload["layers"][0]


def test_search_truncates_output():
    payload = call_json("search_wms_layers", query="*", max_results=1)
    assert payload["count"] == 3
    assert payload["truncated"] is True
    assert len(payload["layers"]) == 1


def test_refine_chain():
    first = call_json("search_wms_layers", query="*")
    refined = call_json("refine_wms_layers", result_id=first["result_id"], query="france", search_fields=["server"])
    assert [layer["layer_name"] for layer in refined["layers"]] == ["temp_fr", "hydro_fr"]

    limited = call_json("refine_wms_layers_limits", result_id=first["result_id"], latlim=[-80, -70])
    assert [layer["layer_name"] for layer in limited["layers"]] == ["temp_global"]
    assert limited["result_id"] != first["result_id"]


def test_refine_without_query_keeps_everything():
    first = call_json("search_wms_layers", query="*")
    refined = call_json("refine_wms_layers", result_id=first["result_id"])
    assert refined["count"] == first["count"]


def test_list_servers():
    first = call_json("search_wms_layers", query="*")
    payload = call_json("list_wms_servers", result_id=first["result_id"])
    assert payload["count"] == 2
    assert payload["servers"][0] == {"server_url": "https://france.example/wms", "server_title": "France server"}


def test_describe():
    first = call_json("search_wms_layers", query="rivers")
    text = call("describe_wms_layers", result_id=first["result_id"])
    assert text.splitlines()[0] == "  1 LayerCollection"
    assert "       LayerName: 'hydro_fr'" in text.splitlines()
    assert "Abstract" not in text


def test_describe_selected_properties():
    first = call_json("search_wms_layers", query="rivers")
    text = call("describe_wms_layers", result_id=first["result_id"], properties=["ServerURL"], label=False)
    assert "'https://france.example/wms'" in text.splitlines()
    assert "LayerName" not in text


def test_invalid_argument_is_reported():
    payload = call_json("search_wms_layers", query="*", latlim=[100, 110])
    assert payload["kind"] == "invalid_argument"
    assert payload["parameter"] == "Latlim"


def test_unknown_result_id():
    payload = call_json("refine_wms_layers", result_id="missing", query="a")
    assert payload["kind"] == "invalid_argument"
    assert payload["parameter"] == "result_id"


def test_oldest_result_is_forgotten(monkeypatch):
    monkeypatch.setattr(wms_catalog_mcp, "MAX_RESULT_SETS", 2)
    first = call_json("search_wms_layers", query="temp")["result_id"]
    second = call_json("search_wms_layers", query="rivers")["result_id"]
    # first redevient le plus récent, second sera oublié
    call_json("list_wms_servers", result_id=first)
    third = call_json("search_wms_layers", query="france")["result_id"]

    assert list(wms_catalog_mcp._result_sets) == [first, third]
    payload = call_json("refine_wms_layers", result_id=second, query="a")
    assert payload["kind"] == "invalid_argument"
    assert payload["parameter"] == "result_id"
    assert call_json("refine_wms_layers", result_id=first, query="france")["count"] == 1
    assert call_json("get_wms_catalog_stats")["result_sets_count"] == 2


def test_result_ids_are_unique():
    ids = {call_json("search_wms_layers", query="*")["result_id"] for _ in range(5)}
    assert len(ids) == 5


def test_data_source_error_is_reported():
    payload = call_json("search_wms_layers", query="*", version="online")
    assert payload["kind"] == "data_source"
    assert payload["version"] == "online"


def test_unknown_tool():
    payload = call_json("delete_everything")
    assert "Unknown tool" in payload["error"]


def test_stats():
    call_json("search_wms_layers", query="*")
    payload = call_json("get_wms_catalog_stats")
    assert payload["layers_count"] == len(WMS_LAYERS)
    assert payload["result_sets_count"] == 1
    assert payload["cached_catalogs"] == []


def test_clear_cache():
    catalog_cache.cache_catalog("https://catalog.example/layers.geojson", "{}")
    payload = call_json("clear_wms_catalog_cache")
    assert payload == {"removed_files": 2}
