import pytest

from catalog_errors import InvalidArgumentError
from layer_matching import match_values, resolve_search_fields, select
from wms_layer import NOT_FETCHED, LayerRecord


def test_exact_match_respects_case():
    assert match_values("Rivers", ["rivers", "Rivers"], "exact", ignore_case=False) == [False, True]


def test_exact_match_ignoring_case():
    assert match_values("Rivers", ["rivers", "RIVERS", "Rivers of France"], "exact", True) == [True, True, False]


def test_partial_match_anywhere():
    assert match_values("temp", ["Global Temperature", "temperature", "Attempt", "Rainfall"]) == [
        True, True, True, False,
    ]


def test_partial_match_case_sensitive():
    assert match_values("temp", ["Global Temperature", "temperature"], ignore_case=False) == [False, True]


def test_exact_star_is_literal():
    assert match_values("*", ["*", "anything", ""], "exact") == [True, False, False]


def test_partial_star_is_a_wildcard():
    values = ["Global Sea Surface Temperature", "Temperature (global)", "Global Rainfall"]
    assert match_values("global*temperature", values) == [True, False, False]
    assert match_values("*", values + [""]) == [True, True, True, True]


def test_partial_wildcard_escapes_other_characters():
    assert match_values("a.b", ["a.b", "axb"]) == [True, False]
    assert match_values("3DEP*Slope (", ["3DEPElevation:Slope (Degrees)"]) == [True]


def test_empty_query_matches_only_empty_values():
    assert match_values("", ["", "abc"]) == [True, False]
    assert match_values("", ["", "abc"], "exact") == [True, False]


def test_non_string_candidates_never_match():
    assert match_values("x", [NOT_FETCHED, None, "x"]) == [False, False, True]


@pytest.mark.parametrize(
    "fields, expected",
    [
        ("layer", ("LayerTitle", "LayerName")),
        ("SERVER", ("ServerURL", "ServerTitle")),
        ("any", ("Abstract", "LayerTitle", "LayerName", "ServerURL", "ServerTitle")),
        (["LayerName", "layertitle", "layer"], ("LayerName", "LayerTitle")),
        (("serverurl",), ("ServerURL",)),
    ],
)
def test_resolve_search_fields(fields, expected):
    assert resolve_search_fields(fields) == expected


@pytest.mark.parametrize("fields", ["layers", ["layer", "bogus"], [], 3, [None]])
def test_resolve_search_fields_rejects_unknown(fields):
    with pytest.raises(InvalidArgumentError) as excinfo:
        resolve_search_fields(fields)
    assert excinfo.value.parameter == "SearchFields"


def test_unknown_field_name_in_message():
    with pytest.raises(InvalidArgumentError, match="bogus"):
        resolve_search_fields(["layer", "bogus"])


@pytest.mark.parametrize("match_type", ["fuzzy", None, 1])
def test_invalid_match_type(match_type):
    with pytest.raises(InvalidArgumentError, match="MatchType"):
        match_values("a", ["a"], match_type)


def test_invalid_ignore_case():
    with pytest.raises(InvalidArgumentError, match="IgnoreCase"):
        match_values("a", ["a"], "partial", "yes")


def test_invalid_query():
    with pytest.raises(InvalidArgumentError, match="QueryStr"):
        match_values(["a"], ["a"])


def test_select_is_an_or_across_fields():
    layers = [
        LayerRecord(server_url="https://a.example/wms", layer_title="Rivers", layer_name="hydro"),
        LayerRecord(server_url="https://rivers.example/wms", layer_title="Roads", layer_name="roads"),
        LayerRecord(server_url="https://b.example/wms", layer_title="Lakes", layer_name="rivers_and_lakes"),
    ]
    assert select(layers, "rivers") == [True, False, True]
    assert select(layers, "rivers", "server") == [False, True, False]
    assert select(layers, "rivers", ["layertitle", "serverurl"]) == [True, True, False]


def test_select_skips_unfetched_abstract():
    fetched = LayerRecord(layer_name="a", abstract="Sea surface temperature")
    pending = LayerRecord.from_catalog_row("", "", "", "b", [], [])
    assert select([fetched, pending], "temperature", "abstract") == [True, False]
    assert select([fetched, pending], "", "abstract") == [False, False]
