"""
Recherche et raffinement dans le catalogue de couches WMS.

- search : recherche texte sur tout le catalogue, puis filtre géographique
  optionnel (ET logique)
- refine : nouvelle recherche texte sur une collection existante
- refine_limits : filtre géographique seul sur une collection existante

Tous les paramètres sont validés avant le moindre chargement ou filtrage.
Un résultat vide est une LayerCollection vide, jamais une erreur.
Enchaîner search puis refine / refine_limits équivaut à une seule recherche
combinant les mêmes critères.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from catalog_errors import InvalidArgumentError
from geo_limits import GeoExtent, contains, query_limits
from layer_matching import (
    DEFAULT_SEARCH_FIELDS,
    PARTIAL,
    resolve_search_fields,
    select,
    validate_ignore_case,
    validate_match_type,
    validate_query,
)
from wms_catalog import DEFAULT_VERSION, WMSCatalog, get_default_catalog, validate_version
from wms_layer import LayerCollection

logger = logging.getLogger(__name__)


def _require_collection(layers: Any) -> LayerCollection:
    if isinstance(layers, LayerCollection):
        return layers
    raise InvalidArgumentError("layers", f"une LayerCollection est attendue, pas {type(layers).__name__}")


def _apply_limits(layers: LayerCollection, latlim: GeoExtent, lonlim: GeoExtent) -> LayerCollection:
    return LayerCollection(
        layer for layer in layers
        if contains(layer.latlim, layer.lonlim, latlim, lonlim)
    )


def _apply_selection(layers: LayerCollection, selection: List[bool]) -> LayerCollection:
    return LayerCollection(layer for layer, selected in zip(layers, selection) if selected)


def search(
    query: str,
    search_fields: Any = DEFAULT_SEARCH_FIELDS,
    match_type: str = PARTIAL,
    ignore_case: bool = True,
    latlim: Any = None,
    lonlim: Any = None,
    version: str = DEFAULT_VERSION,
    catalog: Optional[WMSCatalog] = None,
) -> LayerCollection:
    """
    Recherche des couches dans le catalogue.

    Args:
        query: texte recherché, « * » pour n'importe quelle suite de caractères
        search_fields: champs interrogés (« layer », « server », « any »,
            « layertitle », « layername », « servertitle », « serverurl »,
            « abstract »), par défaut LayerName et LayerTitle
        match_type: « partial » (défaut) ou « exact »
        ignore_case: comparaison insensible à la casse (défaut True)
        latlim: [sud, nord] ou latitude d'un point ; les couches doivent
            contenir entièrement cette limite
        lonlim: [ouest, est] ou longitude d'un point
        version: « installed » (défaut), « custom » ou « online »
        catalog: catalogue à interroger (catalogue partagé par défaut)

    Returns:
        Les couches correspondantes, dans l'ordre du catalogue

    Raises:
        InvalidArgumentError: paramètre mal formé
        DataSourceError: catalogue indisponible pour cette version
    """
    query = validate_query(query)
    fields = resolve_search_fields(search_fields)
    match_type = validate_match_type(match_type)
    ignore_case = validate_ignore_case(ignore_case)
    latlim = query_limits("Latlim", latlim)
    lonlim = query_limits("Lonlim", lonlim)
    version = validate_version(version)

    catalog = catalog or get_default_catalog()
    layers = catalog.layers(version)

    found = _apply_selection(layers, select(layers, query, fields, match_type, ignore_case))
    if not latlim.is_empty or not lonlim.is_empty:
        found = _apply_limits(found, latlim, lonlim)

    logger.debug("search(%r, version=%s) : %d couche(s) sur %d", query, version, len(found), len(layers))
    return found


def refine(
    layers: LayerCollection,
    query: Optional[str] = None,
    search_fields: Any = DEFAULT_SEARCH_FIELDS,
    match_type: str = PARTIAL,
    ignore_case: bool = True,
) -> LayerCollection:
    """
    Raffine une collection par texte, avec les mêmes options que search.

    Les options sont validées d'abord ; ensuite, sans requête ou sur une
    collection vide, la collection est retournée telle quelle.
    """
    layers = _require_collection(layers)
    fields = resolve_search_fields(search_fields)
    match_type = validate_match_type(match_type)
    ignore_case = validate_ignore_case(ignore_case)
    if query is not None:
        query = validate_query(query)
    if query is None or len(layers) == 0:
        return layers

    selection = select(layers, query, fields, match_type, ignore_case)
    return _apply_selection(layers, selection)


def refine_limits(
    layers: LayerCollection,
    latlim: Any = None,
    lonlim: Any = None,
) -> LayerCollection:
    """
    Raffine une collection par limites géographiques.

    Une couche est retenue si ses limites contiennent entièrement [latlim] x
    [lonlim]. Un scalaire désigne un point. Sans limite, ou sur une collection
    vide, la collection est retournée telle quelle.
    """
    layers = _require_collection(layers)
    latlim = query_limits("Latlim", latlim)
    lonlim = query_limits("Lonlim", lonlim)
    if len(layers) == 0 or (latlim.is_empty and lonlim.is_empty):
        return layers
    return _apply_limits(layers, latlim, lonlim)
