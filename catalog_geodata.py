"""
Lecture de catalogues de couches WMS au format géographique (GeoPandas).

Un catalogue géographique contient une entité par couche :
- attributs server_title, server_url, layer_title, layer_name (les variantes
  CamelCase ServerTitle, serverURL, ... sont acceptées)
- géométrie : emprise de la couche ; ses bornes donnent Latlim et Lonlim
  (une géométrie nulle donne des limites vides)

Formats : GeoJSON et KML en texte UTF-8, GeoPackage et Shapefile zippé en
binaire (base64 lorsqu'ils sont transmis sous forme de texte).
"""

from __future__ import annotations

import base64
import binascii
import math
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import geopandas as gpd


CATALOG_FORMATS = ("geojson", "kml", "gpkg", "shapefile")
FORMAT_ALIASES = {"json": "geojson", "shp": "shapefile", "zip": "shapefile"}
# Formats transmis en base64 ; les autres sont du texte UTF-8
BINARY_FORMATS = {"gpkg": "catalog.gpkg", "shapefile": "catalog.zip"}
TEXT_FORMATS = {"geojson": "catalog.geojson", "kml": "catalog.kml"}

CATALOG_CRS = "EPSG:4326"

EXTENSION_FORMATS = {
    ".geojson": "geojson",
    ".json": "geojson",
    ".kml": "kml",
    ".gpkg": "gpkg",
    ".zip": "shapefile",
    ".shp": "shapefile",
}

CATALOG_COLUMNS = ("server_title", "server_url", "layer_title", "layer_name")


class CatalogDataError(ValueError):
    """Catalogue géographique illisible ou mal formé."""


def normalize_format(fmt: str) -> str:
    """Nom canonique d'un format de catalogue (« json » désigne du GeoJSON)."""
    if not fmt:
        raise CatalogDataError("Le format n'a pas été fourni.")
    key = str(fmt).lower()
    key = FORMAT_ALIASES.get(key, key)
    if key not in CATALOG_FORMATS:
        raise CatalogDataError(
            f"Format « {fmt} » non supporté. Formats acceptés : {', '.join(CATALOG_FORMATS)}."
        )
    return key


def format_from_path(path: Union[str, Path]) -> str:
    suffix = Path(path).suffix.lower()
    try:
        return EXTENSION_FORMATS[suffix]
    except KeyError:
        raise CatalogDataError(f"Extension « {suffix} » non reconnue pour {path}") from None


def read_geodata_file(path: Union[str, Path], input_format: Optional[str] = None) -> gpd.GeoDataFrame:
    """Lit un fichier catalogue (GeoJSON, KML, GeoPackage ou Shapefile)."""
    path = Path(path)
    fmt = normalize_format(input_format) if input_format else format_from_path(path)
    if not path.exists():
        raise CatalogDataError(f"Fichier catalogue introuvable : {path}")

    source = str(path)
    if fmt == "shapefile" and path.suffix.lower() == ".zip":
        source = f"zip://{path}"

    try:
        return gpd.read_file(source)
    except Exception as exc:
        raise CatalogDataError(f"Lecture impossible de {path} : {exc}") from exc


def load_geodata(data: str, input_format: str) -> gpd.GeoDataFrame:
    """Lit un catalogue transmis sous forme de texte (ou base64 pour les formats binaires)."""
    fmt = normalize_format(input_format)
    if data is None:
        raise CatalogDataError("Aucune donnée de catalogue fournie.")

    with tempfile.TemporaryDirectory() as tmpdir:
        if fmt in BINARY_FORMATS:
            path = Path(tmpdir) / BINARY_FORMATS[fmt]
            try:
                path.write_bytes(base64.b64decode(data, validate=True))
            except (binascii.Error, ValueError) as exc:
                raise CatalogDataError(f"Contenu {fmt} invalide : base64 attendu ({exc})") from exc
        else:
            path = Path(tmpdir) / TEXT_FORMATS[fmt]
            path.write_text(data, encoding="utf-8")
        return read_geodata_file(path, fmt)


# Les noms de champs DBF (Shapefile) sont tronqués à 10 caractères
DBF_FIELD_WIDTH = 10


def _column_keys(name: str) -> List[str]:
    camel = name.title().replace("_", "")
    return [
        name.replace("_", ""),
        name[:DBF_FIELD_WIDTH].replace("_", ""),
        camel[:DBF_FIELD_WIDTH].lower(),
    ]


def _column_lookup(gdf: gpd.GeoDataFrame) -> Dict[str, str]:
    lookup = {}
    for column in gdf.columns:
        key = str(column).replace("_", "").lower()
        lookup.setdefault(key, column)

    found = {}
    for name in CATALOG_COLUMNS:
        for key in _column_keys(name):
            if key in lookup:
                found[name] = lookup[key]
                break
    missing = [name for name in CATALOG_COLUMNS if name not in found]
    if missing:
        raise CatalogDataError(f"Colonnes manquantes dans le catalogue : {', '.join(missing)}")
    return found


def _text(value: Any) -> str:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return ""
    return str(value)


def _limits(low: float, high: float) -> List[float]:
    if math.isnan(low) or math.isnan(high):
        return []
    return [float(low), float(high)]


def geodata_to_rows(gdf: gpd.GeoDataFrame) -> List[Dict[str, Any]]:
    """
    Convertit un GeoDataFrame en entrées de catalogue.

    Les emprises sont ramenées en EPSG:4326 si le fichier déclare un autre CRS.
    """
    if gdf.empty:
        raise CatalogDataError("Le catalogue ne contient aucune entité.")

    columns = _column_lookup(gdf)
    if gdf.crs is not None and gdf.crs != CATALOG_CRS:
        gdf = gdf.to_crs(CATALOG_CRS)

    bounds = gdf.geometry.bounds
    rows = []
    for position in range(len(gdf)):
        record = gdf.iloc[position]
        minx, miny, maxx, maxy = bounds.iloc[position][["minx", "miny", "maxx", "maxy"]]
        rows.append({
            **{name: _text(record[column]) for name, column in columns.items()},
            "latlim": _limits(miny, maxy),
            "lonlim": _limits(minx, maxx),
        })
    return rows
