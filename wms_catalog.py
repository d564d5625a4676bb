"""
Chargement du catalogue de couches WMS.

Trois versions du catalogue :
- installed : catalogue livré avec le module (wms_layers_catalog)
- custom : fichier géographique local (WMS_CATALOG_CUSTOM_PATH)
- online : GeoJSON téléchargé depuis WMS_CATALOG_ONLINE_URL, mis en cache 24h

Chaque version est chargée une seule fois par WMSCatalog puis partagée en
lecture seule.
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

import httpx

import catalog_cache
from catalog_errors import DataSourceError, InvalidArgumentError
from catalog_geodata import CatalogDataError, geodata_to_rows, load_geodata, read_geodata_file
from wms_layer import LayerCollection, LayerRecord
from wms_layers_catalog import iter_catalog_rows

logger = logging.getLogger(__name__)


# Configuration
CUSTOM_CATALOG_PATH = os.getenv("WMS_CATALOG_CUSTOM_PATH", "wms_catalog_custom.geojson")
ONLINE_CATALOG_URL = os.getenv("WMS_CATALOG_ONLINE_URL", "")
DEFAULT_CATALOG_TIMEOUT = 30.0

INSTALLED = "installed"
CUSTOM = "custom"
ONLINE = "online"
VERSIONS = (INSTALLED, CUSTOM, ONLINE)
DEFAULT_VERSION = INSTALLED


@dataclass(frozen=True)
class CatalogRow:
    """Une ligne du catalogue, telle que lue depuis la source."""

    server_title: str
    server_url: str
    layer_title: str
    layer_name: str
    latlim: Tuple[float, ...]
    lonlim: Tuple[float, ...]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CatalogRow":
        return cls(
            server_title=data.get("server_title", ""),
            server_url=data.get("server_url", ""),
            layer_title=data.get("layer_title", ""),
            layer_name=data.get("layer_name", ""),
            latlim=tuple(data.get("latlim") or ()),
            lonlim=tuple(data.get("lonlim") or ()),
        )


def validate_version(version: Any) -> str:
    if not isinstance(version, str) or version.lower() not in VERSIONS:
        raise InvalidArgumentError("Version", f"valeurs acceptées : {', '.join(VERSIONS)}")
    return version.lower()


def load_installed_rows() -> List[CatalogRow]:
    return [CatalogRow.from_dict(row) for row in iter_catalog_rows()]


def load_custom_rows(path: Optional[str] = None) -> List[CatalogRow]:
    """Catalogue local : GeoJSON, KML, GeoPackage ou Shapefile zippé."""
    path = Path(path or CUSTOM_CATALOG_PATH).expanduser()
    try:
        rows = geodata_to_rows(read_geodata_file(path))
    except CatalogDataError as exc:
        raise DataSourceError(str(exc), CUSTOM) from exc
    logger.info("Catalogue personnalisé lu depuis %s (%d couches)", path, len(rows))
    return [CatalogRow.from_dict(row) for row in rows]


def catalog_timeout() -> float:
    """Délai des téléchargements (WMS_CATALOG_TIMEOUT, en secondes)."""
    value = os.getenv("WMS_CATALOG_TIMEOUT")
    if not value:
        return DEFAULT_CATALOG_TIMEOUT
    try:
        timeout = float(value)
    except ValueError:
        timeout = None
    if timeout is None or not timeout > 0:
        logger.warning(
            "WMS_CATALOG_TIMEOUT=%r invalide, délai par défaut de %g s utilisé",
            value, DEFAULT_CATALOG_TIMEOUT,
        )
        return DEFAULT_CATALOG_TIMEOUT
    return timeout


def _online_url(url: Optional[str]) -> str:
    url = url or ONLINE_CATALOG_URL
    if not url:
        raise DataSourceError("WMS_CATALOG_ONLINE_URL n'est pas configurée", ONLINE)
    return url


# Le cache disque est facultatif : une erreur d'E/S n'empêche pas le chargement.

def _read_cache(url: str) -> Optional[str]:
    try:
        return catalog_cache.get_cached_catalog(url)
    except OSError as exc:
        logger.warning("Cache du catalogue %s inaccessible : %s", url, exc)
        return None


def _write_cache(url: str, content: str) -> None:
    try:
        catalog_cache.cache_catalog(url, content)
    except OSError as exc:
        logger.warning("Mise en cache du catalogue %s impossible : %s", url, exc)


def _discard_cache(url: str) -> None:
    try:
        catalog_cache.remove_cached_catalog(url)
    except OSError as exc:
        logger.warning("Suppression du cache du catalogue %s impossible : %s", url, exc)


def download_online_catalog(
    url: Optional[str] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> str:
    """Télécharge le GeoJSON du catalogue en ligne, sans passer par le cache."""
    url = _online_url(url)
    try:
        with httpx.Client(timeout=catalog_timeout(), transport=transport) as client:
            response = client.get(url)
            response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise DataSourceError(
            f"HTTP {exc.response.status_code} en téléchargeant {url}", ONLINE
        ) from exc
    except httpx.HTTPError as exc:
        raise DataSourceError(f"erreur de communication avec {url} : {exc}", ONLINE) from exc
    return response.text


def _parse_online_catalog(content: str) -> List[CatalogRow]:
    try:
        data = geodata_to_rows(load_geodata(content, "geojson"))
    except CatalogDataError as exc:
        raise DataSourceError(str(exc), ONLINE) from exc
    rows = [CatalogRow.from_dict(row) for row in data]
    # Lignes mal formées : refusées avant toute mise en cache
    rows_to_layers(rows, ONLINE)
    return rows


def load_online_rows(
    url: Optional[str] = None,
    transport: Optional[httpx.BaseTransport] = None,
    use_cache: bool = True,
) -> List[CatalogRow]:
    """
    Catalogue en ligne, relu depuis le cache s'il est valide.

    Un téléchargement n'est mis en cache qu'une fois lu avec succès ; une
    entrée de cache illisible est supprimée.
    """
    url = _online_url(url)
    cached = _read_cache(url) if use_cache else None
    content = cached if cached is not None else download_online_catalog(url, transport)

    try:
        rows = _parse_online_catalog(content)
    except DataSourceError:
        if cached is not None:
            _discard_cache(url)
        raise

    if use_cache and cached is None:
        _write_cache(url, content)
    logger.info("Catalogue en ligne chargé (%d couches)", len(rows))
    return rows


def load_catalog(version: str = DEFAULT_VERSION) -> List[CatalogRow]:
    """Lignes du catalogue pour la version demandée."""
    version = validate_version(version)
    if version == INSTALLED:
        return load_installed_rows()
    if version == CUSTOM:
        return load_custom_rows()
    return load_online_rows()


def rows_to_layers(rows: Iterable[CatalogRow], version: Optional[str] = None) -> LayerCollection:
    """
    Une couche par ligne ; résumé, codes CRS et détails restent NOT_FETCHED.

    Raises:
        DataSourceError: ligne mal formée ou catalogue vide
    """
    layers = []
    for position, row in enumerate(rows, start=1):
        try:
            layers.append(LayerRecord.from_catalog_row(
                row.server_title, row.server_url, row.layer_title, row.layer_name,
                row.latlim, row.lonlim,
            ))
        except (InvalidArgumentError, AttributeError) as exc:
            raise DataSourceError(f"ligne {position} mal formée ({exc})", version) from exc
    if not layers:
        raise DataSourceError("le catalogue est vide", version)
    return LayerCollection(layers)


class WMSCatalog:
    """
    Catalogue chargé à la demande, une fois par version.

    Le chargement est protégé par un verrou ; les collections produites sont
    ensuite partagées en lecture seule.
    """

    def __init__(self, loader: Callable[[str], Iterable[CatalogRow]] = load_catalog):
        self._loader = loader
        self._layers: Dict[str, LayerCollection] = {}
        self._lock = threading.Lock()

    def layers(self, version: str = DEFAULT_VERSION) -> LayerCollection:
        version = validate_version(version)
        cached = self._layers.get(version)
        if cached is not None:
            return cached

        with self._lock:
            if version not in self._layers:
                rows = self._loader(version)
                self._layers[version] = rows_to_layers(rows, version)
                logger.info("Catalogue « %s » chargé : %d couches", version, len(self._layers[version]))
            return self._layers[version]

    def is_loaded(self, version: str) -> bool:
        return validate_version(version) in self._layers

    def clear(self) -> None:
        with self._lock:
            self._layers.clear()


_default_catalog = WMSCatalog()


def get_default_catalog() -> WMSCatalog:
    return _default_catalog
