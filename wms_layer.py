"""
Modèle des couches WMS du catalogue.

- LayerRecord : une entrée du catalogue (serveur, couche, limites, résumé,
  codes CRS, détails). Une couche est immuable : with_limits retourne une
  copie dont les limites remplacées sont validées.
- LayerDetails : informations détaillées d'une couche (attributs, emprises
  par CRS, dimensions, styles, échelles, version WMS)
- LayerCollection : séquence ordonnée et immuable de LayerRecord, unité de
  travail de toutes les recherches et de tous les raffinements
- NOT_FETCHED : marqueur explicite d'un champ pas encore renseigné depuis le
  serveur (résumé, codes CRS, détails des couches issues du catalogue)
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Iterable, List, Optional, Tuple

from catalog_errors import InvalidArgumentError
from geo_limits import GeoExtent, validate_limits


class _NotFetched:
    """Valeur d'un champ non encore renseigné (singleton)."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NOT_FETCHED"

    def __str__(self) -> str:
        return "<non renseigné>"

    def __bool__(self) -> bool:
        return False


NOT_FETCHED = _NotFetched()


def is_populated(value: Any) -> bool:
    return value is not NOT_FETCHED


# ============================================================================
# DÉTAILS
# ============================================================================

def _normalized(name: str) -> str:
    return name.replace("_", "").lower()


def _dataclass_kwargs(cls, data: Any, parameter: str) -> Dict[str, Any]:
    """Associe les clés d'un dictionnaire (snake_case ou CamelCase) aux champs de cls."""
    if not isinstance(data, Mapping):
        raise InvalidArgumentError(parameter, f"un dictionnaire est attendu pour {cls.__name__}")
    lookup = {_normalized(f.name): f.name for f in fields(cls)}
    kwargs = {}
    for key, value in data.items():
        name = lookup.get(_normalized(str(key)))
        if name is None:
            raise InvalidArgumentError(parameter, f"champ « {key} » inconnu pour {cls.__name__}")
        kwargs[name] = value
    return kwargs


def _as_list(value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, Mapping):
        return [value]
    return list(value)


@dataclass(frozen=True)
class LayerAttributes:
    queryable: bool = False
    cascaded: int = 0
    opaque: bool = False
    no_subsets: bool = False
    fixed_width: int = 0
    fixed_height: int = 0


@dataclass(frozen=True)
class BoundingBox:
    """Emprise de la couche dans les unités d'un CRS donné."""

    coord_ref_sys_code: str = ""
    xlim: Tuple[float, ...] = ()
    ylim: Tuple[float, ...] = ()


@dataclass(frozen=True)
class Dimension:
    """Dimension de la couche (temps, altitude, ...)."""

    name: str = ""
    units: str = ""
    unit_symbol: str = ""
    default: str = ""
    multiple_values: bool = False
    nearest_value: bool = False
    current: bool = False
    extent: str = ""


@dataclass(frozen=True)
class ScaleLimits:
    scale_hint: Tuple[float, ...] = ()
    min_scale_denominator: Optional[float] = None
    max_scale_denominator: Optional[float] = None


@dataclass(frozen=True)
class LegendURL:
    online_resource: str = ""
    format: str = ""
    height: Optional[float] = None
    width: Optional[float] = None


@dataclass(frozen=True)
class LayerStyle:
    title: str = ""
    name: str = ""
    abstract: str = ""
    legend_url: LegendURL = field(default_factory=LegendURL)


@dataclass(frozen=True)
class LayerDetails:
    """Informations détaillées d'une couche WMS."""

    metadata_url: str = ""
    attributes: LayerAttributes = field(default_factory=LayerAttributes)
    bounding_box: Tuple[BoundingBox, ...] = ()
    dimension: Tuple[Dimension, ...] = ()
    image_formats: Tuple[str, ...] = ()
    scale_limits: ScaleLimits = field(default_factory=ScaleLimits)
    style: Tuple[LayerStyle, ...] = ()
    version: str = ""

    @classmethod
    def from_dict(cls, data: Mapping, parameter: str = "Details") -> "LayerDetails":
        """
        Construit les détails depuis un dictionnaire.

        Les clés peuvent être en snake_case (metadata_url) ou reprendre les noms
        WMS (MetadataURL, BoundingBox, ...). Les listes de structures acceptent
        aussi un dictionnaire seul.
        """
        kwargs = _dataclass_kwargs(cls, data, parameter)

        if "attributes" in kwargs:
            kwargs["attributes"] = LayerAttributes(
                **_dataclass_kwargs(LayerAttributes, kwargs["attributes"], parameter)
            )
        if "scale_limits" in kwargs:
            limits = _dataclass_kwargs(ScaleLimits, kwargs["scale_limits"], parameter)
            if "scale_hint" in limits:
                limits["scale_hint"] = tuple(_as_list(limits["scale_hint"]))
            kwargs["scale_limits"] = ScaleLimits(**limits)
        if "bounding_box" in kwargs:
            boxes = []
            for item in _as_list(kwargs["bounding_box"]):
                box = _dataclass_kwargs(BoundingBox, item, parameter)
                for axis in ("xlim", "ylim"):
                    if axis in box:
                        box[axis] = tuple(_as_list(box[axis]))
                boxes.append(BoundingBox(**box))
            kwargs["bounding_box"] = tuple(boxes)
        if "dimension" in kwargs:
            kwargs["dimension"] = tuple(
                Dimension(**_dataclass_kwargs(Dimension, item, parameter))
                for item in _as_list(kwargs["dimension"])
            )
        if "style" in kwargs:
            styles = []
            for item in _as_list(kwargs["style"]):
                style = _dataclass_kwargs(LayerStyle, item, parameter)
                if "legend_url" in style:
                    style["legend_url"] = LegendURL(
                        **_dataclass_kwargs(LegendURL, style["legend_url"], parameter)
                    )
                styles.append(LayerStyle(**style))
            kwargs["style"] = tuple(styles)
        if "image_formats" in kwargs:
            formats = kwargs["image_formats"]
            if isinstance(formats, str):
                formats = [formats]
            kwargs["image_formats"] = tuple(_as_list(formats))

        return cls(**kwargs)


# ============================================================================
# COUCHE
# ============================================================================

# Nom public -> attribut, dans l'ordre d'affichage
PROPERTY_NAMES = {
    "ServerTitle": "server_title",
    "ServerURL": "server_url",
    "LayerTitle": "layer_title",
    "LayerName": "layer_name",
    "Latlim": "latlim",
    "Lonlim": "lonlim",
    "Abstract": "abstract",
    "CoordRefSysCodes": "coord_ref_sys_codes",
    "Details": "details",
}

_STRING_PROPERTIES = ("ServerTitle", "ServerURL", "LayerTitle", "LayerName")


def _property_name(key: str) -> str:
    """Retrouve le nom public d'une propriété (nom public ou attribut, casse libre)."""
    wanted = _normalized(str(key))
    for public, attribute in PROPERTY_NAMES.items():
        if wanted in (_normalized(public), _normalized(attribute)):
            return public
    raise InvalidArgumentError(
        str(key), f"nom de propriété inconnu ; noms acceptés : {', '.join(PROPERTY_NAMES)}"
    )


def _validate_string(name: str, value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise InvalidArgumentError(name, f"une chaîne de caractères est attendue, pas {type(value).__name__}")
    return value


def _validate_codes(value: Any):
    if value is NOT_FETCHED:
        return value
    if value is None:
        return ()
    if isinstance(value, str) or not isinstance(value, Iterable):
        raise InvalidArgumentError("CoordRefSysCodes", "une liste de chaînes de caractères est attendue")
    codes = tuple(value)
    for position, code in enumerate(codes, start=1):
        if not isinstance(code, str):
            raise InvalidArgumentError(
                "CoordRefSysCodes",
                f"l'élément {position} est de type {type(code).__name__}, str attendu",
            )
    return codes


def _validate_details(value: Any):
    if value is NOT_FETCHED or isinstance(value, LayerDetails):
        return value
    if value is None:
        return LayerDetails()
    if isinstance(value, Mapping):
        return LayerDetails.from_dict(value)
    raise InvalidArgumentError("Details", "un LayerDetails ou un dictionnaire est attendu")


class LayerRecord:
    """
    Une couche WMS du catalogue.

    Tous les attributs sont en lecture seule : les collections du catalogue
    partagent leurs couches. Pour changer Latlim ou Lonlim, with_limits
    construit une nouvelle couche. abstract, coord_ref_sys_codes et details
    valent NOT_FETCHED tant qu'ils n'ont pas été renseignés.
    """

    __slots__ = (
        "_server_title", "_server_url", "_layer_title", "_layer_name",
        "_latlim", "_lonlim", "_abstract", "_coord_ref_sys_codes", "_details",
    )

    def __init__(
        self,
        server_title: str = "",
        server_url: str = "",
        layer_title: str = "",
        layer_name: str = "",
        latlim: Any = None,
        lonlim: Any = None,
        abstract: Any = "",
        coord_ref_sys_codes: Any = (),
        details: Any = None,
    ):
        self._server_title = _validate_string("ServerTitle", server_title)
        self._server_url = _validate_string("ServerURL", server_url)
        self._layer_title = _validate_string("LayerTitle", layer_title)
        self._layer_name = _validate_string("LayerName", layer_name)
        self._latlim = validate_limits("Latlim", latlim)
        self._lonlim = validate_limits("Lonlim", lonlim)
        self._abstract = abstract if abstract is NOT_FETCHED else _validate_string("Abstract", abstract)
        self._coord_ref_sys_codes = _validate_codes(coord_ref_sys_codes)
        self._details = _validate_details(details)

    @classmethod
    def from_mapping(cls, values: Mapping) -> "LayerRecord":
        """
        Construit une couche depuis des paires nom/valeur.

        Les noms sont ceux des propriétés (ServerTitle, Latlim, ...) ou des
        attributs (server_title, latlim, ...), sans tenir compte de la casse.
        """
        if not isinstance(values, Mapping):
            raise InvalidArgumentError("values", "un dictionnaire nom/valeur est attendu")
        kwargs = {}
        for key, value in values.items():
            kwargs[PROPERTY_NAMES[_property_name(key)]] = value
        return cls(**kwargs)

    @classmethod
    def from_catalog_row(
        cls,
        server_title: str,
        server_url: str,
        layer_title: str,
        layer_name: str,
        latlim: Any,
        lonlim: Any,
    ) -> "LayerRecord":
        """Couche issue du catalogue : résumé, codes CRS et détails restent à renseigner."""
        return cls(
            server_title=server_title,
            server_url=server_url,
            layer_title=layer_title,
            layer_name=layer_name,
            latlim=latlim,
            lonlim=lonlim,
            abstract=NOT_FETCHED,
            coord_ref_sys_codes=NOT_FETCHED,
            details=NOT_FETCHED,
        )

    @property
    def server_title(self) -> str:
        return self._server_title

    @property
    def server_url(self) -> str:
        return self._server_url

    @property
    def layer_title(self) -> str:
        return self._layer_title

    @property
    def layer_name(self) -> str:
        return self._layer_name

    @property
    def latlim(self) -> GeoExtent:
        return self._latlim

    @property
    def lonlim(self) -> GeoExtent:
        return self._lonlim

    @property
    def abstract(self):
        return self._abstract

    @property
    def coord_ref_sys_codes(self):
        return self._coord_ref_sys_codes

    @property
    def details(self):
        return self._details

    def get(self, name: str) -> Any:
        """Valeur d'une propriété par son nom public (ServerURL, Latlim, ...)."""
        return getattr(self, PROPERTY_NAMES[_property_name(name)])

    def with_limits(self, latlim: Any = None, lonlim: Any = None) -> "LayerRecord":
        """Copie de la couche avec de nouvelles limites."""
        return LayerRecord(
            server_title=self._server_title,
            server_url=self._server_url,
            layer_title=self._layer_title,
            layer_name=self._layer_name,
            latlim=self._latlim if latlim is None else latlim,
            lonlim=self._lonlim if lonlim is None else lonlim,
            abstract=self._abstract,
            coord_ref_sys_codes=self._coord_ref_sys_codes,
            details=self._details,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Représentation JSON des champs renseignés."""
        result: Dict[str, Any] = {
            "server_title": self._server_title,
            "server_url": self._server_url,
            "layer_title": self._layer_title,
            "layer_name": self._layer_name,
            "latlim": list(self._latlim.bounds),
            "lonlim": list(self._lonlim.bounds),
        }
        if is_populated(self._abstract):
            result["abstract"] = self._abstract
        if is_populated(self._coord_ref_sys_codes):
            result["coord_ref_sys_codes"] = list(self._coord_ref_sys_codes)
        return result

    def _key(self) -> tuple:
        return tuple(getattr(self, attribute) for attribute in PROPERTY_NAMES.values())

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, LayerRecord):
            return NotImplemented
        return self._key() == other._key()

    __hash__ = None

    def __repr__(self) -> str:
        return (
            f"LayerRecord(server_url={self._server_url!r}, layer_name={self._layer_name!r}, "
            f"latlim={list(self._latlim.bounds)}, lonlim={list(self._lonlim.bounds)})"
        )


# ============================================================================
# COLLECTION
# ============================================================================

class LayerCollection(Sequence):
    """
    Séquence ordonnée et immuable de couches.

    Une collection vide est la réponse normale « aucune correspondance ».
    Les doublons sont permis.
    """

    __slots__ = ("_layers",)

    def __init__(self, layers: Iterable[LayerRecord] = ()):
        layers = tuple(layers)
        for position, layer in enumerate(layers, start=1):
            if not isinstance(layer, LayerRecord):
                raise InvalidArgumentError(
                    "layers", f"l'élément {position} est de type {type(layer).__name__}, LayerRecord attendu"
                )
        self._layers = layers

    @classmethod
    def from_records(cls, records: Iterable[Mapping]) -> "LayerCollection":
        """Une couche par dictionnaire nom/valeur (voir LayerRecord.from_mapping)."""
        return cls(LayerRecord.from_mapping(record) for record in records)

    @classmethod
    def from_columns(cls, columns: Mapping) -> "LayerCollection":
        """
        Construit une collection depuis des colonnes de même longueur.

        Exemple : from_columns({"ServerURL": [u1, u2], "LayerName": ["a", "b"]})
        """
        if not isinstance(columns, Mapping):
            raise InvalidArgumentError("columns", "un dictionnaire de colonnes est attendu")
        names = [_property_name(key) for key in columns]
        values = []
        for key, name in zip(columns, names):
            column = columns[key]
            if isinstance(column, (str, bytes, Mapping)) or not isinstance(column, Iterable):
                raise InvalidArgumentError(name, "une liste de valeurs (une par couche) est attendue")
            values.append(list(column))
        sizes = {len(column) for column in values}
        if len(sizes) > 1:
            raise InvalidArgumentError("columns", "toutes les colonnes doivent avoir la même longueur")
        size = sizes.pop() if sizes else 0
        return cls(
            LayerRecord(**{PROPERTY_NAMES[name]: column[row] for name, column in zip(names, values)})
            for row in range(size)
        )

    def __getitem__(self, index):
        if isinstance(index, slice):
            return LayerCollection(self._layers[index])
        return self._layers[index]

    def __len__(self) -> int:
        return len(self._layers)

    def __iter__(self):
        return iter(self._layers)

    def __add__(self, other: Any) -> "LayerCollection":
        if not isinstance(other, LayerCollection):
            return NotImplemented
        return LayerCollection(self._layers + other._layers)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, LayerCollection):
            return NotImplemented
        return self._layers == other._layers

    __hash__ = None

    def __repr__(self) -> str:
        return f"LayerCollection({len(self._layers)} couches)"

    def __str__(self) -> str:
        return self.format()

    def servers(self) -> List[str]:
        """URLs uniques des serveurs, triées."""
        return sorted({layer.server_url for layer in self._layers})

    def server_titles(self) -> List[str]:
        """Titres des serveurs uniques, dans l'ordre de servers()."""
        titles: Dict[str, str] = {}
        for layer in self._layers:
            titles.setdefault(layer.server_url, layer.server_title)
        return [titles[url] for url in self.servers()]

    def refine(self, query: Optional[str] = None, **options) -> "LayerCollection":
        """Raffine la collection par texte (voir wms_query.refine)."""
        from wms_query import refine

        return refine(self, query, **options)

    def refine_limits(self, latlim: Any = None, lonlim: Any = None) -> "LayerCollection":
        """Raffine la collection par limites géographiques (voir wms_query.refine_limits)."""
        from wms_query import refine_limits

        return refine_limits(self, latlim=latlim, lonlim=lonlim)

    def format(self, properties: Any = "populated", label: bool = True, index: bool = True) -> str:
        return format_layers(self, properties=properties, label=label, index=index)


# ============================================================================
# AFFICHAGE TEXTE
# ============================================================================

LABEL_WIDTH = 16
SEQUENCE_DISPLAY_CUTOFF = 3


def _display_properties(properties: Any) -> Tuple[List[str], bool]:
    """Retourne (noms à afficher, filtrer les champs non renseignés)."""
    if isinstance(properties, str):
        properties = [properties]
    elif not isinstance(properties, Iterable):
        raise InvalidArgumentError("Properties", "un nom ou une liste de noms est attendu")

    names: List[str] = []
    populated = False
    show_all = False
    for item in properties:
        if not isinstance(item, str):
            raise InvalidArgumentError("Properties", "un nom ou une liste de noms est attendu")
        keyword = item.lower()
        if keyword == "populated":
            populated = True
        elif keyword == "all":
            show_all = True
        else:
            try:
                names.append(_property_name(item))
            except InvalidArgumentError:
                raise InvalidArgumentError("Properties", f"propriété « {item} » inconnue") from None

    if show_all:
        return list(PROPERTY_NAMES), False
    return (names or list(PROPERTY_NAMES)), populated


def _text_line(name: str, value: str, label: bool) -> str:
    if not label:
        return value
    return f"{name.rjust(LABEL_WIDTH)}: {value}"


def _display_value(value: Any) -> str:
    if isinstance(value, GeoExtent):
        if value.is_empty:
            return "[]"
        return f"[{value.low:.4f} {value.high:.4f}]"
    if value is NOT_FETCHED:
        return str(value)
    if isinstance(value, LayerDetails):
        return "[LayerDetails]"
    if isinstance(value, tuple):
        if len(value) <= SEQUENCE_DISPLAY_CUTOFF:
            return "{" + " ".join(f"'{item}'" for item in value) + "}"
        return f"{{{len(value)} éléments}}"
    return f"'{value}'"


def format_layers(
    layers: LayerCollection,
    properties: Any = "populated",
    label: bool = True,
    index: bool = True,
) -> str:
    """
    Liste texte des couches, une propriété par ligne.

    Args:
        properties: "populated" (défaut, masque les champs non renseignés),
            "all", ou un nom / une liste de noms de propriétés
        label: préfixer chaque valeur du nom de la propriété
        index: afficher le rang de chaque couche (à partir de 1)
    """
    names, populated = _display_properties(properties)
    class_name = type(layers).__name__

    if len(layers) == 0:
        lines = [f"  empty {class_name}", "", "  Properties:"]
        lines.extend(f"    {name}" for name in PROPERTY_NAMES)
        return "\n".join(lines) + "\n"

    lines = [f"  {len(layers)} {class_name}", "", "  Properties:"]
    for position, layer in enumerate(layers, start=1):
        lines.append("")
        if index:
            lines.append(_text_line("Index", str(position), True))
        for name in names:
            value = layer.get(name)
            if populated and value is NOT_FETCHED:
                continue
            lines.append(_text_line(name, _display_value(value), label))
    return "\n".join(lines) + "\n"
