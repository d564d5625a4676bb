"""
Limites géographiques des couches WMS et test d'inclusion.

Une limite (GeoExtent) est un intervalle fermé [bas, haut] sur un axe :
- latitude : bornes dans [-90, 90]
- longitude : bornes toutes deux dans [-180, 180] ou toutes deux dans [0, 360]
- une limite vide signifie « non contrainte »

Le test d'inclusion est strict : une couche n'est retenue que si ses limites
CONTIENNENT entièrement les limites demandées. Un recouvrement partiel ne
suffit pas.
"""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass
from typing import Any, Optional

from catalog_errors import InvalidArgumentError


LATITUDE = "latitude"
LONGITUDE = "longitude"

# Nom du paramètre public -> axe
LIMIT_PARAMETERS = {"Latlim": LATITUDE, "Lonlim": LONGITUDE}

LATITUDE_RANGE = (-90.0, 90.0)
LONGITUDE_RANGE_180 = (-180.0, 180.0)
LONGITUDE_RANGE_360 = (0.0, 360.0)
FULL_TURN = 360.0


@dataclass(frozen=True)
class GeoExtent:
    """Intervalle [low, high] sur un axe, éventuellement vide."""

    axis: str
    low: Optional[float] = None
    high: Optional[float] = None

    @property
    def is_empty(self) -> bool:
        return self.low is None

    @property
    def bounds(self) -> tuple:
        """() pour une limite vide, (low, high) sinon."""
        if self.is_empty:
            return ()
        return (self.low, self.high)

    @property
    def width(self) -> float:
        if self.is_empty:
            return 0.0
        return self.high - self.low

    def __iter__(self):
        return iter(self.bounds)

    def __len__(self) -> int:
        return len(self.bounds)

    def __bool__(self) -> bool:
        return not self.is_empty

    @classmethod
    def empty(cls, axis: str) -> "GeoExtent":
        return cls(axis=axis)


def _parameter_axis(name: str) -> str:
    try:
        return LIMIT_PARAMETERS[name]
    except KeyError:
        raise ValueError(f"Nom de limite inconnu : {name}") from None


def _is_real_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def _is_empty_value(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, GeoExtent):
        return value.is_empty
    try:
        return len(value) == 0
    except TypeError:
        return False


def _as_values(name: str, value: Any) -> list:
    if isinstance(value, (str, bytes)) or isinstance(value, dict):
        raise InvalidArgumentError(name, "un vecteur numérique à deux éléments est attendu")
    try:
        values = list(value)
    except TypeError:
        raise InvalidArgumentError(
            name, "un vecteur numérique à deux éléments est attendu"
        ) from None
    return values


def _check_range(name: str, low: float, high: float, axis: str) -> None:
    if axis == LATITUDE:
        lower, upper = LATITUDE_RANGE
        if not (lower <= low and high <= upper):
            raise InvalidArgumentError(name, f"les bornes doivent être dans [{lower:g}, {upper:g}]")
        return

    wrapped_180 = LONGITUDE_RANGE_180[0] <= low and high <= LONGITUDE_RANGE_180[1]
    wrapped_360 = LONGITUDE_RANGE_360[0] <= low and high <= LONGITUDE_RANGE_360[1]
    if not (wrapped_180 or wrapped_360):
        raise InvalidArgumentError(
            name, "les bornes doivent être toutes deux dans [-180, 180] ou toutes deux dans [0, 360]"
        )


def validate_limits(name: str, value: Any) -> GeoExtent:
    """
    Valide une limite de couche (« Latlim » ou « Lonlim »).

    Accepte None, une séquence vide, une GeoExtent ou une séquence de deux
    nombres réels finis et croissants.

    Raises:
        InvalidArgumentError: si la limite est mal formée ou hors domaine
    """
    axis = _parameter_axis(name)
    if _is_empty_value(value):
        return GeoExtent.empty(axis)

    if isinstance(value, GeoExtent):
        if value.axis != axis:
            raise InvalidArgumentError(name, f"limite sur l'axe {value.axis}, {axis} attendu")
        values = list(value.bounds)
    else:
        values = _as_values(name, value)

    if len(values) != 2 or not all(_is_real_number(v) for v in values):
        raise InvalidArgumentError(name, "un vecteur numérique à deux éléments est attendu")

    low, high = (float(v) for v in values)
    if not (math.isfinite(low) and math.isfinite(high)):
        raise InvalidArgumentError(name, "les bornes doivent être finies")
    if low > high:
        raise InvalidArgumentError(name, "les bornes doivent être croissantes")

    _check_range(name, low, high, axis)
    return GeoExtent(axis=axis, low=low, high=high)


def query_limits(name: str, value: Any) -> GeoExtent:
    """
    Valide une limite de recherche.

    Un scalaire (ou une séquence d'un seul élément) désigne un point et devient
    la limite dégénérée [valeur, valeur].
    """
    if _is_real_number(value):
        value = [value, value]
    elif not _is_empty_value(value) and not isinstance(value, (GeoExtent, str, bytes, dict)):
        values = _as_values(name, value)
        if len(values) == 1:
            value = [values[0], values[0]]
    return validate_limits(name, value)


def _longitude_contains(record: GeoExtent, query: GeoExtent) -> bool:
    """
    Inclusion en longitude, quelles que soient les conventions des deux limites.

    La requête est essayée telle quelle puis décalée d'un tour dans chaque sens :
    [-100, -80] est ainsi retrouvée dans [120, 290], et les points 180 / -180
    (ou 0 / 360) sont confondus. Une requête qui chevauche la discontinuité de
    la convention de la couche n'a pas d'équivalent continu et échoue.
    """
    if record.width >= FULL_TURN:
        return True
    if query.width >= FULL_TURN:
        return False
    return any(
        record.low <= query.low + shift and query.high + shift <= record.high
        for shift in (0.0, FULL_TURN, -FULL_TURN)
    )


def extent_contains(record: GeoExtent, query: GeoExtent) -> bool:
    """True si la limite de la couche contient entièrement la limite demandée."""
    if query.is_empty:
        return True
    if record.is_empty:
        return False
    if record.axis == LONGITUDE:
        return _longitude_contains(record, query)
    return record.low <= query.low and query.high <= record.high


def contains(
    record_lat: GeoExtent,
    record_lon: GeoExtent,
    query_lat: GeoExtent,
    query_lon: GeoExtent,
) -> bool:
    """Inclusion du quadrangle demandé dans celui de la couche, axe par axe."""
    return extent_contains(record_lat, query_lat) and extent_contains(record_lon, query_lon)
