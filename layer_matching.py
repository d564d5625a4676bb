"""
Correspondance texte entre une requête et les champs des couches.

- partial : la requête apparaît dans la valeur ; « * » remplace n'importe
  quelle suite de caractères (« global*temperature »)
- exact : la valeur entière est égale à la requête ; « * » y est un caractère
  littéral (la requête « * » ne trouve que les valeurs « * »)

Plusieurs champs sont combinés par un OU logique : une couche est retenue
dès qu'un des champs correspond.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Dict, Iterable, List, Sequence, Tuple

from catalog_errors import InvalidArgumentError
from wms_layer import NOT_FETCHED, LayerRecord

logger = logging.getLogger(__name__)


PARTIAL = "partial"
EXACT = "exact"
MATCH_TYPES = (PARTIAL, EXACT)

WILDCARD = "*"

DEFAULT_SEARCH_FIELDS = ("LayerName", "LayerTitle")

# Champ -> fonction d'extraction
FIELD_ACCESSORS: Dict[str, Callable[[LayerRecord], Any]] = {
    "Abstract": lambda layer: layer.abstract,
    "LayerTitle": lambda layer: layer.layer_title,
    "LayerName": lambda layer: layer.layer_name,
    "ServerURL": lambda layer: layer.server_url,
    "ServerTitle": lambda layer: layer.server_title,
}

# Nom accepté (minuscules) -> champs
SEARCH_FIELD_GROUPS: Dict[str, Tuple[str, ...]] = {
    "abstract": ("Abstract",),
    "layertitle": ("LayerTitle",),
    "layername": ("LayerName",),
    "serverurl": ("ServerURL",),
    "servertitle": ("ServerTitle",),
    "layer": ("LayerTitle", "LayerName"),
    "server": ("ServerURL", "ServerTitle"),
    "any": ("Abstract", "LayerTitle", "LayerName", "ServerURL", "ServerTitle"),
}


def resolve_search_fields(search_fields: Any) -> Tuple[str, ...]:
    """
    Développe les noms de champs de recherche en champs de couche.

    Accepte un nom ou une liste de noms, sans tenir compte de la casse
    (« layer », « LayerName », « any », ...). L'ordre est conservé et les
    doublons supprimés.

    Raises:
        InvalidArgumentError: nom inconnu ou type invalide
    """
    if isinstance(search_fields, str):
        search_fields = [search_fields]
    elif not isinstance(search_fields, Iterable):
        raise InvalidArgumentError("SearchFields", "un nom ou une liste de noms de champs est attendu")

    resolved: List[str] = []
    for name in search_fields:
        if not isinstance(name, str):
            raise InvalidArgumentError("SearchFields", "un nom ou une liste de noms de champs est attendu")
        group = SEARCH_FIELD_GROUPS.get(name.lower())
        if group is None:
            raise InvalidArgumentError(
                "SearchFields",
                f"champ « {name} » inconnu ; valeurs acceptées : {', '.join(SEARCH_FIELD_GROUPS)}",
            )
        for field_name in group:
            if field_name not in resolved:
                resolved.append(field_name)

    if not resolved:
        raise InvalidArgumentError("SearchFields", "au moins un champ est attendu")
    return tuple(resolved)


def validate_match_type(match_type: Any) -> str:
    if not isinstance(match_type, str) or match_type.lower() not in MATCH_TYPES:
        raise InvalidArgumentError("MatchType", f"valeurs acceptées : {', '.join(MATCH_TYPES)}")
    return match_type.lower()


def validate_ignore_case(ignore_case: Any) -> bool:
    if not isinstance(ignore_case, bool):
        raise InvalidArgumentError("IgnoreCase", "un booléen est attendu")
    return ignore_case


def validate_query(query: Any) -> str:
    if not isinstance(query, str):
        raise InvalidArgumentError("QueryStr", f"une chaîne de caractères est attendue, pas {type(query).__name__}")
    return query


def _partial_pattern(query: str, ignore_case: bool) -> re.Pattern:
    parts = [re.escape(part) for part in query.split(WILDCARD)]
    flags = re.IGNORECASE if ignore_case else 0
    return re.compile(".*".join(parts), flags | re.DOTALL)


def build_matcher(query: str, match_type: str = PARTIAL, ignore_case: bool = True) -> Callable[[Any], bool]:
    """Fonction valeur -> bool pour une requête donnée."""
    if match_type == EXACT:
        wanted = query.casefold() if ignore_case else query

        def matches(value: Any) -> bool:
            if not isinstance(value, str):
                return False
            return (value.casefold() if ignore_case else value) == wanted

        return matches

    if query == "":
        return lambda value: value == ""

    pattern = _partial_pattern(query, ignore_case)

    def matches(value: Any) -> bool:
        if not isinstance(value, str):
            return False
        return pattern.search(value) is not None

    return matches


def match_values(
    query: str,
    values: Sequence[Any],
    match_type: str = PARTIAL,
    ignore_case: bool = True,
) -> List[bool]:
    """Un booléen par valeur candidate, dans le même ordre."""
    matches = build_matcher(
        validate_query(query), validate_match_type(match_type), validate_ignore_case(ignore_case)
    )
    return [matches(value) for value in values]


def select(
    layers: Iterable[LayerRecord],
    query: str,
    search_fields: Any = DEFAULT_SEARCH_FIELDS,
    match_type: str = PARTIAL,
    ignore_case: bool = True,
) -> List[bool]:
    """
    Sélection des couches dont au moins un champ correspond à la requête.

    Les valeurs NOT_FETCHED ne correspondent jamais.
    """
    query = validate_query(query)
    fields = resolve_search_fields(search_fields)
    matches = build_matcher(query, validate_match_type(match_type), validate_ignore_case(ignore_case))
    accessors = [FIELD_ACCESSORS[name] for name in fields]

    selection = []
    for layer in layers:
        selection.append(any(
            value is not NOT_FETCHED and matches(value)
            for value in (accessor(layer) for accessor in accessors)
        ))
    logger.debug("Requête %r sur %s : %d correspondance(s)", query, ", ".join(fields), sum(selection))
    return selection
