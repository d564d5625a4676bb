#!/usr/bin/env python3
"""
Serveur MCP de recherche dans le catalogue de couches WMS
- Recherche texte (titre, nom, serveur, résumé) et géographique (inclusion)
- Raffinement enchaîné des résultats via leur result_id
- Liste des serveurs, affichage détaillé, statistiques du catalogue
"""

import asyncio
import hashlib
import json
import logging
import sys
import time
from collections import OrderedDict
from functools import partial
from itertools import count
from typing import Any, Dict, List

from mcp.server import Server
from mcp.types import Tool, TextContent
import mcp.server.stdio

import catalog_cache
from catalog_errors import DataSourceError, InvalidArgumentError
from layer_matching import DEFAULT_SEARCH_FIELDS, MATCH_TYPES, SEARCH_FIELD_GROUPS
from wms_catalog import DEFAULT_VERSION, VERSIONS
from wms_layer import LayerCollection
from wms_layers_catalog import get_catalog_stats
from wms_query import refine, refine_limits, search

logger = logging.getLogger(__name__)

# Configuration
DEFAULT_MAX_RESULTS = 50
# Nombre de résultats conservés ; les plus anciens sont oubliés au-delà
MAX_RESULT_SETS = 100

# Initialisation
app = Server("wms-catalog-mcp")

# Résultats conservés pour les raffinements : result_id -> collection,
# du moins au plus récemment utilisé
_result_sets: "OrderedDict[str, LayerCollection]" = OrderedDict()
_result_counter = count()


def _register_result(layers: LayerCollection, tool_name: str, params: Dict[str, Any]) -> str:
    """Enregistre une collection et retourne son identifiant"""
    params_str = json.dumps(params, sort_keys=True, default=str)
    hash_suffix = hashlib.md5(f"{params_str}{next(_result_counter)}".encode()).hexdigest()[:8]
    result_id = f"{tool_name}_{int(time.time())}_{hash_suffix}"
    _result_sets[result_id] = layers
    while len(_result_sets) > MAX_RESULT_SETS:
        expired, _ = _result_sets.popitem(last=False)
        logger.debug("Résultat %s oublié", expired)
    return result_id


def _get_result(arguments: Dict[str, Any]) -> LayerCollection:
    result_id = arguments.get("result_id")
    if not isinstance(result_id, str) or result_id not in _result_sets:
        raise InvalidArgumentError(
            "result_id", f"aucun résultat enregistré sous « {result_id} » (inconnu ou expiré)"
        )
    _result_sets.move_to_end(result_id)
    return _result_sets[result_id]


def _result_payload(layers: LayerCollection, result_id: str, max_results: int) -> Dict[str, Any]:
    return {
        "result_id": result_id,
        "count": len(layers),
        "truncated": len(layers) > max_results,
        "layers": [layer.to_dict() for layer in layers[:max_results]],
    }


def _text(payload: Any) -> List[TextContent]:
    return [TextContent(type="text", text=json.dumps(payload, ensure_ascii=False, indent=2))]


def _refine_options(arguments: Dict[str, Any]) -> Dict[str, Any]:
    options = {}
    for name in ("search_fields", "match_type", "ignore_case"):
        if name in arguments:
            options[name] = arguments[name]
    return options


async def _execute_tool_logic(name: str, arguments: Any) -> List[TextContent]:
    arguments = arguments or {}
    max_results = arguments.get("max_results", DEFAULT_MAX_RESULTS)

    if name == "search_wms_layers":
        kwargs = _refine_options(arguments)
        for option in ("latlim", "lonlim", "version"):
            if option in arguments:
                kwargs[option] = arguments[option]
        # Le premier chargement du catalogue peut lire un fichier ou le réseau.
        layers = await asyncio.to_thread(partial(search, arguments.get("query"), **kwargs))
        result_id = _register_result(layers, name, arguments)
        return _text(_result_payload(layers, result_id, max_results))

    elif name == "refine_wms_layers":
        layers = refine(_get_result(arguments), arguments.get("query"), **_refine_options(arguments))
        result_id = _register_result(layers, name, arguments)
        return _text(_result_payload(layers, result_id, max_results))

    elif name == "refine_wms_layers_limits":
        layers = refine_limits(
            _get_result(arguments),
            latlim=arguments.get("latlim"),
            lonlim=arguments.get("lonlim"),
        )
        result_id = _register_result(layers, name, arguments)
        return _text(_result_payload(layers, result_id, max_results))

    elif name == "list_wms_servers":
        layers = _get_result(arguments)
        servers = [
            {"server_url": url, "server_title": title}
            for url, title in zip(layers.servers(), layers.server_titles())
        ]
        return _text({"count": len(servers), "servers": servers})

    elif name == "describe_wms_layers":
        layers = _get_result(arguments)
        text = layers[:max_results].format(
            properties=arguments.get("properties", "populated"),
            label=arguments.get("label", True),
            index=arguments.get("index", True),
        )
        return [TextContent(type="text", text=text)]

    elif name == "get_wms_catalog_stats":
        stats = get_catalog_stats()
        stats["result_sets_count"] = len(_result_sets)
        stats["cached_catalogs"] = catalog_cache.list_cached_items()
        return _text(stats)

    elif name == "clear_wms_catalog_cache":
        removed = catalog_cache.clear_cache()
        return _text({"removed_files": removed})

    else:
        raise ValueError(f"Unknown tool: {name}")


_LIMIT_SCHEMA = {
    "oneOf": [
        {"type": "number"},
        {"type": "array", "items": {"type": "number"}, "minItems": 0, "maxItems": 2},
    ]
}

_TEXT_OPTIONS_SCHEMA = {
    "search_fields": {
        "type": "array",
        "items": {"type": "string", "enum": list(SEARCH_FIELD_GROUPS)},
        "default": list(DEFAULT_SEARCH_FIELDS),
        "description": "Champs interrogés (OU logique) : layer = titre + nom, server = URL + titre, any = tous",
    },
    "match_type": {
        "type": "string",
        "enum": list(MATCH_TYPES),
        "default": "partial",
        "description": "partial : sous-chaîne, « * » = n'importe quels caractères ; exact : valeur entière",
    },
    "ignore_case": {"type": "boolean", "default": True},
    "max_results": {"type": "integer", "default": DEFAULT_MAX_RESULTS},
}


@app.list_tools()
async def list_tools() -> list[Tool]:
    """Liste tous les outils disponibles"""
    return [
        Tool(
            name="search_wms_layers",
            description="""Rechercher des couches WMS dans le catalogue.

La recherche texte porte par défaut sur le nom et le titre des couches.
Avec latlim / lonlim, seules les couches dont l'emprise CONTIENT entièrement
la zone demandée sont retenues (un recouvrement partiel ne suffit pas).
Un nombre seul désigne un point.

Retourne un result_id réutilisable par refine_wms_layers, refine_wms_layers_limits,
list_wms_servers et describe_wms_layers.""",
            inputSchema={
                "type": "object",
                "properties": {
                    "query": {"type": "string", "description": "Texte recherché (ex: temperature, global*temperature, *)"},
                    **_TEXT_OPTIONS_SCHEMA,
                    "latlim": {**_LIMIT_SCHEMA, "description": "[sud, nord] en degrés, ou latitude d'un point"},
                    "lonlim": {**_LIMIT_SCHEMA, "description": "[ouest, est] en degrés ([-180, 180] ou [0, 360])"},
                    "version": {"type": "string", "enum": list(VERSIONS), "default": DEFAULT_VERSION},
                },
                "required": ["query"],
            },
        ),
        Tool(
            name="refine_wms_layers",
            description="Raffiner un résultat précédent par une nouvelle recherche texte",
            inputSchema={
                "type": "object",
                "properties": {
                    "result_id": {"type": "string", "description": "Identifiant d'un résultat précédent"},
                    "query": {"type": "string", "description": "Texte recherché"},
                    **_TEXT_OPTIONS_SCHEMA,
                },
                "required": ["result_id"],
            },
        ),
        Tool(
            name="refine_wms_layers_limits",
            description="Raffiner un résultat précédent par limites géographiques (inclusion stricte)",
            inputSchema={
                "type": "object",
                "properties": {
                    "result_id": {"type": "string"},
                    "latlim": {**_LIMIT_SCHEMA, "description": "[sud, nord] en degrés, ou latitude d'un point"},
                    "lonlim": {**_LIMIT_SCHEMA, "description": "[ouest, est] en degrés, ou longitude d'un point"},
                    "max_results": {"type": "integer", "default": DEFAULT_MAX_RESULTS},
                },
                "required": ["result_id"],
            },
        ),
        Tool(
            name="list_wms_servers",
            description="Lister les serveurs uniques (URL et titre) d'un résultat",
            inputSchema={
                "type": "object",
                "properties": {"result_id": {"type": "string"}},
                "required": ["result_id"],
            },
        ),
        Tool(
            name="describe_wms_layers",
            description="Afficher les propriétés des couches d'un résultat, une par ligne",
            inputSchema={
                "type": "object",
                "properties": {
                    "result_id": {"type": "string"},
                    "properties": {
                        "type": "array",
                        "items": {"type": "string"},
                        "default": ["populated"],
                        "description": "populated, all, ou noms de propriétés (ServerURL, LayerName, Latlim, ...)",
                    },
                    "label": {"type": "boolean", "default": True},
                    "index": {"type": "boolean", "default": True},
                    "max_results": {"type": "integer", "default": DEFAULT_MAX_RESULTS},
                },
                "required": ["result_id"],
            },
        ),
        Tool(
            name="get_wms_catalog_stats",
            description="Statistiques du catalogue installé et catalogues en ligne en cache",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="clear_wms_catalog_cache",
            description="Supprimer les catalogues en ligne mis en cache",
            inputSchema={"type": "object", "properties": {}},
        ),
    ]


@app.call_tool()
async def call_tool(name: str, arguments: Any) -> list[TextContent]:
    """Exécute un outil"""
    try:
        return await _execute_tool_logic(name, arguments)
    except InvalidArgumentError as exc:
        return _text({"error": str(exc), "kind": "invalid_argument", "parameter": exc.parameter})
    except DataSourceError as exc:
        return _text({"error": str(exc), "kind": "data_source", "version": exc.version})
    except ValueError as exc:
        return _text({"error": str(exc)})


async def main():
    """Point d'entrée principal"""
    logging.basicConfig(
        level=logging.INFO,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    async with mcp.server.stdio.stdio_server() as (read_stream, write_stream):
        await app.run(
            read_stream,
            write_stream,
            app.create_initialization_options()
        )


if __name__ == "__main__":
    asyncio.run(main())
