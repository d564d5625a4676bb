#!/usr/bin/env python3
"""
Cache disque des catalogues WMS téléchargés (version « online »).

Architecture :
- Fichiers JSON dans ~/.mcp_cache/wms_catalog/ (ou WMS_CATALOG_CACHE_DIR)
- Un fichier de données + un fichier de métadonnées par URL
- Identifiant stable dérivé de l'URL
- Expiration après 24h
"""

import hashlib
import json
import logging
import os
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


# Dossier de cache
CACHE_DIR = Path(os.getenv("WMS_CATALOG_CACHE_DIR", Path.home() / ".mcp_cache" / "wms_catalog"))

# Durée de vie des fichiers cache (24 heures)
CACHE_TTL_SECONDS = 24 * 3600


def _cache_dir() -> Path:
    CACHE_DIR.mkdir(parents=True, exist_ok=True)
    return CACHE_DIR


def _generate_cache_id(url: str) -> str:
    """ID stable pour une URL de catalogue"""
    return "catalog_" + hashlib.md5(url.encode("utf-8")).hexdigest()[:16]


def _get_cache_path(cache_id: str) -> Path:
    """Chemin du fichier cache"""
    return _cache_dir() / f"{cache_id}.json"


def _get_metadata_path(cache_id: str) -> Path:
    """Chemin du fichier métadonnées"""
    return _cache_dir() / f"{cache_id}_meta.json"


def _remove(cache_id: str) -> None:
    for path in (CACHE_DIR / f"{cache_id}.json", CACHE_DIR / f"{cache_id}_meta.json"):
        try:
            path.unlink()
        except FileNotFoundError:
            continue
        except OSError as exc:
            logger.warning("Suppression de %s impossible : %s", path, exc)


def remove_cached_catalog(url: str) -> None:
    """Supprime l'entrée de cache de url (sans erreur si elle est absente)"""
    _remove(_generate_cache_id(url))


def cache_catalog(url: str, content: str) -> Dict[str, Any]:
    """
    Enregistre le catalogue téléchargé depuis url.

    Returns:
        Métadonnées du cache (cache_id, url, dates, taille)
    """
    cache_id = _generate_cache_id(url)
    cache_path = _get_cache_path(cache_id)
    with open(cache_path, "w", encoding="utf-8") as f:
        json.dump({"url": url, "content": content}, f, ensure_ascii=False)

    now = datetime.now()
    metadata = {
        "cache_id": cache_id,
        "url": url,
        "created_at": now.isoformat(),
        "expires_at": (now + timedelta(seconds=CACHE_TTL_SECONDS)).isoformat(),
        "file_path": str(cache_path),
        "file_size_bytes": cache_path.stat().st_size,
    }
    with open(_get_metadata_path(cache_id), "w", encoding="utf-8") as f:
        json.dump(metadata, f, ensure_ascii=False, indent=2)

    logger.info("Catalogue %s mis en cache (%s)", url, cache_id)
    return metadata


def get_cached_catalog(url: str) -> Optional[str]:
    """
    Contenu du catalogue en cache pour url, ou None s'il est absent ou expiré.
    """
    cache_id = _generate_cache_id(url)
    try:
        meta_path = _get_metadata_path(cache_id)
        if not meta_path.exists():
            return None
        with open(meta_path, "r", encoding="utf-8") as f:
            metadata = json.load(f)
        expires_at = datetime.fromisoformat(metadata["expires_at"])
        if datetime.now() > expires_at:
            _remove(cache_id)
            return None
        with open(_get_cache_path(cache_id), "r", encoding="utf-8") as f:
            content = json.load(f)["content"]
    except (OSError, ValueError, KeyError) as exc:
        logger.warning("Cache du catalogue %s illisible, ignoré : %s", url, exc)
        _remove(cache_id)
        return None

    logger.info("Catalogue %s lu depuis le cache", url)
    return content


def list_cached_items() -> List[Dict[str, Any]]:
    """Liste tous les catalogues en cache avec leurs métadonnées"""
    items = []

    for meta_file in CACHE_DIR.glob("*_meta.json"):
        try:
            with open(meta_file, "r", encoding="utf-8") as f:
                metadata = json.load(f)
            expires_at = datetime.fromisoformat(metadata["expires_at"])
        except (OSError, ValueError, KeyError) as exc:
            logger.warning("Métadonnées de cache illisibles (%s) : %s", meta_file.name, exc)
            continue

        if datetime.now() > expires_at:
            continue

        items.append({
            "cache_id": metadata["cache_id"],
            "url": metadata["url"],
            "created_at": metadata["created_at"],
            "expires_at": metadata["expires_at"],
            "file_size_kb": round(metadata["file_size_bytes"] / 1024, 2),
        })

    return items


def clear_cache() -> int:
    """Supprime tous les fichiers cache ; retourne le nombre de fichiers supprimés"""
    removed = 0
    for file in CACHE_DIR.glob("*.json"):
        try:
            file.unlink()
            removed += 1
        except FileNotFoundError:
            continue
        except OSError as exc:
            logger.warning("Suppression de %s impossible : %s", file, exc)
    return removed
