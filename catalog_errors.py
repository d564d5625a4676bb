"""
Erreurs du catalogue de couches WMS.

- InvalidArgumentError : requête ou option mal formée (toujours levée avant
  tout chargement ou filtrage, avec le nom du paramètre fautif)
- DataSourceError : catalogue illisible, mal formé ou vide pour la version demandée

Un résultat vide n'est PAS une erreur : c'est une LayerCollection de taille 0.
"""

from typing import Optional


class InvalidArgumentError(ValueError):
    """Paramètre invalide, identifié par son nom."""

    def __init__(self, parameter: str, message: str):
        self.parameter = parameter
        super().__init__(f"Paramètre « {parameter} » invalide : {message}")


class DataSourceError(RuntimeError):
    """Le catalogue ne peut pas être lu pour la version demandée."""

    def __init__(self, message: str, version: Optional[str] = None):
        self.version = version
        if version:
            message = f"Catalogue « {version} » indisponible : {message}"
        super().__init__(message)
