"""
Exécuteur de saga.

Une saga est une liste ordonnée d'étapes (action, compensation).
Les actions s'exécutent dans l'ordre ; si l'une échoue, les
compensations des étapes déjà validées sont jouées dans l'ordre
inverse, puis l'erreur d'origine remonte à l'appelant.

Il n'y a pas de commit atomique entre services : seulement une
exécution ordonnée, au mieux, avec retour arrière explicite.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Étape:
    """
    Une étape de la saga.

    `compensation` reçoit le résultat de `action` (par exemple la
    confirmation de paiement à rembourser). None : rien à défaire.
    """

    nom: str
    action: Callable[[], Any]
    compensation: Optional[Callable[[Any], None]] = None


class Saga:
    def __init__(self, nom: str, étapes: list[Étape]):
        self.nom = nom
        self.étapes = étapes

    def exécuter(self) -> list[Any]:
        """Exécute toutes les étapes et retourne leurs résultats, dans l'ordre."""
        validées: list[tuple[Étape, Any]] = []
        for étape in self.étapes:
            logger.debug("Saga %s : étape %s", self.nom, étape.nom)
            try:
                résultat = étape.action()
            except Exception:
                logger.warning(
                    "Saga %s : échec de l'étape %s, compensation de %d étape(s)",
                    self.nom, étape.nom, len(validées),
                )
                self._compenser(validées)
                raise
            validées.append((étape, résultat))
        return [résultat for _, résultat in validées]

    def _compenser(self, validées: list[tuple[Étape, Any]]) -> None:
        """
        Joue les compensations en ordre inverse.

        Une compensation qui échoue est loggée mais n'empêche pas
        les suivantes : l'erreur d'origine reste celle qui remonte.
        """
        for étape, résultat in reversed(validées):
            if étape.compensation is None:
                continue
            try:
                étape.compensation(résultat)
                logger.info("Saga %s : étape %s compensée", self.nom, étape.nom)
            except Exception:
                logger.exception(
                    "Saga %s : échec de la compensation de l'étape %s",
                    self.nom, étape.nom,
                )
