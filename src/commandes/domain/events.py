"""
Events du domaine.

Les events représentent des faits qui se sont produits dans le système.
Ils sont immuables et nommés au passé (quelque chose s'est passé).
"""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from commandes.domain.contrat import StatutCommande


class Event:
    """Classe de base pour tous les events du domaine."""
    pass


@dataclass(frozen=True)
class StatutCommandeModifié(Event):
    """Une commande a effectivement changé de statut."""

    id_commande: UUID
    ancien_statut: StatutCommande
    nouveau_statut: StatutCommande
    horodatage: datetime


@dataclass(frozen=True)
class CommandeAnnulée(Event):
    """Une commande en attente a été annulée ; son stock peut être libéré."""

    id_commande: UUID
    produit: str
    quantité: int
