"""
Commands du domaine.

Les commands représentent des intentions : quelque chose que
le système doit faire. Contrairement aux events (faits passés),
les commands sont des demandes qui peuvent échouer.
"""

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from commandes.domain.contrat import StatutCommande


class Command:
    """Classe de base pour toutes les commands."""
    pass


# --- Orchestrateur de commandes ---


@dataclass(frozen=True)
class CréerCommande(Command):
    """Demande de création d'une commande (déclenche la saga)."""

    produit: str
    quantité: int


@dataclass(frozen=True)
class ModifierStatutCommande(Command):
    """Demande de changement de statut, typiquement par le worker de traitement."""

    id_commande: UUID
    statut: StatutCommande


@dataclass(frozen=True)
class AnnulerCommande(Command):
    """Annulation explicite d'une commande encore en attente."""

    id_commande: UUID


# --- Registre de stock ---


@dataclass(frozen=True)
class CréerArticleStock(Command):
    """Création d'un article en stock s'il n'existe pas encore."""

    produit: str
    quantité: int


@dataclass(frozen=True)
class RéserverStock(Command):
    """Vérification et décrément du stock d'un produit."""

    produit: str
    quantité: int


@dataclass(frozen=True)
class LibérerStock(Command):
    """Remise en stock d'une quantité réservée."""

    produit: str
    quantité: int


# --- Autorisation de paiement ---


@dataclass(frozen=True)
class AutoriserPaiement(Command):
    """Demande d'autorisation du montant d'une commande."""

    id_commande: UUID
    montant: Decimal


@dataclass(frozen=True)
class RembourserPaiement(Command):
    """Remboursement d'un paiement accepté."""

    id_paiement: UUID
