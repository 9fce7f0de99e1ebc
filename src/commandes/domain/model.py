"""
Modèle de domaine des commandes.

Trois entités, chacune possédée par un service distinct :
- Commande : possédée par l'orchestrateur, suit la machine à états
  Pending -> Completed | Cancelled ;
- ArticleStock : possédé par le registre de stock ;
- ConfirmationPaiement : possédée par le service de paiement.

Les entités ne connaissent ni SQLAlchemy ni HTTP.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from commandes.domain import erreurs, events
from commandes.domain.contrat import TRANSITIONS, StatutCommande


def maintenant() -> datetime:
    return datetime.now(timezone.utc)


def valider_quantité(quantité: object) -> int:
    """Une quantité doit être un entier strictement positif."""
    if isinstance(quantité, bool) or not isinstance(quantité, int) or quantité <= 0:
        raise erreurs.ErreurValidation(
            f"La quantité doit être un entier positif (reçu : {quantité!r})"
        )
    return quantité


def calculer_montant(quantité: int, prix_unitaire: Decimal) -> Decimal:
    """Montant à facturer : quantité x prix unitaire (politique configurable)."""
    return Decimal(quantité) * prix_unitaire


class Commande:
    """
    Entité représentant une commande client.

    L'identité est un UUID attribué à la création. Le statut ne
    peut qu'avancer : aucune commande ne quitte un état terminal.

    Le numéro de version avance à chaque transition : l'écriture
    échoue si une autre transaction a modifié la commande entre-temps.

    Chaque changement effectif de statut émet un événement ;
    un changement vers le statut déjà atteint est un no-op
    silencieux, ce qui rend la mise à jour idempotente face aux
    redélivrances du canal d'événements.
    """

    def __init__(
        self,
        id: uuid.UUID,
        produit: str,
        quantité: int,
        statut: StatutCommande = StatutCommande.EN_ATTENTE,
        créée_le: Optional[datetime] = None,
        mise_à_jour_le: Optional[datetime] = None,
        numéro_version: int = 0,
    ):
        self.id = id
        self.produit = produit
        self.quantité = valider_quantité(quantité)
        self.statut = statut
        self.créée_le = créée_le or maintenant()
        self.mise_à_jour_le = mise_à_jour_le
        self.numéro_version = numéro_version
        self.événements: list[events.Event] = []

    @classmethod
    def nouvelle(cls, produit: str, quantité: int) -> Commande:
        return cls(id=uuid.uuid4(), produit=produit, quantité=quantité)

    def __repr__(self) -> str:
        return f"<Commande {self.id} {self.statut.value}>"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Commande):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def modifier_statut(self, nouveau: StatutCommande) -> bool:
        """
        Applique une transition de la machine à états.

        Retourne True si le statut a changé, False si la commande
        était déjà dans ce statut. Lève TransitionInterdite sinon.
        """
        if nouveau == self.statut:
            return False
        if nouveau not in TRANSITIONS[self.statut]:
            raise erreurs.TransitionInterdite(
                f"Transition interdite pour {self.id} : "
                f"{self.statut.value} -> {nouveau.value}"
            )
        ancien = self.statut
        self.statut = nouveau
        self.mise_à_jour_le = maintenant()
        self.numéro_version += 1
        self.événements.append(
            events.StatutCommandeModifié(
                id_commande=self.id,
                ancien_statut=ancien,
                nouveau_statut=nouveau,
                horodatage=self.mise_à_jour_le,
            )
        )
        if nouveau is StatutCommande.ANNULÉE:
            self.événements.append(
                events.CommandeAnnulée(
                    id_commande=self.id,
                    produit=self.produit,
                    quantité=self.quantité,
                )
            )
        return True

    def terminer(self) -> bool:
        return self.modifier_statut(StatutCommande.TERMINÉE)

    def annuler(self) -> bool:
        return self.modifier_statut(StatutCommande.ANNULÉE)


class ArticleStock:
    """
    Entité représentant le stock disponible d'un produit.

    L'identité est le nom du produit. La quantité disponible ne
    descend jamais sous zéro : la réservation vérifie puis décrémente
    dans la même transaction, sous verrou de ligne (voir repository).
    """

    def __init__(
        self,
        produit: str,
        quantité: int,
        id: Optional[uuid.UUID] = None,
        créé_le: Optional[datetime] = None,
        mis_à_jour_le: Optional[datetime] = None,
    ):
        if quantité < 0:
            raise erreurs.ErreurValidation("La quantité en stock ne peut être négative")
        self.id = id or uuid.uuid4()
        self.produit = produit
        self.quantité = quantité
        self.créé_le = créé_le or maintenant()
        self.mis_à_jour_le = mis_à_jour_le

    def __repr__(self) -> str:
        return f"<ArticleStock {self.produit} x{self.quantité}>"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ArticleStock):
            return NotImplemented
        return self.produit == other.produit

    def __hash__(self) -> int:
        return hash(self.produit)

    def peut_réserver(self, quantité: int) -> bool:
        return self.quantité >= quantité

    def réserver(self, quantité: int) -> None:
        valider_quantité(quantité)
        if not self.peut_réserver(quantité):
            raise erreurs.StockInsuffisant(
                f"Stock insuffisant pour {self.produit} : "
                f"{quantité} demandés, {self.quantité} disponibles"
            )
        self.quantité -= quantité
        self.mis_à_jour_le = maintenant()

    def libérer(self, quantité: int) -> None:
        """Remet en stock une quantité précédemment réservée (compensation)."""
        valider_quantité(quantité)
        self.quantité += quantité
        self.mis_à_jour_le = maintenant()


class StatutPaiement(str, enum.Enum):
    RÉUSSI = "Success"
    REMBOURSÉ = "Refunded"


class ConfirmationPaiement:
    """
    Jeton de confirmation émis par le service de paiement.

    Le règlement est simulé : tout montant positif est accepté.
    """

    def __init__(
        self,
        id_commande: uuid.UUID,
        montant: Decimal,
        id_paiement: Optional[uuid.UUID] = None,
        horodatage: Optional[datetime] = None,
        statut: StatutPaiement = StatutPaiement.RÉUSSI,
    ):
        self.id_paiement = id_paiement or uuid.uuid4()
        self.id_commande = id_commande
        self.montant = montant
        self.horodatage = horodatage or maintenant()
        self.statut = statut

    def __repr__(self) -> str:
        return f"<ConfirmationPaiement {self.id_paiement} {self.statut.value}>"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ConfirmationPaiement):
            return NotImplemented
        return self.id_paiement == other.id_paiement

    def __hash__(self) -> int:
        return hash(self.id_paiement)

    @classmethod
    def autoriser(cls, id_commande: uuid.UUID, montant: Decimal) -> ConfirmationPaiement:
        if montant <= 0:
            raise erreurs.MontantInvalide(f"Montant invalide : {montant}")
        return cls(id_commande=id_commande, montant=montant)

    def rembourser(self) -> None:
        # Idempotent : rembourser deux fois ne change rien.
        self.statut = StatutPaiement.REMBOURSÉ
