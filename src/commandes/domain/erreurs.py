"""
Taxonomie des erreurs.

Chaque exception porte une `raison` lisible par une machine, renvoyée
telle quelle aux clients HTTP. Les adapters traduisent les erreurs de
transport (requests, pika, SQLAlchemy) dans cette taxonomie : aucune
erreur brute ne doit atteindre un client.
"""

from __future__ import annotations

from typing import Any


class ErreurCommandes(Exception):
    """Classe de base de toutes les erreurs du système."""

    raison = "Error"


# --- Erreurs du client (à corriger par l'appelant, jamais rejouées) ---


class ErreurValidation(ErreurCommandes):
    raison = "InvalidRequest"


class MessageInvalide(ErreurValidation):
    """Message du canal d'événements illisible."""

    raison = "MalformedMessage"


class Introuvable(ErreurCommandes):
    raison = "NotFound"


class CommandeIntrouvable(Introuvable):
    pass


class PaiementIntrouvable(Introuvable):
    pass


# --- Rejets métier (définitifs pour la tentative en cours) ---


class RejetMétier(ErreurCommandes):
    raison = "BusinessRejection"


class ProduitInconnu(RejetMétier):
    raison = "ProductNotFound"


class StockInsuffisant(RejetMétier):
    raison = "InsufficientStock"


class MontantInvalide(RejetMétier):
    raison = "InvalidAmount"


class TransitionInterdite(RejetMétier):
    """Changement de statut refusé par la machine à états."""

    raison = "InvalidTransition"


# --- Défaillances d'infrastructure ---


class DépendanceIndisponible(ErreurCommandes):
    """Timeout, connexion refusée ou erreur 5xx d'un service appelé."""

    raison = "DependencyUnavailable"


class ÉchecPersistance(ErreurCommandes):
    raison = "PersistenceFailed"


class ConflitConcurrence(ÉchecPersistance):
    """La ligne a été modifiée par une autre transaction depuis sa lecture."""

    raison = "ConcurrentUpdate"


class ÉchecPublication(ErreurCommandes):
    """
    La publication a échoué APRÈS l'enregistrement de la commande.

    La commande existe mais restera en attente faute de déclencheur
    de traitement : l'appelant doit pouvoir distinguer ce cas.
    """

    raison = "PublishFailed"

    def __init__(self, message: str, commande: Any = None):
        super().__init__(message)
        self.commande = commande


# --- Échecs d'une étape de la saga ---


class ÉchecÉtape(ErreurCommandes):
    """Enveloppe l'erreur ayant fait échouer une étape de la saga."""

    def __init__(self, cause: ErreurCommandes):
        super().__init__(str(cause))
        self.cause = cause

    @property
    def indisponible(self) -> bool:
        return isinstance(self.cause, DépendanceIndisponible)


class ÉchecRéservation(ÉchecÉtape):
    raison = "ReservationFailed"


class ÉchecPaiement(ÉchecÉtape):
    raison = "PaymentFailed"
