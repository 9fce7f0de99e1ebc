"""
Adapters HTTP vers les autres services.

Chaque service distant est caché derrière une interface abstraite,
ce qui permet d'injecter des fakes en test. Les implémentations
concrètes utilisent requests avec un timeout borné et traduisent
toute erreur de transport en DépendanceIndisponible : aucune
exception de requests ne sort de ce module.
"""

from __future__ import annotations

import abc
import logging
import uuid
from datetime import datetime
from decimal import Decimal, InvalidOperation

import requests

from commandes.domain import erreurs, model
from commandes.domain.contrat import StatutCommande

logger = logging.getLogger(__name__)

ERREURS_PAR_RAISON: dict[str, type[erreurs.ErreurCommandes]] = {
    cls.raison: cls
    for cls in (
        erreurs.ErreurValidation,
        erreurs.ProduitInconnu,
        erreurs.StockInsuffisant,
        erreurs.MontantInvalide,
        erreurs.TransitionInterdite,
    )
}


class AbstractInventaire(abc.ABC):
    """Registre de stock vu depuis l'orchestrateur."""

    @abc.abstractmethod
    def réserver(self, produit: str, quantité: int) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def libérer(self, produit: str, quantité: int) -> None:
        raise NotImplementedError


class AbstractPaiement(abc.ABC):
    """Service de paiement vu depuis l'orchestrateur."""

    @abc.abstractmethod
    def autoriser(self, id_commande: uuid.UUID, montant: Decimal) -> model.ConfirmationPaiement:
        raise NotImplementedError

    @abc.abstractmethod
    def rembourser(self, id_paiement: uuid.UUID) -> None:
        raise NotImplementedError


class AbstractServiceCommandes(abc.ABC):
    """Orchestrateur de commandes vu depuis le worker de traitement."""

    @abc.abstractmethod
    def modifier_statut(self, id_commande: uuid.UUID, statut: StatutCommande) -> None:
        raise NotImplementedError


class _ClientHttp:
    """Base commune : URL de base, session requests et timeout."""

    nom_service = "service"

    def __init__(self, url_base: str, délai: float, session: requests.Session | None = None):
        self.url_base = url_base.rstrip("/")
        self.délai = délai
        self.session = session or requests.Session()

    def _envoyer(self, méthode: str, chemin: str, **kwargs) -> requests.Response:
        url = f"{self.url_base}{chemin}"
        try:
            réponse = self.session.request(méthode, url, timeout=self.délai, **kwargs)
        except requests.RequestException as e:
            raise erreurs.DépendanceIndisponible(
                f"{self.nom_service} injoignable ({méthode} {url}) : {e}"
            ) from e
        if réponse.status_code >= 500:
            raise erreurs.DépendanceIndisponible(
                f"{self.nom_service} en erreur ({réponse.status_code}) sur {méthode} {url}"
            )
        return réponse

    def _erreur(
        self,
        réponse: requests.Response,
        introuvable: type[erreurs.ErreurCommandes],
    ) -> erreurs.ErreurCommandes:
        """Reconstruit l'erreur de la taxonomie à partir d'une réponse 4xx."""
        try:
            corps = réponse.json()
        except ValueError:
            corps = {}
        if not isinstance(corps, dict):
            corps = {}
        message = corps.get("message") or réponse.text or str(réponse.status_code)
        if réponse.status_code == 404:
            return introuvable(message)
        défaut = erreurs.ErreurValidation if réponse.status_code == 400 else erreurs.RejetMétier
        return ERREURS_PAR_RAISON.get(corps.get("reason"), défaut)(message)


class HttpInventaire(_ClientHttp, AbstractInventaire):
    nom_service = "Inventaire"

    def réserver(self, produit: str, quantité: int) -> None:
        réponse = self._envoyer(
            "POST", "/inventory/reserve", json={"product": produit, "quantity": quantité}
        )
        if réponse.status_code != 200:
            raise self._erreur(réponse, erreurs.ProduitInconnu)
        logger.debug("Stock réservé : %s x%d", produit, quantité)

    def libérer(self, produit: str, quantité: int) -> None:
        réponse = self._envoyer(
            "POST", "/inventory/release", json={"product": produit, "quantity": quantité}
        )
        if réponse.status_code != 200:
            raise self._erreur(réponse, erreurs.ProduitInconnu)


class HttpPaiement(_ClientHttp, AbstractPaiement):
    nom_service = "Paiement"

    def autoriser(self, id_commande: uuid.UUID, montant: Decimal) -> model.ConfirmationPaiement:
        réponse = self._envoyer(
            "POST", "/payments", json={"orderId": str(id_commande), "amount": float(montant)}
        )
        if réponse.status_code != 200:
            raise self._erreur(réponse, erreurs.PaiementIntrouvable)
        return self._confirmation(réponse)

    def rembourser(self, id_paiement: uuid.UUID) -> None:
        réponse = self._envoyer("POST", f"/payments/{id_paiement}/refund")
        if réponse.status_code != 200:
            raise self._erreur(réponse, erreurs.PaiementIntrouvable)

    def _confirmation(self, réponse: requests.Response) -> model.ConfirmationPaiement:
        try:
            corps = réponse.json()
            return model.ConfirmationPaiement(
                id_paiement=uuid.UUID(corps["paymentId"]),
                id_commande=uuid.UUID(corps["orderId"]),
                montant=Decimal(str(corps["amount"])),
                horodatage=datetime.fromisoformat(corps["timestamp"]),
                statut=model.StatutPaiement(corps["status"]),
            )
        except (ValueError, KeyError, TypeError, InvalidOperation) as e:
            raise erreurs.DépendanceIndisponible(f"Réponse de paiement illisible : {e}") from e


class HttpServiceCommandes(_ClientHttp, AbstractServiceCommandes):
    nom_service = "Commandes"

    def modifier_statut(self, id_commande: uuid.UUID, statut: StatutCommande) -> None:
        réponse = self._envoyer(
            "PUT", f"/orders/{id_commande}/status", json={"status": statut.value}
        )
        if réponse.status_code != 200:
            raise self._erreur(réponse, erreurs.CommandeIntrouvable)
