"""
Tests unitaires du modèle de domaine.

Ces tests vérifient le comportement du modèle de domaine
en isolation complète, sans base de données ni I/O.
C'est le "low gear" : on teste la logique métier au plus près.
"""

import uuid
from decimal import Decimal

import pytest

from commandes.domain import erreurs, events
from commandes.domain.contrat import StatutCommande
from commandes.domain.model import (
    ArticleStock,
    Commande,
    ConfirmationPaiement,
    StatutPaiement,
    calculer_montant,
)


# --- Tests de la Commande ---


class TestCommande:
    def test_une_nouvelle_commande_est_en_attente(self):
        commande = Commande.nouvelle("Widget A", 3)

        assert commande.statut is StatutCommande.EN_ATTENTE
        assert commande.mise_à_jour_le is None
        assert isinstance(commande.id, uuid.UUID)

    def test_deux_nouvelles_commandes_ont_des_identifiants_différents(self):
        assert Commande.nouvelle("Widget A", 1).id != Commande.nouvelle("Widget A", 1).id

    @pytest.mark.parametrize("quantité", [0, -1, 2.5, "3", True])
    def test_quantité_invalide_refusée(self, quantité):
        with pytest.raises(erreurs.ErreurValidation):
            Commande.nouvelle("Widget A", quantité)

    def test_terminer_une_commande_en_attente(self):
        commande = Commande.nouvelle("Widget A", 3)

        assert commande.terminer() is True

        assert commande.statut is StatutCommande.TERMINÉE
        assert commande.mise_à_jour_le is not None

    def test_terminer_émet_un_événement_de_changement_de_statut(self):
        commande = Commande.nouvelle("Widget A", 3)
        commande.terminer()

        [événement] = commande.événements
        assert isinstance(événement, events.StatutCommandeModifié)
        assert événement.ancien_statut is StatutCommande.EN_ATTENTE
        assert événement.nouveau_statut is StatutCommande.TERMINÉE

    def test_terminer_deux_fois_est_un_no_op(self):
        """Le même statut redemandé ne change rien et ne lève rien."""
        commande = Commande.nouvelle("Widget A", 3)
        commande.terminer()
        horodatage = commande.mise_à_jour_le
        commande.événements.clear()

        assert commande.terminer() is False

        assert commande.statut is StatutCommande.TERMINÉE
        assert commande.mise_à_jour_le == horodatage
        assert commande.événements == []

    def test_seule_une_transition_effective_incrémente_la_version(self):
        commande = Commande.nouvelle("Widget A", 3)
        assert commande.numéro_version == 0

        commande.terminer()
        commande.terminer()

        assert commande.numéro_version == 1

    def test_annuler_émet_commande_annulée(self):
        commande = Commande.nouvelle("Widget B", 2)
        commande.annuler()

        assert commande.statut is StatutCommande.ANNULÉE
        assert events.CommandeAnnulée(commande.id, "Widget B", 2) in commande.événements

    @pytest.mark.parametrize(
        "terminal, cible",
        [
            (StatutCommande.TERMINÉE, StatutCommande.ANNULÉE),
            (StatutCommande.TERMINÉE, StatutCommande.EN_ATTENTE),
            (StatutCommande.ANNULÉE, StatutCommande.TERMINÉE),
            (StatutCommande.ANNULÉE, StatutCommande.EN_ATTENTE),
        ],
    )
    def test_aucune_sortie_d_un_état_terminal(self, terminal, cible):
        commande = Commande(uuid.uuid4(), "Widget A", 1, statut=terminal)

        with pytest.raises(erreurs.TransitionInterdite):
            commande.modifier_statut(cible)

        assert commande.statut is terminal

    def test_égalité_basée_sur_l_identifiant(self):
        id_commande = uuid.uuid4()
        assert Commande(id_commande, "Widget A", 1) == Commande(id_commande, "Widget B", 5)


# --- Tests de l'ArticleStock ---


class TestArticleStock:
    def test_réserver_décrémente_le_stock(self):
        article = ArticleStock("Widget A", 10)
        article.réserver(3)
        assert article.quantité == 7

    def test_réserver_tout_le_stock(self):
        article = ArticleStock("Widget A", 3)
        article.réserver(3)
        assert article.quantité == 0

    def test_réserver_plus_que_disponible_lève_stock_insuffisant(self):
        article = ArticleStock("Widget A", 2)

        with pytest.raises(erreurs.StockInsuffisant):
            article.réserver(3)

        assert article.quantité == 2

    def test_libérer_remet_en_stock(self):
        article = ArticleStock("Widget A", 10)
        article.réserver(4)
        article.libérer(4)
        assert article.quantité == 10

    def test_stock_négatif_refusé(self):
        with pytest.raises(erreurs.ErreurValidation):
            ArticleStock("Widget A", -1)


# --- Tests du paiement ---


class TestConfirmationPaiement:
    def test_autoriser_un_montant_positif(self):
        id_commande = uuid.uuid4()
        confirmation = ConfirmationPaiement.autoriser(id_commande, Decimal("30"))

        assert confirmation.statut is StatutPaiement.RÉUSSI
        assert confirmation.id_commande == id_commande
        assert confirmation.montant == Decimal("30")

    @pytest.mark.parametrize("montant", [Decimal("0"), Decimal("-5")])
    def test_montant_invalide_refusé(self, montant):
        with pytest.raises(erreurs.MontantInvalide):
            ConfirmationPaiement.autoriser(uuid.uuid4(), montant)

    def test_rembourser_est_idempotent(self):
        confirmation = ConfirmationPaiement.autoriser(uuid.uuid4(), Decimal("10"))
        confirmation.rembourser()
        confirmation.rembourser()
        assert confirmation.statut is StatutPaiement.REMBOURSÉ


def test_montant_égal_quantité_fois_prix_unitaire():
    assert calculer_montant(3, Decimal("10")) == Decimal("30")
