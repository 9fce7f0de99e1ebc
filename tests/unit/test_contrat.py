"""Tests du contrat partagé entre l'orchestrateur et le worker."""

import uuid

import pytest

from commandes.domain import erreurs
from commandes.domain.contrat import (
    StatutCommande,
    décoder_commande_créée,
    encoder_commande_créée,
)


class TestStatutCommande:
    @pytest.mark.parametrize(
        "valeur, attendu",
        [
            ("Completed", StatutCommande.TERMINÉE),
            ("completed", StatutCommande.TERMINÉE),
            ("PENDING", StatutCommande.EN_ATTENTE),
            (1, StatutCommande.TERMINÉE),
            ("2", StatutCommande.ANNULÉE),
            (0, StatutCommande.EN_ATTENTE),
        ],
    )
    def test_depuis_texte(self, valeur, attendu):
        assert StatutCommande.depuis_texte(valeur) is attendu

    @pytest.mark.parametrize("valeur", ["Shipped", "", 3, -1, None, True, 1.0])
    def test_depuis_texte_refuse_les_valeurs_inconnues(self, valeur):
        with pytest.raises(erreurs.ErreurValidation):
            StatutCommande.depuis_texte(valeur)

    def test_seul_pending_n_est_pas_terminal(self):
        assert [s for s in StatutCommande if not s.est_terminal] == [StatutCommande.EN_ATTENTE]


class TestMessageCommandeCréée:
    def test_le_message_ne_contient_que_l_identifiant(self):
        id_commande = uuid.UUID("7c9e6679-7425-40de-944b-e07fc1f90ae7")
        assert encoder_commande_créée(id_commande) == b"7c9e6679-7425-40de-944b-e07fc1f90ae7"

    def test_décoder_tolère_les_espaces(self):
        id_commande = uuid.uuid4()
        assert décoder_commande_créée(f" {id_commande}\n".encode()) == id_commande

    @pytest.mark.parametrize("corps", [b"", b"pas-un-uuid", b"\xff\xfe", b"{}"])
    def test_message_illisible(self, corps):
        with pytest.raises(erreurs.MessageInvalide):
            décoder_commande_créée(corps)
