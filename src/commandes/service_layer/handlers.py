"""
Handlers pour les commands et events.

Les handlers sont les fonctions qui traitent les commands et events
transitant par le message bus.

- Command handlers : exécutent une action (peuvent échouer)
- Event handlers : réagissent à un fait passé (ne doivent pas échouer)

Chaque service (commandes, inventaire, paiement) n'invoque que ses
propres handlers, contre sa propre base.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import TYPE_CHECKING

from commandes.domain import commands, erreurs, events, model
from commandes.service_layer.saga import Saga, Étape

if TYPE_CHECKING:
    from commandes.adapters.clients import AbstractInventaire, AbstractPaiement
    from commandes.adapters.publication import AbstractPublication
    from commandes.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)


# --- Command Handlers : orchestrateur de commandes ---


def créer_commande(
    cmd: commands.CréerCommande,
    uow: AbstractUnitOfWork,
    inventaire: AbstractInventaire,
    paiement: AbstractPaiement,
    publication: AbstractPublication,
    prix_unitaire: Decimal,
) -> model.Commande:
    """
    Saga de création d'une commande.

    1. réserver le stock            (compensation : libérer le stock)
    2. autoriser le paiement        (compensation : rembourser)
    3. enregistrer la commande      (Pending)
    4. publier « commande créée »   (après commit, non compensée)

    La validation a lieu avant tout appel externe. Un échec des
    étapes 1 à 3 défait les étapes précédentes puis remonte ;
    un échec de publication remonte en ÉchecPublication avec la
    commande, qui existe déjà.
    """
    if not isinstance(cmd.produit, str) or not cmd.produit.strip():
        raise erreurs.ErreurValidation("Le produit est obligatoire")
    commande = model.Commande.nouvelle(cmd.produit, cmd.quantité)
    montant = model.calculer_montant(commande.quantité, prix_unitaire)
    logger.info(
        "Création de la commande %s : %s x%d (montant %s)",
        commande.id, commande.produit, commande.quantité, montant,
    )

    def réserver() -> None:
        try:
            inventaire.réserver(commande.produit, commande.quantité)
        except erreurs.ErreurCommandes as e:
            raise erreurs.ÉchecRéservation(e) from e

    def autoriser() -> model.ConfirmationPaiement:
        try:
            return paiement.autoriser(commande.id, montant)
        except erreurs.ErreurCommandes as e:
            raise erreurs.ÉchecPaiement(e) from e

    def enregistrer() -> None:
        with uow:
            uow.commandes.add(commande)
            uow.commit()

    Saga(
        f"création {commande.id}",
        [
            Étape(
                "réservation",
                réserver,
                lambda _: inventaire.libérer(commande.produit, commande.quantité),
            ),
            Étape(
                "paiement",
                autoriser,
                lambda confirmation: paiement.rembourser(confirmation.id_paiement),
            ),
            Étape("enregistrement", enregistrer),
        ],
    ).exécuter()

    try:
        publication.publier_commande_créée(commande.id)
    except erreurs.ÉchecPublication as e:
        logger.error(
            "Commande %s enregistrée mais non publiée : elle restera en attente",
            commande.id,
        )
        e.commande = commande
        raise
    return commande


TENTATIVES_CONFLIT = 3


def modifier_statut_commande(
    cmd: commands.ModifierStatutCommande,
    uow: AbstractUnitOfWork,
) -> model.Commande:
    """
    Fait avancer une commande dans la machine à états.

    Idempotent : redemander le statut déjà atteint ne change rien
    et réussit. Lève CommandeIntrouvable ou TransitionInterdite.

    Si une autre transaction a changé la commande entre la lecture et
    le commit, la transition est rejouée sur l'état relu : Completed
    et Cancelled concurrents ne peuvent pas réussir tous les deux.
    """
    tentative = 1
    while True:
        try:
            return _appliquer_statut(cmd, uow)
        except erreurs.ConflitConcurrence:
            if tentative >= TENTATIVES_CONFLIT:
                raise
            tentative += 1
            logger.info(
                "Commande %s modifiée en parallèle, nouvelle tentative (%d/%d)",
                cmd.id_commande, tentative, TENTATIVES_CONFLIT,
            )


def _appliquer_statut(
    cmd: commands.ModifierStatutCommande,
    uow: AbstractUnitOfWork,
) -> model.Commande:
    with uow:
        commande = uow.commandes.get_pour_mise_à_jour(cmd.id_commande)
        if commande is None:
            raise erreurs.CommandeIntrouvable(f"Commande inconnue : {cmd.id_commande}")
        changé = commande.modifier_statut(cmd.statut)
        # Commit même sans changement : libère le verrou sans expirer l'entité.
        uow.commit()
    if changé:
        logger.info("Statut de la commande %s : %s", commande.id, commande.statut.value)
    else:
        logger.info(
            "Commande %s déjà en statut %s, rien à faire",
            commande.id, commande.statut.value,
        )
    return commande


def annuler_commande(
    cmd: commands.AnnulerCommande,
    uow: AbstractUnitOfWork,
) -> model.Commande:
    """Annulation explicite d'une commande en attente."""
    return modifier_statut_commande(
        commands.ModifierStatutCommande(
            id_commande=cmd.id_commande,
            statut=model.StatutCommande.ANNULÉE,
        ),
        uow=uow,
    )


# --- Command Handlers : registre de stock ---


def créer_article_stock(
    cmd: commands.CréerArticleStock,
    uow: AbstractUnitOfWork,
) -> bool:
    """Crée un article s'il n'existe pas encore. Retourne True si créé."""
    with uow:
        if uow.stocks.get(cmd.produit) is not None:
            return False
        uow.stocks.add(model.ArticleStock(produit=cmd.produit, quantité=cmd.quantité))
        uow.commit()
    return True


def réserver_stock(
    cmd: commands.RéserverStock,
    uow: AbstractUnitOfWork,
) -> model.ArticleStock:
    """
    Vérifie et décrémente le stock en une seule écriture.

    Le décrément est conditionnel (quantité disponible suffisante) :
    deux réservations concurrentes ne peuvent pas survendre, quelle
    que soit la base. Si rien n'a été décrémenté, une lecture
    distingue le produit inconnu du stock insuffisant.
    """
    model.valider_quantité(cmd.quantité)
    with uow:
        if not uow.stocks.décrémenter(cmd.produit, cmd.quantité):
            article = uow.stocks.get(cmd.produit)
            if article is None:
                raise erreurs.ProduitInconnu(f"Produit '{cmd.produit}' non disponible")
            raise erreurs.StockInsuffisant(
                f"Stock insuffisant pour {cmd.produit} : "
                f"{cmd.quantité} demandés, {article.quantité} disponibles"
            )
        article = uow.stocks.get(cmd.produit)
        uow.commit()
    logger.info("Réservation : %s x%d (reste %d)", cmd.produit, cmd.quantité, article.quantité)
    return article


def libérer_stock(
    cmd: commands.LibérerStock,
    uow: AbstractUnitOfWork,
) -> model.ArticleStock:
    model.valider_quantité(cmd.quantité)
    with uow:
        if not uow.stocks.incrémenter(cmd.produit, cmd.quantité):
            raise erreurs.ProduitInconnu(f"Produit '{cmd.produit}' non disponible")
        article = uow.stocks.get(cmd.produit)
        uow.commit()
    logger.info("Libération : %s x%d (reste %d)", cmd.produit, cmd.quantité, article.quantité)
    return article


# --- Command Handlers : paiement ---


def autoriser_paiement(
    cmd: commands.AutoriserPaiement,
    uow: AbstractUnitOfWork,
) -> model.ConfirmationPaiement:
    confirmation = model.ConfirmationPaiement.autoriser(cmd.id_commande, cmd.montant)
    with uow:
        uow.paiements.add(confirmation)
        uow.commit()
    logger.info("Paiement accepté : %s", confirmation)
    return confirmation


def rembourser_paiement(
    cmd: commands.RembourserPaiement,
    uow: AbstractUnitOfWork,
) -> model.ConfirmationPaiement:
    with uow:
        confirmation = uow.paiements.get(cmd.id_paiement)
        if confirmation is None:
            raise erreurs.PaiementIntrouvable(f"Paiement inconnu : {cmd.id_paiement}")
        confirmation.rembourser()
        uow.commit()
    logger.info("Paiement remboursé : %s", confirmation)
    return confirmation


# --- Event Handlers ---


def ajouter_historique_vue(
    event: events.StatutCommandeModifié,
    uow: AbstractUnitOfWork,
) -> None:
    """
    Met à jour le read model de l'historique des statuts.

    N'est appelé que pour les transitions effectives : une mise à
    jour redélivrée n'émet pas d'événement et n'ajoute pas de ligne.
    """
    with uow:
        uow.historique.ajouter(
            id_commande=event.id_commande,
            ancien_statut=event.ancien_statut,
            nouveau_statut=event.nouveau_statut,
            horodatage=event.horodatage,
        )
        uow.commit()


def libérer_stock_commande_annulée(
    event: events.CommandeAnnulée,
    inventaire: AbstractInventaire,
) -> None:
    """Rend au registre le stock réservé par une commande annulée."""
    inventaire.libérer(event.produit, event.quantité)
    logger.info(
        "Stock libéré après annulation de %s : %s x%d",
        event.id_commande, event.produit, event.quantité,
    )
