"""
Bootstrap : assemblage de l'application (Composition Root).

Ce module construit le message bus avec toutes ses dépendances.
C'est ici que l'injection de dépendances est réalisée :
on assemble les composants concrets (ou les fakes pour les tests).

C'est le seul endroit de l'application qui connaît les
implémentations concrètes de chaque abstraction. Les trois services
HTTP partagent ce wiring ; chacun tourne contre sa propre base.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from commandes import config
from commandes.adapters import clients, orm, publication
from commandes.domain import commands, events
from commandes.service_layer import handlers, messagebus, unit_of_work


def bootstrap(
    start_orm: bool = True,
    uow: unit_of_work.AbstractUnitOfWork | None = None,
    inventaire: clients.AbstractInventaire | None = None,
    paiement: clients.AbstractPaiement | None = None,
    publication_adapter: publication.AbstractPublication | None = None,
    prix_unitaire: Decimal | None = None,
    **extra_dependencies: Any,
) -> messagebus.MessageBus:
    """
    Construit et retourne un MessageBus configuré.

    En production, utilise les implémentations concrètes.
    En test, on injecte des fakes via les paramètres.
    Aucune connexion réseau n'est ouverte ici : les clients HTTP
    et RabbitMQ se connectent au premier appel.
    """
    if start_orm:
        orm.start_mappers()

    if uow is None:
        uow = unit_of_work.SqlAlchemyUnitOfWork()

    délai = config.get_délai_dépendances()
    if inventaire is None:
        inventaire = clients.HttpInventaire(config.get_inventaire_url(), délai)

    if paiement is None:
        paiement = clients.HttpPaiement(config.get_paiement_url(), délai)

    if publication_adapter is None:
        publication_adapter = publication.RabbitMQPublication(
            publication.paramètres_connexion(**config.get_rabbitmq_params())
        )

    if prix_unitaire is None:
        prix_unitaire = config.get_prix_unitaire()

    dependencies: dict[str, Any] = {
        "inventaire": inventaire,
        "paiement": paiement,
        "publication": publication_adapter,
        "prix_unitaire": prix_unitaire,
        **extra_dependencies,
    }

    return messagebus.MessageBus(
        uow=uow,
        event_handlers=EVENT_HANDLERS,
        command_handlers=COMMAND_HANDLERS,
        dependencies=dependencies,
    )


# --- Routage des messages vers les handlers ---

EVENT_HANDLERS: dict[type[events.Event], list] = {
    events.StatutCommandeModifié: [handlers.ajouter_historique_vue],
    events.CommandeAnnulée: [handlers.libérer_stock_commande_annulée],
}

COMMAND_HANDLERS: dict[type[commands.Command], Any] = {
    commands.CréerCommande: handlers.créer_commande,
    commands.ModifierStatutCommande: handlers.modifier_statut_commande,
    commands.AnnulerCommande: handlers.annuler_commande,
    commands.CréerArticleStock: handlers.créer_article_stock,
    commands.RéserverStock: handlers.réserver_stock,
    commands.LibérerStock: handlers.libérer_stock,
    commands.AutoriserPaiement: handlers.autoriser_paiement,
    commands.RembourserPaiement: handlers.rembourser_paiement,
}
