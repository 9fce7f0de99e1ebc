"""
Message bus des trois services.

Chaque requête HTTP (ou message du worker) devient une command
envoyée ici. Le handler de la command s'exécute, puis les événements
levés par les commandes touchées (changement de statut, annulation)
sont dispatchés à leur tour : historique des statuts, remise en stock.

Une erreur de command remonte à l'entrypoint, qui la traduit en code
HTTP. Une erreur d'event handler est loggée : le changement de statut
est déjà enregistré et ne doit pas être annulé par un effet secondaire.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, Union

from commandes.domain import commands, events
from commandes.service_layer import unit_of_work

logger = logging.getLogger(__name__)

Message = Union[commands.Command, events.Event]


class MessageBus:
    """
    Dispatch des commands et events vers les handlers de bootstrap.

    Les handlers déclarent leurs dépendances par le nom de leurs
    paramètres (`uow`, `inventaire`, `paiement`, `publication`,
    `prix_unitaire`) ; le bus les fournit à l'appel.

    Une seule instance sert toutes les requêtes Flask : la file des
    messages en attente vit dans l'appel à handle(), jamais sur l'instance.
    """

    def __init__(
        self,
        uow: unit_of_work.AbstractUnitOfWork,
        event_handlers: dict[type[events.Event], list[Callable]],
        command_handlers: dict[type[commands.Command], Callable],
        dependencies: dict[str, Any] | None = None,
    ):
        self.uow = uow
        self.event_handlers = event_handlers
        self.command_handlers = command_handlers
        self.dependencies = dependencies or {}

    def handle(self, message: Message) -> list[Any]:
        """Traite le message et ses suites ; retourne les résultats des commands."""
        file: list[Message] = [message]
        résultats: list[Any] = []
        while file:
            message = file.pop(0)
            if isinstance(message, events.Event):
                self._handle_event(message, file)
            elif isinstance(message, commands.Command):
                résultats.append(self._handle_command(message, file))
            else:
                raise ValueError(f"Message de type inconnu : {type(message)}")
        return résultats

    def _handle_event(self, event: events.Event, file: list[Message]) -> None:
        for handler in self.event_handlers.get(type(event), []):
            try:
                logger.debug("Event %s -> %s", event, handler.__name__)
                self._call_handler(handler, event)
                file.extend(self.uow.collect_new_events())
            except Exception:
                logger.exception("Échec du handler %s pour %s", handler.__name__, event)

    def _handle_command(self, command: commands.Command, file: list[Message]) -> Any:
        handler = self.command_handlers.get(type(command))
        if handler is None:
            raise ValueError(f"Aucun handler pour la command {type(command)}")
        logger.debug("Command %s -> %s", command, handler.__name__)
        résultat = self._call_handler(handler, command)
        file.extend(self.uow.collect_new_events())
        return résultat

    def _call_handler(self, handler: Callable, message: Message) -> Any:
        # Le premier paramètre reçoit le message, les suivants sont résolus par nom.
        kwargs: dict[str, Any] = {}
        for nom in list(inspect.signature(handler).parameters)[1:]:
            if nom == "uow":
                kwargs[nom] = self.uow
            elif nom in self.dependencies:
                kwargs[nom] = self.dependencies[nom]
        return handler(message, **kwargs)
