"""
Adapter pour le canal d'événements.

Les commandes créées sont annoncées sur un exchange RabbitMQ de type
fanout : chaque file abonnée (le worker de traitement, et tout autre
consommateur futur) reçoit sa propre copie du message.
"""

from __future__ import annotations

import abc
import logging
import threading
import uuid

import pika
import pika.exceptions

from commandes.domain import contrat, erreurs

logger = logging.getLogger(__name__)


def paramètres_connexion(
    host: str, port: int, virtual_host: str, user: str, password: str
) -> pika.ConnectionParameters:
    return pika.ConnectionParameters(
        host=host,
        port=port,
        virtual_host=virtual_host,
        credentials=pika.PlainCredentials(user, password),
    )


def déclarer_topologie(canal, exchange: str = contrat.NOM_EXCHANGE) -> None:
    """Exchange fanout + file du worker, liée à l'exchange. Idempotent."""
    canal.exchange_declare(exchange=exchange, exchange_type="fanout", durable=True)
    canal.queue_declare(queue=contrat.FILE_TRAITEMENT, durable=True)
    canal.queue_bind(queue=contrat.FILE_TRAITEMENT, exchange=exchange)


class AbstractPublication(abc.ABC):
    """Interface abstraite de publication des événements « commande créée »."""

    @abc.abstractmethod
    def publier_commande_créée(self, id_commande: uuid.UUID) -> None:
        raise NotImplementedError


class RabbitMQPublication(AbstractPublication):
    """
    Publication sur l'exchange fanout `orders-exchange`.

    La connexion est ouverte au premier envoi puis réutilisée ; un
    verrou sérialise l'accès au canal, car une BlockingConnection
    pika ne doit pas être partagée entre threads sans protection.

    Le canal est en mode confirmation et la file du worker est déclarée
    dès la connexion : un message n'est considéré comme publié qu'une
    fois accepté par le broker et routé vers au moins une file, même si
    le worker n'a jamais démarré. Un refus (nack), un message non
    routable ou toute autre erreur AMQP devient une ÉchecPublication.
    """

    def __init__(
        self,
        paramètres: pika.ConnectionParameters,
        exchange: str = contrat.NOM_EXCHANGE,
    ):
        self.paramètres = paramètres
        self.exchange = exchange
        self._verrou = threading.Lock()
        self._connexion: pika.BlockingConnection | None = None
        self._canal = None

    def publier_commande_créée(self, id_commande: uuid.UUID) -> None:
        corps = contrat.encoder_commande_créée(id_commande)
        with self._verrou:
            try:
                canal = self._canal_ouvert()
                canal.basic_publish(
                    exchange=self.exchange,
                    routing_key="",
                    body=corps,
                    properties=pika.BasicProperties(
                        content_type="text/plain",
                        delivery_mode=2,
                        message_id=str(id_commande),
                    ),
                    mandatory=True,
                )
            except (pika.exceptions.UnroutableError, pika.exceptions.NackError) as e:
                # Le canal reste utilisable pour les envois suivants.
                raise erreurs.ÉchecPublication(
                    f"Commande {id_commande} refusée par le broker : {e!r}"
                ) from e
            except pika.exceptions.AMQPError as e:
                self._fermer()
                raise erreurs.ÉchecPublication(
                    f"Publication impossible pour la commande {id_commande} : {e!r}"
                ) from e
        logger.info("Commande créée publiée : %s", id_commande)

    def fermer(self) -> None:
        with self._verrou:
            self._fermer()

    def _canal_ouvert(self):
        if self._canal is None or self._canal.is_closed:
            if self._connexion is None or self._connexion.is_closed:
                self._connexion = pika.BlockingConnection(self.paramètres)
            canal = self._connexion.channel()
            canal.confirm_delivery()
            déclarer_topologie(canal, self.exchange)
            self._canal = canal
        return self._canal

    def _fermer(self) -> None:
        if self._connexion is not None and self._connexion.is_open:
            try:
                self._connexion.close()
            except pika.exceptions.AMQPError:
                logger.debug("Connexion RabbitMQ déjà rompue")
        self._connexion = None
        self._canal = None
