"""
Worker de traitement des commandes.

S'abonne à l'exchange fanout des commandes créées via sa propre file
(`fulfillment-queue`) et fait passer chaque commande à `Completed` en
rappelant l'orchestrateur.

Livraison au moins une fois : un message n'est acquitté qu'après la
réponse de l'orchestrateur. Sans réponse (timeout, connexion, 5xx),
le message est remis en file et sera redélivré, sans limite de
tentatives. La mise à jour de statut étant idempotente, une
redélivrance ne produit aucun effet supplémentaire.
"""

from __future__ import annotations

import enum
import logging
import time
from typing import Callable

import pika
import pika.exceptions

from commandes import config
from commandes.adapters.clients import AbstractServiceCommandes, HttpServiceCommandes
from commandes.adapters.publication import déclarer_topologie, paramètres_connexion
from commandes.domain import contrat, erreurs
from commandes.domain.contrat import StatutCommande

logger = logging.getLogger(__name__)


class Décision(enum.Enum):
    ACQUITTER = "ack"
    REMETTRE = "requeue"


def traiter_message(corps: bytes, service_commandes: AbstractServiceCommandes) -> Décision:
    """
    Traite un message « commande créée » et décide de son sort.

    - message illisible : acquitté sans action (jamais traitable) ;
    - commande introuvable ou transition refusée : loggé, acquitté ;
    - orchestrateur injoignable : remis en file.
    """
    try:
        id_commande = contrat.décoder_commande_créée(corps)
    except erreurs.MessageInvalide as e:
        logger.warning("Message ignoré : %s", e)
        return Décision.ACQUITTER

    logger.info("Commande reçue pour traitement : %s", id_commande)
    try:
        service_commandes.modifier_statut(id_commande, StatutCommande.TERMINÉE)
    except erreurs.DépendanceIndisponible as e:
        logger.warning("Orchestrateur indisponible pour %s, remise en file : %s", id_commande, e)
        return Décision.REMETTRE
    except erreurs.CommandeIntrouvable:
        logger.warning("Commande %s introuvable, message abandonné", id_commande)
        return Décision.ACQUITTER
    except erreurs.ErreurCommandes as e:
        logger.warning("Commande %s non terminée (%s) : %s", id_commande, e.raison, e)
        return Décision.ACQUITTER

    logger.info("Commande %s terminée", id_commande)
    return Décision.ACQUITTER


class ConsommateurTraitement:
    """Callback pika : applique la décision de traiter_message au canal."""

    def __init__(
        self,
        service_commandes: AbstractServiceCommandes,
        délai_remise: float = 1.0,
        dormir: Callable[[float], None] = time.sleep,
    ):
        self.service_commandes = service_commandes
        self.délai_remise = délai_remise
        self.dormir = dormir

    def on_message(self, canal, méthode, propriétés, corps: bytes) -> None:
        décision = traiter_message(corps, self.service_commandes)
        if décision is Décision.ACQUITTER:
            canal.basic_ack(delivery_tag=méthode.delivery_tag)
        else:
            # Courte pause pour ne pas boucler à vide sur un orchestrateur arrêté.
            self.dormir(self.délai_remise)
            canal.basic_nack(delivery_tag=méthode.delivery_tag, requeue=True)


def connecter(paramètres: pika.ConnectionParameters, tentatives: int = 15, pause: float = 2):
    for tentative in range(1, tentatives + 1):
        try:
            return pika.BlockingConnection(paramètres)
        except pika.exceptions.AMQPConnectionError:
            logger.info("RabbitMQ pas encore prêt, tentative %d/%d", tentative, tentatives)
            time.sleep(pause)
    raise RuntimeError("Connexion à RabbitMQ impossible")


def main() -> None:
    config.configurer_logging()
    service = HttpServiceCommandes(config.get_commandes_url(), config.get_délai_dépendances())
    consommateur = ConsommateurTraitement(service, config.get_délai_remise())

    connexion = connecter(paramètres_connexion(**config.get_rabbitmq_params()))
    canal = connexion.channel()
    déclarer_topologie(canal)
    canal.basic_qos(prefetch_count=1)
    canal.basic_consume(
        queue=contrat.FILE_TRAITEMENT,
        on_message_callback=consommateur.on_message,
        auto_ack=False,
    )
    logger.info("En attente de commandes sur %s", contrat.FILE_TRAITEMENT)
    try:
        canal.start_consuming()
    except KeyboardInterrupt:
        canal.stop_consuming()
    finally:
        if connexion.is_open:
            connexion.close()


if __name__ == "__main__":
    main()
