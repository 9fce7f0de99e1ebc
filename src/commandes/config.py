"""
Configuration lue depuis l'environnement.

Chaque service tourne dans son propre processus avec ses propres
variables (notamment DATABASE_URI : une base par service).
"""

import logging
import os
from decimal import Decimal


def get_database_uri() -> str:
    return os.environ.get("DATABASE_URI", "sqlite:///commandes.db")


def get_inventaire_url() -> str:
    return os.environ.get("INVENTORY_URL", "http://localhost:5001").rstrip("/")


def get_paiement_url() -> str:
    return os.environ.get("PAYMENT_URL", "http://localhost:5002").rstrip("/")


def get_commandes_url() -> str:
    return os.environ.get("ORDER_URL", "http://localhost:5000").rstrip("/")


def get_rabbitmq_params() -> dict:
    return dict(
        host=os.environ.get("RABBITMQ_HOST", "localhost"),
        port=int(os.environ.get("RABBITMQ_PORT", "5672")),
        virtual_host=os.environ.get("RABBITMQ_VHOST", "/"),
        user=os.environ.get("RABBITMQ_USER", "guest"),
        password=os.environ.get("RABBITMQ_PASSWORD", "guest"),
    )


def get_délai_dépendances() -> float:
    """Timeout (secondes) des appels synchrones vers stock et paiement."""
    return float(os.environ.get("DEPENDENCY_TIMEOUT", "5"))


def get_prix_unitaire() -> Decimal:
    return Decimal(os.environ.get("UNIT_PRICE", "10"))


def get_délai_remise() -> float:
    """Pause (secondes) avant de remettre en file un message non traité."""
    return float(os.environ.get("REQUEUE_DELAY", "1"))


def get_niveau_log() -> str:
    return os.environ.get("LOG_LEVEL", "INFO").upper()


def configurer_logging() -> None:
    logging.basicConfig(
        level=get_niveau_log(),
        format="%(asctime)s %(levelname)s %(name)s | %(message)s",
    )
