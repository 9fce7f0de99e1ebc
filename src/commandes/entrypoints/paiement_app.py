"""
Point d'entrée Flask du service de paiement.

Le règlement est simulé : tout montant positif est accepté et
une confirmation est conservée pour un éventuel remboursement.
"""

from __future__ import annotations

import uuid
from decimal import Decimal, InvalidOperation

import click
from flask import Flask, jsonify

from commandes import config
from commandes.adapters import orm
from commandes.domain import commands, erreurs, model
from commandes.entrypoints.http_commun import (
    champ,
    installer_gestionnaires,
    lire_json,
    réponse_erreur,
)
from commandes.service_layer import bootstrap, unit_of_work
from commandes.views import views


app = Flask(__name__)
installer_gestionnaires(app)
bus = bootstrap.bootstrap()


def confirmation_json(confirmation: model.ConfirmationPaiement) -> dict:
    return {
        "paymentId": str(confirmation.id_paiement),
        "orderId": str(confirmation.id_commande),
        "amount": float(confirmation.montant),
        "timestamp": views.valeur_json(confirmation.horodatage),
        "status": confirmation.statut.value,
    }


def _montant(valeur) -> Decimal:
    if isinstance(valeur, bool):
        raise erreurs.ErreurValidation(f"Montant illisible : {valeur!r}")
    try:
        montant = Decimal(str(valeur))
    except InvalidOperation as e:
        raise erreurs.ErreurValidation(f"Montant illisible : {valeur!r}") from e
    if not montant.is_finite():
        raise erreurs.ErreurValidation(f"Montant illisible : {valeur!r}")
    return montant


def _uuid(valeur) -> uuid.UUID:
    try:
        return uuid.UUID(str(valeur))
    except ValueError as e:
        raise erreurs.ErreurValidation(f"Identifiant de commande invalide : {valeur!r}") from e


@app.route("/payments", methods=["POST"])
def payment_endpoint():
    """
    POST /payments
    Body JSON : { orderId, amount }

    200 avec la confirmation, 400 si le montant est invalide.
    """
    try:
        data = lire_json()
        cmd = commands.AutoriserPaiement(
            id_commande=_uuid(champ(data, "orderId")),
            montant=_montant(champ(data, "amount")),
        )
        confirmation = bus.handle(cmd).pop(0)
    except erreurs.ErreurValidation as e:
        return réponse_erreur(e, 400)
    except erreurs.MontantInvalide as e:
        return réponse_erreur(e, 400)

    return jsonify(confirmation_json(confirmation)), 200


@app.route("/payments/<uuid:id_paiement>/refund", methods=["POST"])
def refund_endpoint(id_paiement: uuid.UUID):
    """Remboursement (compensation de la saga). Idempotent."""
    try:
        confirmation = bus.handle(commands.RembourserPaiement(id_paiement=id_paiement)).pop(0)
    except erreurs.PaiementIntrouvable as e:
        return réponse_erreur(e, 404)

    return jsonify(confirmation_json(confirmation)), 200


@app.cli.command("init-db")
def init_db_command():
    orm.create_tables(unit_of_work.DEFAULT_ENGINE)
    click.echo("Tables créées.")


if __name__ == "__main__":
    config.configurer_logging()
    orm.create_tables(unit_of_work.DEFAULT_ENGINE)
    app.run(host="0.0.0.0", port=5002)
