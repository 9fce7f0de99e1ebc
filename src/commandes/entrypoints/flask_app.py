"""
Point d'entrée Flask de l'orchestrateur de commandes.

L'API Flask est un thin adapter : elle se contente de
convertir les requêtes HTTP en commands, les envoie au
message bus, et convertit les résultats en réponses HTTP.

L'API ne contient aucune logique métier.
"""

from __future__ import annotations

import uuid

import click
from flask import Flask, jsonify, request

from commandes import config
from commandes.adapters import orm
from commandes.domain import commands, erreurs, model
from commandes.domain.contrat import StatutCommande
from commandes.entrypoints.http_commun import (
    champ,
    champ_texte,
    installer_gestionnaires,
    lire_json,
    réponse_erreur,
)
from commandes.service_layer import bootstrap, unit_of_work
from commandes.views import views


app = Flask(__name__)
installer_gestionnaires(app)
bus = bootstrap.bootstrap()


def commande_json(commande: model.Commande) -> dict:
    return {
        "id": str(commande.id),
        "product": commande.produit,
        "quantity": commande.quantité,
        "createdAt": views.valeur_json(commande.créée_le),
        "updatedAt": views.valeur_json(commande.mise_à_jour_le),
        "status": commande.statut.value,
    }


def _pagination() -> tuple[int, int]:
    return (
        request.args.get("page", 1, type=int),
        request.args.get("pageSize", views.TAILLE_PAGE_PAR_DÉFAUT, type=int),
    )


@app.route("/orders", methods=["POST"])
def create_order_endpoint():
    """
    POST /orders
    Body JSON : { product, quantity }

    Lance la saga de création. 201 avec la commande en attente,
    ou une erreur dont `reason` indique l'étape en échec.
    """
    try:
        data = lire_json()
        cmd = commands.CréerCommande(
            produit=champ_texte(data, "product"),
            quantité=champ(data, "quantity"),
        )
        commande = bus.handle(cmd).pop(0)
    except erreurs.ErreurValidation as e:
        return réponse_erreur(e, 400)
    except erreurs.ÉchecRéservation as e:
        return réponse_erreur(e, 503 if e.indisponible else 400, cause=e.cause.raison)
    except erreurs.ÉchecPaiement as e:
        return réponse_erreur(e, 503 if e.indisponible else 500, cause=e.cause.raison)
    except erreurs.ÉchecPersistance as e:
        return réponse_erreur(e, 500)
    except erreurs.ÉchecPublication as e:
        # La commande existe : on la renvoie pour que l'appelant puisse la suivre.
        commande = commande_json(e.commande) if e.commande is not None else None
        return réponse_erreur(e, 500, order=commande)

    return jsonify(commande_json(commande)), 201, {"Location": f"/orders/{commande.id}"}


@app.route("/orders", methods=["GET"])
def list_orders_endpoint():
    """GET /orders?page&pageSize"""
    page, taille = _pagination()
    return jsonify(views.commandes(bus.uow, page, taille)), 200


@app.route("/orders/status/<statut>", methods=["GET"])
def list_orders_by_status_endpoint(statut: str):
    """GET /orders/status/<statut>?page&pageSize"""
    try:
        filtre = StatutCommande.depuis_texte(statut)
    except erreurs.ErreurValidation as e:
        return réponse_erreur(e, 400)
    page, taille = _pagination()
    return jsonify(views.commandes(bus.uow, page, taille, statut=filtre)), 200


@app.route("/orders/<uuid:id_commande>", methods=["GET"])
def get_order_endpoint(id_commande: uuid.UUID):
    result = views.commande(id_commande, bus.uow)
    if result is None:
        return jsonify({"reason": erreurs.CommandeIntrouvable.raison,
                        "message": f"Commande inconnue : {id_commande}"}), 404
    return jsonify(result), 200


@app.route("/orders/<uuid:id_commande>/status", methods=["PUT"])
def update_order_status_endpoint(id_commande: uuid.UUID):
    """
    PUT /orders/<id>/status
    Body JSON : { status }

    Appelé par le worker de traitement. Idempotent : redemander
    le statut courant renvoie 200 sans rien modifier.
    """
    try:
        data = lire_json()
        statut = StatutCommande.depuis_texte(champ(data, "status"))
        commande = bus.handle(
            commands.ModifierStatutCommande(id_commande=id_commande, statut=statut)
        ).pop(0)
    except erreurs.ErreurValidation as e:
        return réponse_erreur(e, 400)
    except erreurs.CommandeIntrouvable as e:
        return réponse_erreur(e, 404)
    except erreurs.TransitionInterdite as e:
        return réponse_erreur(e, 409)

    return jsonify(commande_json(commande)), 200


@app.route("/orders/<uuid:id_commande>/cancel", methods=["POST"])
def cancel_order_endpoint(id_commande: uuid.UUID):
    try:
        commande = bus.handle(commands.AnnulerCommande(id_commande=id_commande)).pop(0)
    except erreurs.CommandeIntrouvable as e:
        return réponse_erreur(e, 404)
    except erreurs.TransitionInterdite as e:
        return réponse_erreur(e, 409)

    return jsonify(commande_json(commande)), 200


@app.route("/orders/<uuid:id_commande>/history", methods=["GET"])
def order_history_endpoint(id_commande: uuid.UUID):
    """Historique des transitions de statut (lecture CQRS)."""
    if views.commande(id_commande, bus.uow) is None:
        return jsonify({"reason": erreurs.CommandeIntrouvable.raison,
                        "message": f"Commande inconnue : {id_commande}"}), 404
    return jsonify(views.historique(id_commande, bus.uow)), 200


@app.cli.command("init-db")
def init_db_command():
    """Crée les tables dans la base configurée (DATABASE_URI)."""
    orm.create_tables(unit_of_work.DEFAULT_ENGINE)
    click.echo("Tables créées.")


if __name__ == "__main__":
    config.configurer_logging()
    orm.create_tables(unit_of_work.DEFAULT_ENGINE)
    app.run(host="0.0.0.0", port=5000)
