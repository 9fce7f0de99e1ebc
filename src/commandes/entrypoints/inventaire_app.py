"""
Point d'entrée Flask du registre de stock.

Expose la réservation (vérification + décrément atomique), la
libération (compensation) et la consultation du stock.
"""

from __future__ import annotations

import click
from flask import Flask, jsonify

from commandes import config
from commandes.adapters import orm
from commandes.domain import commands, erreurs
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

STOCK_INITIAL = {
    "Widget A": 10000,
    "Widget B": 5000,
    "Widget C": 2000,
}


def _mouvement(type_commande, statut: str):
    try:
        data = lire_json()
        cmd = type_commande(
            produit=champ_texte(data, "product"),
            quantité=champ(data, "quantity"),
        )
        bus.handle(cmd)
    except erreurs.ErreurValidation as e:
        return réponse_erreur(e, 400)
    except erreurs.ProduitInconnu as e:
        return réponse_erreur(e, 404)
    except erreurs.StockInsuffisant as e:
        return réponse_erreur(e, 400)

    return jsonify({"status": statut, "product": cmd.produit, "quantity": cmd.quantité}), 200


@app.route("/inventory/reserve", methods=["POST"])
def reserve_endpoint():
    """
    POST /inventory/reserve
    Body JSON : { product, quantity }

    200 si réservé, 404 si produit inconnu, 400 si stock insuffisant.
    """
    return _mouvement(commands.RéserverStock, "Reserved")


@app.route("/inventory/release", methods=["POST"])
def release_endpoint():
    """Remet en stock une quantité réservée (compensation de la saga)."""
    return _mouvement(commands.LibérerStock, "Released")


@app.route("/inventory", methods=["GET"])
def list_inventory_endpoint():
    return jsonify(views.articles_stock(bus.uow)), 200


@app.route("/inventory/<produit>", methods=["GET"])
def get_inventory_endpoint(produit: str):
    result = views.article_stock(produit, bus.uow)
    if result is None:
        return jsonify({"reason": erreurs.ProduitInconnu.raison,
                        "message": f"Produit '{produit}' non trouvé"}), 404
    return jsonify(result), 200


def initialiser_stock() -> int:
    """Crée les articles initiaux manquants. Retourne le nombre d'articles créés."""
    return sum(
        1
        for produit, quantité in STOCK_INITIAL.items()
        if bus.handle(commands.CréerArticleStock(produit=produit, quantité=quantité))[0]
    )


@app.cli.command("seed")
def seed_command():
    """Crée les tables et le stock initial (sans toucher aux articles existants)."""
    orm.create_tables(unit_of_work.DEFAULT_ENGINE)
    click.echo(f"{initialiser_stock()} article(s) créé(s).")


if __name__ == "__main__":
    config.configurer_logging()
    orm.create_tables(unit_of_work.DEFAULT_ENGINE)
    initialiser_stock()
    app.run(host="0.0.0.0", port=5001)
