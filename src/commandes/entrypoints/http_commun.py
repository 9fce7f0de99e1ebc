"""
Outils communs aux trois API Flask.

Toutes les erreurs sont renvoyées en JSON : { reason, message, ... },
où `reason` est la raison machine de la taxonomie d'erreurs.
"""

from __future__ import annotations

import logging

from flask import Flask, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from commandes.domain import erreurs

logger = logging.getLogger(__name__)


def réponse_erreur(e: erreurs.ErreurCommandes, code: int, **extra):
    return jsonify({"reason": e.raison, "message": str(e), **extra}), code


def lire_json() -> dict:
    """Corps JSON de la requête ; lève ErreurValidation s'il est absent ou illisible."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise erreurs.ErreurValidation("Corps JSON absent ou invalide")
    return data


def champ(data: dict, nom: str):
    if nom not in data or data[nom] is None:
        raise erreurs.ErreurValidation(f"Champ obligatoire manquant : {nom}")
    return data[nom]


def champ_texte(data: dict, nom: str) -> str:
    valeur = champ(data, nom)
    if not isinstance(valeur, str) or not valeur.strip():
        raise erreurs.ErreurValidation(f"Le champ {nom} doit être un texte non vide")
    return valeur


def installer_gestionnaires(app: Flask) -> None:
    """
    Filets de sécurité : une erreur non interceptée par un endpoint
    ne doit jamais renvoyer une trace brute au client.
    """

    @app.errorhandler(erreurs.ErreurValidation)
    def validation(e):
        return réponse_erreur(e, 400)

    @app.errorhandler(erreurs.Introuvable)
    def introuvable(e):
        return réponse_erreur(e, 404)

    @app.errorhandler(erreurs.DépendanceIndisponible)
    def indisponible(e):
        return réponse_erreur(e, 503)

    @app.errorhandler(erreurs.ErreurCommandes)
    def erreur_commandes(e):
        logger.error("Erreur non gérée : %r", e)
        return réponse_erreur(e, 500)

    @app.errorhandler(SQLAlchemyError)
    def erreur_base(e):
        logger.exception("Erreur de base de données")
        return jsonify({"reason": erreurs.ÉchecPersistance.raison, "message": "Erreur de base de données"}), 500

    @app.errorhandler(404)
    def non_trouvé(e):
        return jsonify({"reason": erreurs.Introuvable.raison, "message": "Ressource introuvable"}), 404
