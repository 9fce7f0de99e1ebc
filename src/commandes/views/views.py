"""
Views (lecture) pour le pattern CQRS.

Les views sont des fonctions de lecture pure qui interrogent
directement la base de données, sans passer par le modèle de domaine.

Elles renvoient des dictionnaires déjà au format de l'API
(clés camelCase, dates ISO 8601, identifiants en texte).
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, select

from commandes.adapters import orm
from commandes.domain.contrat import StatutCommande
from commandes.service_layer import unit_of_work

TAILLE_PAGE_PAR_DÉFAUT = 10

_c = orm.commandes.c
COLONNES_COMMANDE = (
    _c.id.label("id"),
    _c.produit.label("product"),
    _c.quantite.label("quantity"),
    _c.cree_le.label("createdAt"),
    _c.mis_a_jour_le.label("updatedAt"),
    _c.statut.label("status"),
)


def valeur_json(valeur):
    if isinstance(valeur, datetime):
        # SQLite perd le fuseau : les dates sont toujours écrites en UTC.
        if valeur.tzinfo is None:
            valeur = valeur.replace(tzinfo=timezone.utc)
        return valeur.isoformat()
    if isinstance(valeur, uuid.UUID):
        return str(valeur)
    if isinstance(valeur, enum.Enum):
        return valeur.value
    return valeur


def _ligne(row) -> dict:
    return {clé: valeur_json(v) for clé, v in row._mapping.items()}


def commande(id_commande: uuid.UUID, uow: unit_of_work.AbstractUnitOfWork) -> Optional[dict]:
    with uow:
        row = uow.session.execute(
            select(*COLONNES_COMMANDE).where(_c.id == id_commande)
        ).first()
        return _ligne(row) if row else None


def normaliser_pagination(page: int, taille: int) -> tuple[int, int]:
    """Page < 1 devient 1 ; taille < 1 devient la taille par défaut."""
    return max(page, 1), taille if taille >= 1 else TAILLE_PAGE_PAR_DÉFAUT


def commandes(
    uow: unit_of_work.AbstractUnitOfWork,
    page: int = 1,
    taille: int = TAILLE_PAGE_PAR_DÉFAUT,
    statut: Optional[StatutCommande] = None,
) -> dict:
    """
    Page de commandes, éventuellement filtrées par statut.

    Tri stable (date de création puis identifiant) pour que les
    pages successives ne se recouvrent pas.
    """
    page, taille = normaliser_pagination(page, taille)
    requête_total = select(func.count()).select_from(orm.commandes)
    requête = select(*COLONNES_COMMANDE)
    if statut is not None:
        requête_total = requête_total.where(_c.statut == statut)
        requête = requête.where(_c.statut == statut)
    with uow:
        total = uow.session.execute(requête_total).scalar_one()
        rows = uow.session.execute(
            requête.order_by(_c.cree_le, _c.id).limit(taille).offset((page - 1) * taille)
        )
        données = [_ligne(r) for r in rows]
    return {"page": page, "pageSize": taille, "total": total, "data": données}


def historique(id_commande: uuid.UUID, uow: unit_of_work.AbstractUnitOfWork) -> list[dict]:
    """Transitions de statut d'une commande, de la plus ancienne à la plus récente."""
    h = orm.historique_statuts.c
    with uow:
        rows = uow.session.execute(
            select(
                h.ancien_statut.label("fromStatus"),
                h.nouveau_statut.label("toStatus"),
                h.horodatage.label("changedAt"),
            )
            .where(h.id_commande == id_commande)
            .order_by(h.id)
        )
        return [_ligne(r) for r in rows]


_s = orm.articles_stock.c
COLONNES_STOCK = (
    _s.id.label("id"),
    _s.produit.label("product"),
    _s.quantite.label("quantity"),
    _s.cree_le.label("createdAt"),
    _s.mis_a_jour_le.label("updatedAt"),
)


def articles_stock(uow: unit_of_work.AbstractUnitOfWork) -> list[dict]:
    with uow:
        rows = uow.session.execute(select(*COLONNES_STOCK).order_by(_s.produit))
        return [_ligne(r) for r in rows]


def article_stock(produit: str, uow: unit_of_work.AbstractUnitOfWork) -> Optional[dict]:
    with uow:
        row = uow.session.execute(
            select(*COLONNES_STOCK).where(_s.produit == produit)
        ).first()
        return _ligne(row) if row else None
