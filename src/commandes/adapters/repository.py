"""
Pattern Repository.

Le repository fournit une abstraction sur la couche de persistance.
Il expose une interface de type collection (add, get) qui masque
les détails de l'accès aux données.

Les noms de méthodes du pattern (add, get) restent en anglais
car ce sont des conventions reconnues. Les méthodes spécifiques
au domaine (get_pour_mise_à_jour, décrémenter) sont en français.

Une commande se modifie après get_pour_mise_à_jour (SELECT ... FOR UPDATE
là où la base le permet) ; le numéro de version mappé garantit en plus
qu'une écriture concurrente échoue au commit. Le stock, lui, ne se lit
pas avant d'être modifié : décrémenter est un UPDATE conditionnel
unique, atomique sur toutes les bases.
"""

from __future__ import annotations

import abc
import uuid
from datetime import datetime

from sqlalchemy import insert, select, update
from sqlalchemy.orm import Session

from commandes.adapters import orm
from commandes.domain import model
from commandes.domain.contrat import StatutCommande


class AbstractCommandeRepository(abc.ABC):
    """
    Interface abstraite du repository de commandes.

    Le pattern Template Method est utilisé : les méthodes publiques
    (add, get) gèrent le tracking via `seen`, puis délèguent
    aux méthodes abstraites préfixées _ que les sous-classes implémentent.
    """

    seen: set[model.Commande]

    def __init__(self) -> None:
        # `seen` trace toutes les commandes consultées pendant la transaction,
        # ce qui permet au Unit of Work de collecter leurs événements.
        self.seen: set[model.Commande] = set()

    def add(self, commande: model.Commande) -> None:
        self._add(commande)
        self.seen.add(commande)

    def get(self, id_commande: uuid.UUID) -> model.Commande | None:
        commande = self._get(id_commande, verrouiller=False)
        if commande:
            self.seen.add(commande)
        return commande

    def get_pour_mise_à_jour(self, id_commande: uuid.UUID) -> model.Commande | None:
        """Récupère une commande en verrouillant sa ligne jusqu'au commit."""
        commande = self._get(id_commande, verrouiller=True)
        if commande:
            self.seen.add(commande)
        return commande

    @abc.abstractmethod
    def _add(self, commande: model.Commande) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def _get(self, id_commande: uuid.UUID, verrouiller: bool) -> model.Commande | None:
        raise NotImplementedError


class AbstractStockRepository(abc.ABC):
    """Repository des articles en stock, indexés par nom de produit."""

    @abc.abstractmethod
    def add(self, article: model.ArticleStock) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def get(self, produit: str) -> model.ArticleStock | None:
        raise NotImplementedError

    @abc.abstractmethod
    def décrémenter(self, produit: str, quantité: int) -> bool:
        """
        Retire `quantité` du stock si elle est disponible, en une seule
        écriture. Retourne False si le produit est absent ou insuffisant.
        """
        raise NotImplementedError

    @abc.abstractmethod
    def incrémenter(self, produit: str, quantité: int) -> bool:
        """Remet `quantité` en stock. Retourne False si le produit est absent."""
        raise NotImplementedError


class AbstractPaiementRepository(abc.ABC):
    @abc.abstractmethod
    def add(self, confirmation: model.ConfirmationPaiement) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def get(self, id_paiement: uuid.UUID) -> model.ConfirmationPaiement | None:
        raise NotImplementedError


class AbstractHistoriqueRepository(abc.ABC):
    """Écriture du read model des transitions de statut."""

    @abc.abstractmethod
    def ajouter(
        self,
        id_commande: uuid.UUID,
        ancien_statut: StatutCommande,
        nouveau_statut: StatutCommande,
        horodatage: datetime,
    ) -> None:
        raise NotImplementedError


# --- Implémentations SQLAlchemy ---


class SqlAlchemyCommandeRepository(AbstractCommandeRepository):
    def __init__(self, session: Session):
        super().__init__()
        self.session = session

    def _add(self, commande: model.Commande) -> None:
        self.session.add(commande)

    def _get(self, id_commande: uuid.UUID, verrouiller: bool) -> model.Commande | None:
        requête = select(model.Commande).filter_by(id=id_commande)
        if verrouiller:
            requête = requête.with_for_update()
        return self.session.scalars(requête).first()


class SqlAlchemyStockRepository(AbstractStockRepository):
    def __init__(self, session: Session):
        self.session = session

    def add(self, article: model.ArticleStock) -> None:
        self.session.add(article)

    def get(self, produit: str) -> model.ArticleStock | None:
        return self.session.scalars(
            select(model.ArticleStock).filter_by(produit=produit)
        ).first()

    def décrémenter(self, produit: str, quantité: int) -> bool:
        s = orm.articles_stock.c
        résultat = self.session.execute(
            update(orm.articles_stock)
            .where(s.produit == produit, s.quantite >= quantité)
            .values(quantite=s.quantite - quantité, mis_a_jour_le=model.maintenant())
        )
        return résultat.rowcount == 1

    def incrémenter(self, produit: str, quantité: int) -> bool:
        s = orm.articles_stock.c
        résultat = self.session.execute(
            update(orm.articles_stock)
            .where(s.produit == produit)
            .values(quantite=s.quantite + quantité, mis_a_jour_le=model.maintenant())
        )
        return résultat.rowcount == 1


class SqlAlchemyPaiementRepository(AbstractPaiementRepository):
    def __init__(self, session: Session):
        self.session = session

    def add(self, confirmation: model.ConfirmationPaiement) -> None:
        self.session.add(confirmation)

    def get(self, id_paiement: uuid.UUID) -> model.ConfirmationPaiement | None:
        return self.session.get(model.ConfirmationPaiement, id_paiement)


class SqlAlchemyHistoriqueRepository(AbstractHistoriqueRepository):
    def __init__(self, session: Session):
        self.session = session

    def ajouter(self, id_commande, ancien_statut, nouveau_statut, horodatage) -> None:
        self.session.execute(
            insert(orm.historique_statuts).values(
                id_commande=id_commande,
                ancien_statut=ancien_statut.value,
                nouveau_statut=nouveau_statut.value,
                horodatage=horodatage,
            )
        )
