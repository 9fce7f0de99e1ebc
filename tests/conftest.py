"""
Configuration partagée pour les tests.

Le mapping ORM est démarré une seule fois pour toute la session de tests.
Les fakes (repositories, unit of work, services distants, canal
d'événements) sont exposés sous forme de fixtures : ils remplacent
la base et le réseau pour les tests du message bus.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from commandes.adapters import orm
from commandes.adapters.clients import AbstractInventaire, AbstractPaiement
from commandes.adapters.publication import AbstractPublication
from commandes.adapters.repository import (
    AbstractCommandeRepository,
    AbstractHistoriqueRepository,
    AbstractPaiementRepository,
    AbstractStockRepository,
)
from commandes.domain import erreurs, model
from commandes.service_layer import bootstrap, unit_of_work


@pytest.fixture(scope="session", autouse=True)
def mappers():
    """Démarre le mapping ORM une fois pour toute la session."""
    orm.start_mappers()


# --- Fakes de persistance ---


class FakeCommandeRepository(AbstractCommandeRepository):
    def __init__(self, commandes: list[model.Commande] | None = None):
        super().__init__()
        self._commandes = {c.id: c for c in commandes or []}

    def _add(self, commande: model.Commande) -> None:
        self._commandes[commande.id] = commande

    def _get(self, id_commande: uuid.UUID, verrouiller: bool) -> model.Commande | None:
        return self._commandes.get(id_commande)


class FakeStockRepository(AbstractStockRepository):
    def __init__(self) -> None:
        self._articles: dict[str, model.ArticleStock] = {}

    def add(self, article: model.ArticleStock) -> None:
        self._articles[article.produit] = article

    def get(self, produit: str) -> model.ArticleStock | None:
        return self._articles.get(produit)

    def décrémenter(self, produit: str, quantité: int) -> bool:
        article = self._articles.get(produit)
        if article is None or not article.peut_réserver(quantité):
            return False
        article.réserver(quantité)
        return True

    def incrémenter(self, produit: str, quantité: int) -> bool:
        article = self._articles.get(produit)
        if article is None:
            return False
        article.libérer(quantité)
        return True


class FakePaiementRepository(AbstractPaiementRepository):
    def __init__(self) -> None:
        self._confirmations: dict[uuid.UUID, model.ConfirmationPaiement] = {}

    def add(self, confirmation: model.ConfirmationPaiement) -> None:
        self._confirmations[confirmation.id_paiement] = confirmation

    def get(self, id_paiement: uuid.UUID) -> model.ConfirmationPaiement | None:
        return self._confirmations.get(id_paiement)


class FakeHistoriqueRepository(AbstractHistoriqueRepository):
    def __init__(self) -> None:
        self.lignes: list[tuple] = []

    def ajouter(self, id_commande, ancien_statut, nouveau_statut, horodatage) -> None:
        self.lignes.append((id_commande, ancien_statut, nouveau_statut))


class FakeUnitOfWork(unit_of_work.AbstractUnitOfWork):
    """
    Unit of Work en mémoire pour les tests.

    L'attribut `committed` permet de vérifier que le commit a bien
    été appelé ; `échec_commit` simule une base en panne.
    """

    def __init__(self) -> None:
        self.commandes = FakeCommandeRepository()
        self.stocks = FakeStockRepository()
        self.paiements = FakePaiementRepository()
        self.historique = FakeHistoriqueRepository()
        self.committed = False
        self.échec_commit = False

    def _commit(self) -> None:
        if self.échec_commit:
            raise erreurs.ÉchecPersistance("base indisponible")
        self.committed = True

    def rollback(self) -> None:
        pass


# --- Fakes des services distants ---


class FakeInventaire(AbstractInventaire):
    """
    Registre de stock en mémoire ; `indisponible` simule un timeout,
    `échec` est levée à la réservation si définie.
    """

    def __init__(self, stock: dict[str, int] | None = None):
        self.stock = dict(stock or {})
        self.indisponible = False
        self.échec: erreurs.ErreurCommandes | None = None
        self.appels: list[tuple[str, str, int]] = []

    def réserver(self, produit: str, quantité: int) -> None:
        self.appels.append(("réserver", produit, quantité))
        if self.indisponible:
            raise erreurs.DépendanceIndisponible("Inventaire : timeout")
        if self.échec is not None:
            raise self.échec
        if produit not in self.stock:
            raise erreurs.ProduitInconnu(f"Produit '{produit}' non disponible")
        if self.stock[produit] < quantité:
            raise erreurs.StockInsuffisant("Stock insuffisant")
        self.stock[produit] -= quantité

    def libérer(self, produit: str, quantité: int) -> None:
        self.appels.append(("libérer", produit, quantité))
        self.stock[produit] += quantité


class FakePaiement(AbstractPaiement):
    """Paiement en mémoire ; `échec` est levée à l'autorisation si définie."""

    def __init__(self) -> None:
        self.échec: erreurs.ErreurCommandes | None = None
        self.autorisés: list[model.ConfirmationPaiement] = []
        self.remboursés: list[uuid.UUID] = []

    def autoriser(self, id_commande: uuid.UUID, montant: Decimal) -> model.ConfirmationPaiement:
        if self.échec is not None:
            raise self.échec
        confirmation = model.ConfirmationPaiement.autoriser(id_commande, montant)
        self.autorisés.append(confirmation)
        return confirmation

    def rembourser(self, id_paiement: uuid.UUID) -> None:
        self.remboursés.append(id_paiement)


class FakePublication(AbstractPublication):
    """Capture les identifiants publiés ; `en_panne` simule un broker injoignable."""

    def __init__(self) -> None:
        self.publiés: list[uuid.UUID] = []
        self.en_panne = False

    def publier_commande_créée(self, id_commande: uuid.UUID) -> None:
        if self.en_panne:
            raise erreurs.ÉchecPublication("broker injoignable")
        self.publiés.append(id_commande)


# --- Fixtures ---


@pytest.fixture
def uow():
    return FakeUnitOfWork()


@pytest.fixture
def inventaire():
    return FakeInventaire({"Widget A": 10, "Widget B": 2})


@pytest.fixture
def paiement():
    return FakePaiement()


@pytest.fixture
def publication():
    return FakePublication()


@pytest.fixture
def bus(uow, inventaire, paiement, publication):
    """
    MessageBus configuré avec des fakes.

    Même wiring que la production, mais avec des implémentations
    en mémoire pour l'isolation et la rapidité.
    """
    return bootstrap.bootstrap(
        start_orm=False,
        uow=uow,
        inventaire=inventaire,
        paiement=paiement,
        publication_adapter=publication,
        prix_unitaire=Decimal("10"),
    )


@pytest.fixture
def sqlite_session_factory():
    """Fabrique de sessions sur une base SQLite en mémoire, tables créées."""
    engine = create_engine("sqlite:///:memory:")
    orm.create_tables(engine)
    yield sessionmaker(bind=engine, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def sqlite_uow(sqlite_session_factory):
    return unit_of_work.SqlAlchemyUnitOfWork(session_factory=sqlite_session_factory)


@pytest.fixture
def sqlite_fichier_session_factory(tmp_path):
    """
    Base SQLite sur disque : chaque session (et chaque thread) a sa
    propre connexion, comme deux requêtes concurrentes en production.
    """
    engine = create_engine(
        f"sqlite:///{tmp_path / 'commandes.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    orm.create_tables(engine)
    yield sessionmaker(bind=engine, expire_on_commit=False)
    engine.dispose()
