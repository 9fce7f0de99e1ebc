"""
Pattern Unit of Work.

Le Unit of Work (UoW) gère la notion de transaction atomique.
Il coordonne l'écriture en base de données et la collecte
des événements émis par les agrégats au cours de la transaction.

Le UoW agit comme un context manager :
    with uow:
        # ... opérations sur les repositories ...
        uow.commit()
"""

from __future__ import annotations

import abc
import threading

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from commandes import config
from commandes.adapters import repository
from commandes.domain import erreurs

DEFAULT_ENGINE = create_engine(
    config.get_database_uri(),
    isolation_level="SERIALIZABLE",
)

DEFAULT_SESSION_FACTORY = sessionmaker(
    bind=DEFAULT_ENGINE,
    # Les handlers renvoient des entités lues après le commit.
    expire_on_commit=False,
)


class AbstractUnitOfWork(abc.ABC):
    """
    Interface abstraite du Unit of Work.

    Fournit un repository par entité et gère commit/rollback.
    Le rollback est automatique si commit() n'est pas appelé
    (grâce au __exit__ du context manager).
    """

    commandes: repository.AbstractCommandeRepository
    stocks: repository.AbstractStockRepository
    paiements: repository.AbstractPaiementRepository
    historique: repository.AbstractHistoriqueRepository

    def __enter__(self) -> AbstractUnitOfWork:
        return self

    def __exit__(self, *args: object) -> None:
        self.rollback()

    def commit(self) -> None:
        self._commit()

    def collect_new_events(self):
        """
        Collecte tous les événements émis par les commandes vues
        pendant cette transaction.
        """
        for commande in self.commandes.seen:
            while commande.événements:
                yield commande.événements.pop(0)

    @abc.abstractmethod
    def _commit(self) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def rollback(self) -> None:
        raise NotImplementedError


class SqlAlchemyUnitOfWork(AbstractUnitOfWork):
    """
    Implémentation concrète du UoW avec SQLAlchemy.

    Crée une session à l'entrée du context manager,
    la ferme à la sortie. Rollback automatique si pas de commit.

    La session et les repositories sont propres à chaque thread :
    une même instance sert toutes les requêtes concurrentes de Flask.
    """

    def __init__(self, session_factory: sessionmaker = DEFAULT_SESSION_FACTORY):
        self.session_factory = session_factory
        self._local = threading.local()

    def __enter__(self) -> SqlAlchemyUnitOfWork:
        session = self.session_factory()
        self._local.session = session
        self._local.commandes = repository.SqlAlchemyCommandeRepository(session)
        self._local.stocks = repository.SqlAlchemyStockRepository(session)
        self._local.paiements = repository.SqlAlchemyPaiementRepository(session)
        self._local.historique = repository.SqlAlchemyHistoriqueRepository(session)
        return super().__enter__()

    def __exit__(self, *args: object) -> None:
        super().__exit__(*args)
        self.session.close()

    @property
    def session(self) -> Session:
        return self._local.session

    @property
    def commandes(self) -> repository.SqlAlchemyCommandeRepository:
        return self._local.commandes

    @property
    def stocks(self) -> repository.SqlAlchemyStockRepository:
        return self._local.stocks

    @property
    def paiements(self) -> repository.SqlAlchemyPaiementRepository:
        return self._local.paiements

    @property
    def historique(self) -> repository.SqlAlchemyHistoriqueRepository:
        return self._local.historique

    def _commit(self) -> None:
        try:
            self.session.commit()
        except StaleDataError as e:
            raise erreurs.ConflitConcurrence(f"Écriture concurrente détectée : {e}") from e
        except SQLAlchemyError as e:
            raise erreurs.ÉchecPersistance(f"Échec de l'écriture en base : {e}") from e

    def rollback(self) -> None:
        self.session.rollback()
