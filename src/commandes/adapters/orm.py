"""
Mapping ORM avec SQLAlchemy (classical mapping).

On définit les tables séparément, puis on mappe les classes
du domaine sur ces tables. Cela permet au modèle de domaine
de rester ignorant de la persistance (persistence ignorance).

Les noms de colonnes SQL restent en ASCII pour la compatibilité,
le mapping traduit vers les attributs français du domaine.

Chaque service n'utilise que ses propres tables, dans sa propre base.
"""

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Uuid,
    event,
)
from sqlalchemy.orm import registry

from commandes.domain import model
from commandes.domain.contrat import StatutCommande

metadata = MetaData()
mapper_registry = registry(metadata=metadata)


def _valeurs(enum_cls):
    # Stocke la valeur exposée ("Pending") plutôt que le nom du membre.
    return [membre.value for membre in enum_cls]


# --- Définition des tables ---

commandes = Table(
    "commandes",
    metadata,
    Column("id", Uuid, primary_key=True),
    Column("produit", String(255), nullable=False),
    Column("quantite", Integer, nullable=False),
    Column("cree_le", DateTime(timezone=True), nullable=False),
    Column("mis_a_jour_le", DateTime(timezone=True), nullable=True),
    Column(
        "statut",
        Enum(StatutCommande, native_enum=False, length=20, values_callable=_valeurs),
        nullable=False,
        index=True,
    ),
    Column("numero_version", Integer, nullable=False, server_default="0"),
)

articles_stock = Table(
    "articles_stock",
    metadata,
    Column("id", Uuid, primary_key=True),
    Column("produit", String(255), nullable=False, unique=True),
    Column("quantite", Integer, nullable=False),
    Column("cree_le", DateTime(timezone=True), nullable=False),
    Column("mis_a_jour_le", DateTime(timezone=True), nullable=True),
)

paiements = Table(
    "paiements",
    metadata,
    Column("id", Uuid, primary_key=True),
    Column("id_commande", Uuid, nullable=False),
    Column("montant", Numeric(12, 2), nullable=False),
    Column("horodatage", DateTime(timezone=True), nullable=False),
    Column(
        "statut",
        Enum(model.StatutPaiement, native_enum=False, length=20, values_callable=_valeurs),
        nullable=False,
    ),
)

# Read model : une ligne par transition effective de statut.
historique_statuts = Table(
    "historique_statuts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("id_commande", Uuid, nullable=False, index=True),
    Column("ancien_statut", String(20), nullable=False),
    Column("nouveau_statut", String(20), nullable=False),
    Column("horodatage", DateTime(timezone=True), nullable=False),
)

_mappers_démarrés = False


def start_mappers() -> None:
    """
    Configure le mapping entre les classes du domaine et les tables SQL.

    Utilise le classical mapping : les classes du domaine ne connaissent
    pas SQLAlchemy. C'est ici qu'on fait le pont entre les attributs
    français du domaine et les colonnes de la base de données.

    Peut être appelée plusieurs fois (chaque entrypoint l'appelle).
    """
    global _mappers_démarrés
    if _mappers_démarrés:
        return
    mapper_registry.map_imperatively(
        model.Commande,
        commandes,
        properties={
            "quantité": commandes.c.quantite,
            "créée_le": commandes.c.cree_le,
            "mise_à_jour_le": commandes.c.mis_a_jour_le,
            "numéro_version": commandes.c.numero_version,
        },
        # UPDATE ... WHERE numero_version = <lu> : deux transitions
        # concurrentes ne peuvent pas réussir toutes les deux.
        version_id_col=commandes.c.numero_version,
        version_id_generator=False,
    )
    mapper_registry.map_imperatively(
        model.ArticleStock,
        articles_stock,
        properties={
            "quantité": articles_stock.c.quantite,
            "créé_le": articles_stock.c.cree_le,
            "mis_à_jour_le": articles_stock.c.mis_a_jour_le,
        },
    )
    mapper_registry.map_imperatively(
        model.ConfirmationPaiement,
        paiements,
        properties={
            "id_paiement": paiements.c.id,
        },
    )
    _mappers_démarrés = True


def create_tables(engine) -> None:
    metadata.create_all(engine)


@event.listens_for(model.Commande, "load")
def receive_load(commande: model.Commande, _: object) -> None:
    """Initialise la liste d'événements quand une Commande est chargée depuis la BDD."""
    commande.événements = []
