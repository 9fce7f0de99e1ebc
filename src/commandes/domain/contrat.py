"""
Contrat partagé entre les services.

Le statut d'une commande et le format du message « commande créée »
transitent entre l'orchestrateur et le worker de traitement.
Ils sont définis une seule fois ici pour éviter toute divergence
silencieuse entre les deux côtés.
"""

from __future__ import annotations

import enum
import uuid

from commandes.domain import erreurs

NOM_EXCHANGE = "orders-exchange"
FILE_TRAITEMENT = "fulfillment-queue"


class StatutCommande(str, enum.Enum):
    """Statuts possibles d'une commande (valeurs exposées sur le fil)."""

    EN_ATTENTE = "Pending"
    TERMINÉE = "Completed"
    ANNULÉE = "Cancelled"

    @property
    def est_terminal(self) -> bool:
        return self is not StatutCommande.EN_ATTENTE

    @classmethod
    def depuis_texte(cls, valeur: object) -> StatutCommande:
        """
        Convertit une valeur reçue de l'extérieur en statut.

        Accepte le nom (insensible à la casse) ou l'ordinal (0, 1, 2).
        Lève ErreurValidation sinon.
        """
        if isinstance(valeur, bool):
            raise erreurs.ErreurValidation(f"Statut invalide : {valeur!r}")
        if isinstance(valeur, int):
            membres = list(cls)
            if 0 <= valeur < len(membres):
                return membres[valeur]
        elif isinstance(valeur, str):
            if valeur.strip().isdigit():
                return cls.depuis_texte(int(valeur))
            for statut in cls:
                if statut.value.lower() == valeur.strip().lower():
                    return statut
        raise erreurs.ErreurValidation(f"Statut invalide : {valeur!r}")


# Transitions autorisées ; les états terminaux n'ont aucune sortie.
TRANSITIONS: dict[StatutCommande, frozenset[StatutCommande]] = {
    StatutCommande.EN_ATTENTE: frozenset(
        {StatutCommande.TERMINÉE, StatutCommande.ANNULÉE}
    ),
    StatutCommande.TERMINÉE: frozenset(),
    StatutCommande.ANNULÉE: frozenset(),
}


def encoder_commande_créée(id_commande: uuid.UUID) -> bytes:
    """Le message ne porte que l'identifiant de la commande, en texte UTF-8."""
    return str(id_commande).encode("utf-8")


def décoder_commande_créée(corps: bytes | str) -> uuid.UUID:
    """
    Extrait l'identifiant d'un message « commande créée ».

    Lève MessageInvalide si le corps n'est pas un UUID lisible :
    un tel message ne sera jamais traitable, inutile de le rejouer.
    """
    try:
        texte = corps.decode("utf-8") if isinstance(corps, bytes) else corps
        return uuid.UUID(texte.strip())
    except (UnicodeDecodeError, ValueError, AttributeError) as e:
        raise erreurs.MessageInvalide(f"Message illisible : {corps!r}") from e
