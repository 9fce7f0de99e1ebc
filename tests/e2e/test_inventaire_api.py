"""
Tests end-to-end de l'API du registre de stock.

HTTP request → Flask → Message Bus → Handlers → SQLite en mémoire.
"""

import pytest

from commandes.entrypoints import inventaire_app
from commandes.service_layer import bootstrap


@pytest.fixture
def client(sqlite_uow, inventaire, paiement, publication):
    """Client de test du registre, stock initial chargé."""
    original_bus = inventaire_app.bus
    inventaire_app.bus = bootstrap.bootstrap(
        start_orm=False,
        uow=sqlite_uow,
        inventaire=inventaire,
        paiement=paiement,
        publication_adapter=publication,
    )
    inventaire_app.initialiser_stock()
    inventaire_app.app.config["TESTING"] = True

    with inventaire_app.app.test_client() as client:
        yield client

    inventaire_app.bus = original_bus


def quantité(client, produit):
    return client.get(f"/inventory/{produit}").get_json()["quantity"]


class TestReserve:
    def test_réserver(self, client):
        response = client.post("/inventory/reserve", json={"product": "Widget A", "quantity": 3})

        assert response.status_code == 200
        assert response.get_json() == {"status": "Reserved", "product": "Widget A", "quantity": 3}
        assert quantité(client, "Widget A") == 9997

    def test_réserver_tout_le_stock(self, client):
        response = client.post("/inventory/reserve", json={"product": "Widget C", "quantity": 2000})

        assert response.status_code == 200
        assert quantité(client, "Widget C") == 0

    def test_stock_insuffisant(self, client):
        response = client.post("/inventory/reserve", json={"product": "Widget C", "quantity": 2001})

        assert response.status_code == 400
        assert response.get_json()["reason"] == "InsufficientStock"
        assert quantité(client, "Widget C") == 2000

    def test_produit_inconnu(self, client):
        response = client.post("/inventory/reserve", json={"product": "Gadget", "quantity": 1})

        assert response.status_code == 404
        assert response.get_json()["reason"] == "ProductNotFound"

    @pytest.mark.parametrize("corps", [{"product": "Widget A", "quantity": 0}, {"product": "Widget A"}, {}])
    def test_requête_invalide(self, client, corps):
        assert client.post("/inventory/reserve", json=corps).status_code == 400


class TestRelease:
    def test_libérer(self, client):
        client.post("/inventory/reserve", json={"product": "Widget B", "quantity": 10})

        response = client.post("/inventory/release", json={"product": "Widget B", "quantity": 10})

        assert response.status_code == 200
        assert response.get_json()["status"] == "Released"
        assert quantité(client, "Widget B") == 5000

    def test_libérer_un_produit_inconnu(self, client):
        assert client.post("/inventory/release", json={"product": "Gadget", "quantity": 1}).status_code == 404


class TestInventory:
    def test_stock_initial(self, client):
        articles = client.get("/inventory").get_json()

        assert {a["product"]: a["quantity"] for a in articles} == {
            "Widget A": 10000,
            "Widget B": 5000,
            "Widget C": 2000,
        }

    def test_l_initialisation_ne_touche_pas_au_stock_existant(self, client):
        client.post("/inventory/reserve", json={"product": "Widget A", "quantity": 1})

        assert inventaire_app.initialiser_stock() == 0
        assert quantité(client, "Widget A") == 9999

    def test_produit_inconnu(self, client):
        assert client.get("/inventory/Gadget").status_code == 404
