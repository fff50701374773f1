import pytest

from exceptions import ConflictError, NotFoundError
from services.favorites.schemas import FavoriteClientCreate, FavoriteClientUpdate, FavoriteStatus
from services.favorites.service import FavoriteClientService


@pytest.fixture
def favorites(mongo_db) -> FavoriteClientService:
    return FavoriteClientService(mongo_db)


def maria():
    return FavoriteClientCreate(
        cpf="529.982.247-25", name="Maria da Silva", benefit_number="9988776655"
    )


def test_add_favorite_stores_clean_cpf(favorites):
    client = favorites.create("operador-1", maria())

    assert client.id
    assert client.cpf == "52998224725"
    assert client.status == FavoriteStatus.CONTACTED
    assert [c.name for c in favorites.list_by_user("operador-1")] == ["Maria da Silva"]
    assert favorites.list_by_user("operador-2") == []


def test_same_client_once_per_operator(favorites):
    favorites.create("operador-1", maria())

    with pytest.raises(ConflictError):
        favorites.create("operador-1", maria())

    # outro operador pode ter o mesmo cliente
    assert favorites.create("operador-2", maria()).user_id == "operador-2"


def test_update_and_filter_by_status(favorites):
    client = favorites.create("operador-1", maria())

    updated = favorites.update(
        client.id,
        "operador-1",
        FavoriteClientUpdate(status=FavoriteStatus.NEGOTIATING, phone="(11) 98765-4321"),
    )

    assert updated.status == FavoriteStatus.NEGOTIATING
    assert updated.phone == "(11) 98765-4321"
    assert updated.name == "Maria da Silva"
    assert len(favorites.list_by_user("operador-1", status="negociacao")) == 1
    assert favorites.list_by_user("operador-1", status="finalizado") == []


def test_other_operator_cannot_change_or_remove(favorites):
    client = favorites.create("operador-1", maria())

    with pytest.raises(NotFoundError):
        favorites.update(client.id, "operador-2", FavoriteClientUpdate(notes="x"))
    with pytest.raises(NotFoundError):
        favorites.delete(client.id, "operador-2")

    favorites.delete(client.id, "operador-1")
    assert favorites.list_by_user("operador-1") == []
    with pytest.raises(NotFoundError):
        favorites.delete(client.id, "operador-1")
