import pytest
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from userstream.server import database, user_store
from userstream.server.database import init_db
from userstream.shared.models import UserCreate


def create(client, name, email):
    return client.post("/users", data={"action": "create", "name": name, "email": email})


def test_empty_users_page(client):
    response = client.get("/users")

    assert response.status_code == 200
    assert "<h1>Users</h1>" in response.text
    assert "No users found." in response.text


def test_create_user_redirects_back_to_list(client):
    response = create(client, "Alice", "alice@example.com")

    assert response.status_code == 200
    assert response.url.path == "/users"
    assert "Alice (alice@example.com)" in response.text
    assert "No users found." not in response.text


def test_create_sets_age_zero(client):
    create(client, "Alice", "alice@example.com")

    users = client.get("/api/users").json()
    assert users == [{"id": 1, "name": "Alice", "email": "alice@example.com", "age": 0}]


def test_users_are_listed_by_name(client):
    create(client, "Zed", "zed@example.com")
    create(client, "Amy", "amy@example.com")
    create(client, "Mia", "mia@example.com")

    names = [user["name"] for user in client.get("/api/users").json()]
    assert names == ["Amy", "Mia", "Zed"]

    page = client.get("/users").text
    assert page.index("Amy") < page.index("Mia") < page.index("Zed")


def test_delete_user(client):
    create(client, "Alice", "alice@example.com")
    user_id = client.get("/api/users").json()[0]["id"]

    response = client.post("/users", data={"action": "delete", "id": str(user_id)})

    assert response.status_code == 200
    assert "Alice (alice@example.com)" not in response.text
    assert client.get("/api/users").json() == []


def test_invalid_action_is_a_generic_failure(client):
    response = client.post("/users", data={"action": "promote"})

    assert response.status_code == 500
    assert response.json() == {"detail": "Failed to perform action: Invalid action"}


def test_duplicate_email_is_wrapped(client):
    create(client, "Alice", "alice@example.com")
    response = create(client, "Other Alice", "alice@example.com")

    assert response.status_code == 500
    assert response.json()["detail"].startswith("Failed to perform action:")
    assert len(client.get("/api/users").json()) == 1


def test_edit_page_shows_current_values(client):
    create(client, "Alice", "alice@example.com")

    response = client.get("/users/1")

    assert response.status_code == 200
    assert "Edit User" in response.text
    assert 'value="Alice"' in response.text
    assert 'value="alice@example.com"' in response.text


def test_update_user(client):
    create(client, "Alice", "alice@example.com")

    response = client.post("/users/1", data={"name": "Alicia", "email": "alicia@example.com"})

    assert response.status_code == 200
    assert response.url.path == "/users/1"
    assert client.get("/api/users/1").json() == {
        "id": 1,
        "name": "Alicia",
        "email": "alicia@example.com",
        "age": 0,
    }


def test_missing_user_is_404(client):
    assert client.get("/users/999").status_code == 404
    assert client.get("/api/users/999").status_code == 404
    response = client.post("/users/999", data={"name": "Ghost", "email": "ghost@example.com"})
    assert response.status_code == 404


def test_store_failure_is_wrapped_with_context(client, monkeypatch):
    def broken(session):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr(user_store, "list_users", broken)

    response = client.get("/users")

    assert response.status_code == 500
    assert response.json()["detail"].startswith("Failed to fetch users:")
    assert "database is locked" in response.json()["detail"]


def test_store_reraises_unchanged(memory_engine):
    init_db(memory_engine)
    with Session(memory_engine) as session:
        user_store.create_user(session, UserCreate(name="Alice", email="alice@example.com"))
        with pytest.raises(IntegrityError):
            user_store.create_user(session, UserCreate(name="Bob", email="alice@example.com"))


def test_session_factory_is_built_lazily_from_the_engine(memory_engine, monkeypatch):
    monkeypatch.setattr(database, "_session_factory", None)

    factory = database.get_session_factory()

    assert factory is database.get_session_factory()
    assert factory.kw["bind"] is memory_engine
