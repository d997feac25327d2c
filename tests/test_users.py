import uuid

import pytest
from sqlalchemy.exc import SQLAlchemyError

from app.core.errors import AuthorizationDenied, UpstreamError
from app.models.user import UserProfile
from app.repositories.user_repo import UserProfileRepository
from app.schemas.user import FirstAdminCreate, UserCreate
from app.services.user_service import UserService

from conftest import auth_header

API = "/api/v1"


class FailingInsertRepository(UserProfileRepository):
    def create(self, session, profile):
        raise SQLAlchemyError("insert failed")


class StaleCountRepository(UserProfileRepository):
    """Sees an empty table, as a bootstrap request racing another one would."""

    def count(self, session):
        return 0


# ----- Admin gate -----


def test_non_admin_cannot_manage_users(client, make_user):
    user = make_user("u@example.com", role="user")

    listed = client.get(f"{API}/admin/users", headers=auth_header(user))
    created = client.post(
        f"{API}/admin/users",
        json={"email": "new@example.com", "full_name": "New"},
        headers=auth_header(user),
    )

    assert listed.status_code == 403
    assert created.status_code == 403
    assert created.json()["success"] is False


def test_guest_cannot_manage_users(client):
    assert client.get(f"{API}/admin/users").status_code == 401


# ----- Admin operations -----


def test_admin_creates_and_lists_users(client, gateway, make_user):
    admin = make_user("admin@example.com", role="admin", full_name="Admin")

    created = client.post(
        f"{API}/admin/users",
        json={"email": "new@example.com", "full_name": "  New Person ", "role": "user"},
        headers=auth_header(admin),
    )

    assert created.status_code == 201
    body = created.json()
    assert body["email"] == "new@example.com"
    assert body["full_name"] == "New Person"
    assert "new@example.com" in gateway.identities

    listed = client.get(f"{API}/admin/users", headers=auth_header(admin)).json()
    assert {u["email"] for u in listed} == {"admin@example.com", "new@example.com"}


def test_admin_changes_role(client, make_user):
    admin = make_user("admin@example.com", role="admin")
    user = make_user("u@example.com", role="user")

    response = client.patch(
        f"{API}/admin/users/{user.id}/role",
        json={"role": "admin"},
        headers=auth_header(admin),
    )

    assert response.status_code == 200
    assert response.json()["role"] == "admin"

    session = client.get(f"{API}/auth/session", headers=auth_header(user)).json()
    assert session["is_admin"] is True


def test_role_must_be_known(client, make_user):
    admin = make_user("admin@example.com", role="admin")
    user = make_user("u@example.com", role="user")
    response = client.patch(
        f"{API}/admin/users/{user.id}/role",
        json={"role": "superuser"},
        headers=auth_header(admin),
    )
    assert response.status_code == 422


def test_admin_deletes_user(client, gateway, make_user):
    admin = make_user("admin@example.com", role="admin")
    user = make_user("u@example.com", role="user")

    response = client.delete(f"{API}/admin/users/{user.id}", headers=auth_header(admin))

    assert response.json() == {"success": True}
    assert gateway.deleted == [user.id]
    assert client.get(f"{API}/users/me", headers=auth_header(user)).status_code == 404


def test_create_rejects_existing_user(client, make_user):
    admin = make_user("admin@example.com", role="admin")
    make_user("taken@example.com", role="user")

    response = client.post(
        f"{API}/admin/users",
        json={"email": "taken@example.com", "full_name": "Dup"},
        headers=auth_header(admin),
    )

    assert response.status_code == 403
    assert "already exists" in response.json()["error"]


def test_create_adopts_orphaned_identity(client, gateway, make_user):
    admin = make_user("admin@example.com", role="admin")
    orphan = make_user("orphan@example.com", role=None)

    response = client.post(
        f"{API}/admin/users",
        json={"email": "orphan@example.com", "full_name": "Orphan"},
        headers=auth_header(admin),
    )

    assert response.status_code == 201
    assert response.json()["id"] == str(orphan.id)


def test_profile_insert_failure_rolls_back_identity(session, gateway):
    service = UserService(FailingInsertRepository())

    with pytest.raises(UpstreamError):
        service.create_user(
            session,
            gateway,
            UserCreate(email="new@example.com", full_name="New"),
        )

    assert "new@example.com" not in gateway.identities
    assert len(gateway.deleted) == 1


def test_read_me(client, make_user):
    user = make_user("u@example.com", role="user", full_name="Una")
    body = client.get(f"{API}/users/me", headers=auth_header(user)).json()
    assert body["full_name"] == "Una"
    assert body["role"] == "user"


# ----- First admin bootstrap -----


def test_first_admin_when_no_profiles(client, gateway):
    assert client.get(f"{API}/setup/status").json()["needs_first_admin"] is True

    response = client.post(
        f"{API}/setup/first-admin",
        json={"email": "first@example.com", "full_name": "First Admin"},
    )

    assert response.status_code == 201
    assert response.json()["role"] == "admin"
    assert client.get(f"{API}/setup/status").json() == {
        "needs_first_admin": False,
        "profile_count": 1,
    }


def test_first_admin_refused_once_users_exist(client, make_user):
    make_user("someone@example.com", role="user")

    response = client.post(
        f"{API}/setup/first-admin",
        json={"email": "late@example.com", "full_name": "Too Late"},
    )

    assert response.status_code == 403
    assert response.json()["error"] == "Cannot create first admin: users already exist"



def test_first_admin_rechecks_count_when_inserting(session, gateway):
    session.add(UserProfile(id=uuid.uuid4(), full_name="Winner", role="admin"))
    session.commit()
    service = UserService(StaleCountRepository())

    with pytest.raises(AuthorizationDenied, match="users already exist"):
        service.create_first_admin(
            session,
            gateway,
            FirstAdminCreate(email="late@example.com", full_name="Too Late"),
        )

    assert "late@example.com" not in gateway.identities
    assert len(gateway.deleted) == 1
    assert service.repo.list(session)[0].full_name == "Winner"


# ----- Debug -----


def test_env_status_for_admin(client, make_user):
    admin = make_user("admin@example.com", role="admin")
    body = client.get(f"{API}/debug/env", headers=auth_header(admin)).json()
    assert body == {"valid": True, "missing": []}


def test_env_status_hidden_from_users(client, make_user):
    user = make_user("u@example.com", role="user")
    assert client.get(f"{API}/debug/env", headers=auth_header(user)).status_code == 403
