import uuid

from app.models.specification import SpecificationRecord
from app.repositories.specification_repo import SpecificationRepository

from conftest import auth_header

API = "/api/v1/specifications"

PAYLOAD = {
    "product_id": 7654321098765,
    "product_title": "General White Portion",
    "ease_of_use": "Beginner",
    "nicotine_content": "Low",
}


def create_spec(client, identity, **overrides):
    response = client.post(API, json={**PAYLOAD, **overrides}, headers=auth_header(identity))
    assert response.status_code == 201
    return response.json()


def test_save_requires_authentication(client):
    response = client.post(API, json=PAYLOAD)
    assert response.status_code == 401
    assert response.json()["success"] is False


def test_save_stamps_owner_from_token(client, make_user):
    owner = make_user("owner@b.com")

    spec = create_spec(client, owner)

    assert spec["user_id"] == str(owner.id)
    assert spec["product_id"] == PAYLOAD["product_id"]


def test_save_rejects_client_supplied_owner(client, make_user):
    owner = make_user("owner@b.com")
    response = client.post(
        API,
        json={**PAYLOAD, "user_id": str(uuid.uuid4())},
        headers=auth_header(owner),
    )
    assert response.status_code == 422


def test_save_rejects_unknown_enum_value(client, make_user):
    owner = make_user("owner@b.com")
    response = client.post(
        API, json={**PAYLOAD, "nicotine_content": "Extreme"}, headers=auth_header(owner)
    )
    assert response.status_code == 422


def test_anonymous_tier_identity_can_save(client, make_user):
    anon = make_user("anon@b.com", role=None)
    assert create_spec(client, anon)["user_id"] == str(anon.id)


def test_owner_can_update(client, make_user):
    owner = make_user("owner@b.com")
    spec = create_spec(client, owner)

    response = client.patch(
        f"{API}/{spec['id']}",
        json={"nicotine_content": "High"},
        headers=auth_header(owner),
    )

    assert response.status_code == 200
    assert response.json()["nicotine_content"] == "High"
    assert response.json()["ease_of_use"] == "Beginner"


def test_other_user_cannot_update_or_delete(client, make_user):
    owner = make_user("owner@b.com")
    intruder = make_user("intruder@b.com")
    spec = create_spec(client, owner)

    updated = client.patch(
        f"{API}/{spec['id']}",
        json={"nicotine_content": "High"},
        headers=auth_header(intruder),
    )
    deleted = client.delete(f"{API}/{spec['id']}", headers=auth_header(intruder))

    assert updated.status_code == 403
    assert updated.json()["error"].startswith("Specification not found or you do not have permission")
    assert deleted.status_code == 403

    mine = client.get(f"{API}/me", headers=auth_header(owner)).json()
    assert [s["nicotine_content"] for s in mine] == ["Low"]


def test_owner_can_delete(client, make_user):
    owner = make_user("owner@b.com")
    spec = create_spec(client, owner)

    response = client.delete(f"{API}/{spec['id']}", headers=auth_header(owner))

    assert response.json() == {"success": True}
    assert client.get(f"{API}/me", headers=auth_header(owner)).json() == []


def test_update_missing_record_is_404(client, make_user):
    owner = make_user("owner@b.com")
    response = client.patch(
        f"{API}/{uuid.uuid4()}", json={"ease_of_use": "Experienced"}, headers=auth_header(owner)
    )
    assert response.status_code == 404


def test_list_by_product_and_by_user(client, make_user):
    alice = make_user("alice@b.com")
    bob = make_user("bob@b.com")
    create_spec(client, alice)
    create_spec(client, bob)
    create_spec(client, bob, product_id=111, product_title="Other")

    by_product = client.get(
        f"{API}/product/{PAYLOAD['product_id']}", headers=auth_header(alice)
    ).json()
    bobs = client.get(f"{API}/me", headers=auth_header(bob)).json()
    everything = client.get(API, headers=auth_header(alice)).json()

    assert {s["user_id"] for s in by_product} == {str(alice.id), str(bob.id)}
    assert {s["product_id"] for s in bobs} == {PAYLOAD["product_id"], 111}
    assert len(everything) == 3


def test_repository_filters_mutations_by_owner(session):
    """Even without the service's pre-check, a foreign user_id matches no rows."""
    repo = SpecificationRepository()
    owner_id = uuid.uuid4()
    record = repo.create(
        session,
        SpecificationRecord(
            product_id=1,
            product_title="Siberia",
            ease_of_use="Experienced",
            nicotine_content="High",
            user_id=owner_id,
        ),
    )

    assert repo.update_owned(session, record.id, uuid.uuid4(), {"nicotine_content": "None"}) is None
    assert repo.delete_owned(session, record.id, uuid.uuid4()) == 0

    session.expire_all()
    assert repo.get_by_id(session, record.id).nicotine_content == "High"

    updated = repo.update_owned(session, record.id, owner_id, {"nicotine_content": "Medium"})
    assert updated.nicotine_content == "Medium"
    assert repo.delete_owned(session, record.id, owner_id) == 1
