from expense_api import models
from expense_api.seed import SYSTEM_CATEGORIES, seed_defaults


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_current_user_defaults_to_first_user(client, user):
    r = client.post("/api/categories", json={"name": "Mine"})
    assert r.status_code == 201, r.text
    assert r.json()["user_id"] == user.id


def test_unknown_user_header_is_not_found(client):
    r = client.get("/api/transactions", headers={"X-User-Id": "424242"})
    assert r.status_code == 404
    assert r.json() == {"detail": "User (424242) was not found", "error": "not_found"}


def test_seed_is_idempotent(db_session):
    seed_defaults(db_session)
    seed_defaults(db_session)
    db_session.commit()

    system = db_session.query(models.Category).filter(models.Category.is_system.is_(True)).count()
    assert system == len(SYSTEM_CATEGORIES)
    assert db_session.query(models.User).filter_by(email="demo@example.com").count() == 1
