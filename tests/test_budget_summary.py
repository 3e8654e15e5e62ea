from __future__ import annotations


def _category_id(client, name: str) -> int:
    cats = client.get("/api/categories").json()
    return next(c["id"] for c in cats if c["name"] == name)


def _expense(client, category_id: int, amount: float, occurred_at: str):
    res = client.post(
        "/api/transactions",
        json={
            "category_id": category_id,
            "description": "spend",
            "amount": amount,
            "type": "EXPENSE",
            "occurred_at": occurred_at,
        },
    )
    assert res.status_code == 201, res.text
    return res.json()


def test_budget_summary_basic(client):
    food = _category_id(client, "Food & Dining")
    shopping = _category_id(client, "Shopping")

    # the test clock is pinned to 2025-03-15
    for category_id, amount in ((food, 1000), (shopping, 200)):
        res = client.post(
            "/api/budgets",
            json={"category_id": category_id, "amount": amount, "month": 3, "year": 2025},
        )
        assert res.status_code == 201, res.text

    _expense(client, food, 120, "2025-03-02")
    _expense(client, food, 230, "2025-03-09")
    _expense(client, shopping, 210, "2025-03-10")
    # previous month does not count
    _expense(client, food, 999, "2025-02-27")

    summary = client.get("/api/budgets/summary").json()
    assert summary["period"] == "March 2025"
    assert summary["budget_count"] == 2
    assert summary["total_budget"] == 1200.0
    assert summary["total_spent"] == 560.0
    assert summary["total_remaining"] == 640.0
    assert summary["overall_percentage_used"] == 46.67
    assert summary["exceeded_count"] == 1
    assert summary["approaching_count"] == 0

    by_category = {b["category_name"]: b for b in summary["budgets"]}
    assert by_category["Food & Dining"]["spent"] == 350.0
    assert by_category["Food & Dining"]["remaining"] == 650.0
    assert by_category["Food & Dining"]["percentage_used"] == 35.0
    assert by_category["Food & Dining"]["status"] == "UNDER_BUDGET"
    assert by_category["Shopping"]["status"] == "EXCEEDED"
    assert by_category["Shopping"]["remaining"] == -10.0


def test_budget_status_thresholds(client):
    utilities = _category_id(client, "Utilities")
    budget = client.post(
        "/api/budgets",
        json={"category_id": utilities, "amount": 500, "month": 3, "year": 2025},
    ).json()

    _expense(client, utilities, 399.99, "2025-03-03")
    assert client.get(f"/api/budgets/{budget['id']}").json()["status"] == "UNDER_BUDGET"

    _expense(client, utilities, 0.01, "2025-03-04")
    got = client.get(f"/api/budgets/{budget['id']}").json()
    assert got["percentage_used"] == 80.0
    assert got["status"] == "APPROACHING"

    _expense(client, utilities, 100, "2025-03-05")
    assert client.get(f"/api/budgets/{budget['id']}").json()["status"] == "EXCEEDED"


def test_budget_rules(client):
    food = _category_id(client, "Food & Dining")
    payload = {"category_id": food, "amount": 300, "month": 4, "year": 2025}

    created = client.post("/api/budgets", json=payload)
    assert created.status_code == 201
    budget = created.json()
    assert budget["period"] == "April 2025"

    duplicate = client.post("/api/budgets", json=payload)
    assert duplicate.status_code == 409
    assert duplicate.json()["error"] == "conflict"

    past = client.post("/api/budgets", json={**payload, "month": 2})
    assert past.status_code == 400

    out_of_range = client.post("/api/budgets", json={**payload, "year": 2101})
    assert out_of_range.status_code == 422

    updated = client.patch(f"/api/budgets/{budget['id']}", json={"amount": 450})
    assert updated.status_code == 200
    assert updated.json()["amount"] == 450.0
    assert updated.json()["month"] == 4

    listed = client.get("/api/budgets", params={"month": 4, "year": 2025}).json()
    assert [b["id"] for b in listed] == [budget["id"]]

    assert client.delete(f"/api/budgets/{budget['id']}").status_code == 204
    assert client.get(f"/api/budgets/{budget['id']}").status_code == 404


def test_budgets_are_scoped_to_user(client, other_user):
    food = _category_id(client, "Food & Dining")
    budget = client.post(
        "/api/budgets",
        json={"category_id": food, "amount": 300, "month": 3, "year": 2025},
    ).json()

    res = client.get(f"/api/budgets/{budget['id']}", headers={"X-User-Id": str(other_user.id)})
    assert res.status_code == 404
    assert client.get("/api/budgets", headers={"X-User-Id": str(other_user.id)}).json() == []
