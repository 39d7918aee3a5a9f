from datetime import date

import pytest


@pytest.fixture
def january(create_tx):
    create_tx(type="income", category="Salary", amount=1000, date="2024-01-05", description="Pay")
    create_tx(category="Food", amount=50, date="2024-01-10")
    create_tx(category="Rent", amount=150, date="2024-01-15", description="Room")
    create_tx(category="Food", amount=30, date="2024-01-31")
    create_tx(category="Food", amount=99, date="2024-02-01")


def test_totals_for_inclusive_range(client, auth_headers, january):
    response = client.get(
        "/reports/totals",
        params={"start_date": "2024-01-01", "end_date": "2024-01-31"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["income"] == {"total": 1000.0, "count": 1}
    assert data["expense"] == {"total": 230.0, "count": 3}
    assert data["balance"] == 770.0


def test_totals_with_no_income(client, auth_headers, january):
    response = client.get(
        "/reports/totals",
        params={"start_date": "2024-02-01", "end_date": "2024-02-29"},
        headers=auth_headers,
    )
    data = response.json()
    assert data["income"] == {"total": 0.0, "count": 0}
    assert data["expense"] == {"total": 99.0, "count": 1}
    assert data["balance"] == -99.0


def test_totals_default_to_current_month(client, auth_headers, create_tx):
    create_tx(amount=20, date=date.today().isoformat())
    create_tx(amount=500, date="2001-06-01")

    data = client.get("/reports/totals", headers=auth_headers).json()
    assert data["start_date"] == date.today().replace(day=1).isoformat()
    assert data["expense"] == {"total": 20.0, "count": 1}


def test_totals_reject_inverted_range(client, auth_headers):
    response = client.get(
        "/reports/totals",
        params={"start_date": "2024-02-01", "end_date": "2024-01-01"},
        headers=auth_headers,
    )
    assert response.status_code == 400


def test_category_breakdown_sorted_by_total(client, auth_headers, january):
    response = client.get(
        "/reports/categories",
        params={"start_date": "2024-01-01", "end_date": "2024-01-31"},
        headers=auth_headers,
    )
    assert response.json() == [
        {"category": "Rent", "total": 150.0, "count": 1},
        {"category": "Food", "total": 80.0, "count": 2},
    ]


def test_category_breakdown_for_income(client, auth_headers, january):
    response = client.get(
        "/reports/categories",
        params={"ttype": "income", "start_date": "2024-01-01", "end_date": "2024-12-31"},
        headers=auth_headers,
    )
    assert response.json() == [{"category": "Salary", "total": 1000.0, "count": 1}]


def test_monthly_summary(client, auth_headers, january):
    response = client.get("/reports/summary", params={"period": "monthly"}, headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == [
        {"label": "2024-01", "income": 1000.0, "expense": 230.0, "balance": 770.0},
        {"label": "2024-02", "income": 0.0, "expense": 99.0, "balance": -99.0},
    ]


def test_yearly_summary_respects_range(client, auth_headers, january):
    response = client.get(
        "/reports/summary",
        params={"period": "yearly", "to_date": "2024-01-31"},
        headers=auth_headers,
    )
    assert response.json() == [
        {"label": "2024", "income": 1000.0, "expense": 230.0, "balance": 770.0},
    ]


def test_reports_only_include_own_transactions(client, other_auth_headers, january):
    response = client.get(
        "/reports/totals",
        params={"start_date": "2024-01-01", "end_date": "2024-12-31"},
        headers=other_auth_headers,
    )
    data = response.json()
    assert data["income"]["count"] == 0
    assert data["expense"]["count"] == 0
