from __future__ import annotations

from datetime import datetime
from types import SimpleNamespace

from main import app
from app.routes_advisor import get_advisor_client

NOW = datetime.now().strftime("%Y-%m-%dT%H:%M")


def add_transaction(client, type_: str = "expense", category: str = "Housing", amount: str = "1200", notes: str = ""):
    return client.post(
        "/transactions/new",
        data={"type": type_, "category": category, "date": NOW, "amount": amount, "notes": notes},
        follow_redirects=False,
    )


# -------------------------------------------------------------------
# Auth
# -------------------------------------------------------------------

def test_health(client) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_pages_redirect_to_login_when_signed_out(client) -> None:
    for path in ("/", "/dashboard", "/transactions", "/profile"):
        resp = client.get(path, follow_redirects=False)
        assert resp.status_code in (302, 303)
    resp = client.get("/dashboard", follow_redirects=False)
    assert resp.headers["location"] == "/login"


def test_json_routes_require_auth(client) -> None:
    assert client.get("/api/transactions").status_code == 401
    assert client.get("/api/dashboard/health").status_code == 401


def test_register_signs_in(auth_client) -> None:
    resp = auth_client.get("/dashboard")
    assert resp.status_code == 200
    assert "Sam Tester" in resp.text
    assert "Account created." in resp.text


def test_register_validation_errors(client) -> None:
    resp = client.post(
        "/register",
        data={"display_name": "S", "email": "not-an-email", "password": "secret123", "confirm_password": "other123"},
    )
    assert resp.status_code == 400
    assert "Passwords don" in resp.text


def test_register_duplicate_email(auth_client) -> None:
    auth_client.post("/logout")
    resp = auth_client.post(
        "/register",
        data={"display_name": "Other", "email": "SAM@mailbox.org", "password": "secret123", "confirm_password": "secret123"},
    )
    assert resp.status_code == 400
    assert "already exists" in resp.text


def test_login_logout_cycle(auth_client) -> None:
    auth_client.post("/logout", follow_redirects=False)
    assert auth_client.get("/dashboard", follow_redirects=False).status_code == 303

    bad = auth_client.post("/login", data={"email": "sam@mailbox.org", "password": "wrong-pass"})
    assert bad.status_code == 401
    assert "Invalid email or password." in bad.text

    ok = auth_client.post("/login", data={"email": "sam@mailbox.org", "password": "secret123"}, follow_redirects=False)
    assert ok.status_code == 303
    assert ok.headers["location"] == "/dashboard"
    assert auth_client.get("/dashboard").status_code == 200


# -------------------------------------------------------------------
# Transactions
# -------------------------------------------------------------------

def test_add_transaction_and_list(auth_client) -> None:
    resp = add_transaction(auth_client, notes="October rent")
    assert resp.status_code == 303

    page = auth_client.get("/transactions")
    assert page.status_code == 200
    assert "October rent" in page.text
    assert "$1,200.00" in page.text


def test_add_transaction_validation(auth_client) -> None:
    resp = add_transaction(auth_client, amount="0")
    assert resp.status_code == 422
    assert "Amount must be positive." in resp.text

    resp = add_transaction(auth_client, category="")
    assert resp.status_code == 422
    assert "Category is required." in resp.text

    assert auth_client.get("/api/transactions").json() == {"transactions": []}


def test_edit_and_delete_transaction(auth_client) -> None:
    add_transaction(auth_client, category="Shopping", amount="40")
    tx_id = auth_client.get("/api/transactions").json()["transactions"][0]["id"]

    assert auth_client.get(f"/transactions/{tx_id}/edit").status_code == 200
    resp = auth_client.post(
        f"/transactions/{tx_id}/edit",
        data={"type": "expense", "category": "Education", "date": NOW, "amount": "55", "notes": ""},
        follow_redirects=False,
    )
    assert resp.status_code == 303
    updated = auth_client.get("/api/transactions").json()["transactions"][0]
    assert (updated["category"], updated["amount"]) == ("Education", 55.0)

    auth_client.post(f"/transactions/{tx_id}/delete")
    assert auth_client.get("/api/transactions").json()["transactions"] == []
    assert auth_client.get(f"/transactions/{tx_id}/edit").status_code == 404


def test_json_api_create(auth_client) -> None:
    resp = auth_client.post(
        "/api/transactions",
        json={"type": "income", "category": "Salary", "amount": 3000, "date": "2026-10-01T09:00:00Z"},
    )
    assert resp.status_code == 201
    listed = auth_client.get("/api/transactions").json()["transactions"]
    assert listed[0]["id"] == resp.json()["id"]
    assert listed[0]["date"] == "2026-10-01T09:00:00"

    bad = auth_client.post("/api/transactions", json={"type": "income", "category": "Salary", "amount": -3})
    assert bad.status_code == 422


def test_non_finite_amounts_are_rejected(auth_client) -> None:
    resp = add_transaction(auth_client, amount="inf")
    assert resp.status_code == 422
    assert "Amount must be a finite number." in resp.text

    for amount in ("inf", "-inf", "nan"):
        resp = auth_client.post("/api/transactions", json={"type": "expense", "category": "Housing", "amount": amount})
        assert resp.status_code == 422

    listed = auth_client.get("/api/transactions")
    assert listed.status_code == 200
    assert listed.json() == {"transactions": []}


def test_transactions_filters(auth_client) -> None:
    add_transaction(auth_client, category="Housing", amount="1200", notes="rent-oct")
    add_transaction(auth_client, type_="income", category="Salary", amount="3000", notes="payday-bonus")

    page = auth_client.get("/transactions", params={"type": "income"})
    assert "payday-bonus" in page.text
    assert "rent-oct" not in page.text

    page = auth_client.get("/transactions", params={"search": "RENT", "month": "all"})
    assert "rent-oct" in page.text
    assert "payday-bonus" not in page.text


# -------------------------------------------------------------------
# Dashboard and profile
# -------------------------------------------------------------------

def test_budgets_feed_budget_comparison(auth_client) -> None:
    add_transaction(auth_client, category="Housing", amount="1200")
    resp = auth_client.post("/profile/budgets", data={"budgets[Housing]": "1000", "budgets[Shopping]": ""}, follow_redirects=False)
    assert resp.status_code == 303

    comparison = auth_client.get("/api/dashboard/budget-comparison").json()
    row = comparison["rows"][0]
    assert row["category"] == "Housing"
    assert row["budget"] == 1000
    assert row["status"] == "over"

    health = auth_client.get("/api/dashboard/health").json()
    assert health["budgeted_categories"] == 1
    assert health["categories_within_budget"] == 0
    assert 0 <= health["overall_score"] <= 100
    assert len(health["radar"]) == 4


def test_negative_budget_is_rejected(auth_client) -> None:
    resp = auth_client.post("/profile/budgets", data={"budgets[Housing]": "-10"})
    assert resp.status_code == 400


def test_non_finite_budget_is_rejected(auth_client) -> None:
    resp = auth_client.post("/profile/budgets", data={"budgets[Housing]": "inf"})
    assert resp.status_code == 400
    assert "Budget for Housing must be a finite number." in resp.text

    add_transaction(auth_client, amount="100")
    assert auth_client.get("/api/dashboard/budget-comparison").status_code == 200
    assert auth_client.get("/api/dashboard/health").status_code == 200


def test_currency_preference(auth_client) -> None:
    assert auth_client.post("/profile/preferences", data={"currency": "XYZ"}).status_code == 400

    auth_client.post("/profile/preferences", data={"currency": "eur"})
    add_transaction(auth_client, amount="15")
    assert "€15.00" in auth_client.get("/transactions").text


def test_display_name_update(auth_client) -> None:
    auth_client.post("/profile/name", data={"display_name": "Samira"})
    assert "Samira" in auth_client.get("/profile").text


def test_avatar_upload(auth_client) -> None:
    resp = auth_client.post("/profile/avatar", files={"avatar": ("notes.txt", b"hello", "text/plain")})
    assert "must be an image" in resp.text

    too_big = b"\x89PNG" + b"0" * (101 * 1024)
    resp = auth_client.post("/profile/avatar", files={"avatar": ("big.png", too_big, "image/png")})
    assert "cannot exceed" in resp.text

    resp = auth_client.post("/profile/avatar", files={"avatar": ("me.png", b"\x89PNG\r\n", "image/png")})
    assert "data:image/png;base64," in resp.text


def test_dashboard_renders_with_data(auth_client) -> None:
    add_transaction(auth_client, type_="income", category="Salary", amount="3000")
    add_transaction(auth_client, category="Housing", amount="1200")
    resp = auth_client.get("/dashboard")
    assert resp.status_code == 200
    assert "Financial health" in resp.text
    assert "$3,000.00" in resp.text

    daily = auth_client.get("/api/dashboard/daily").json()["days"]
    assert sum(d["income"] for d in daily) == 3000


# -------------------------------------------------------------------
# Advisor
# -------------------------------------------------------------------

def test_advisor_without_data_does_not_call_model(auth_client) -> None:
    calls = []

    def create(**kwargs):
        calls.append(kwargs)
        return SimpleNamespace(output_text='{"suggestions": []}')

    app.dependency_overrides[get_advisor_client] = lambda: SimpleNamespace(responses=SimpleNamespace(create=create))

    resp = auth_client.post("/advisor", data={"financial_goals": ""})
    assert "Not Enough Data" in resp.text
    assert auth_client.post("/api/advisor", json={"financial_goals": ""}).status_code == 400
    assert calls == []


def test_advisor_shows_suggestions(auth_client) -> None:
    output = '{"suggestions": ["Set a grocery budget."]}'
    app.dependency_overrides[get_advisor_client] = lambda: SimpleNamespace(
        responses=SimpleNamespace(create=lambda **kwargs: SimpleNamespace(output_text=output))
    )
    add_transaction(auth_client, type_="income", category="Salary", amount="3000")

    resp = auth_client.post("/advisor", data={"financial_goals": "Buy a house"})
    assert resp.status_code == 200
    assert "Set a grocery budget." in resp.text

    assert auth_client.post("/api/advisor", json={}).json() == {"suggestions": ["Set a grocery budget."]}


def test_advisor_failure_is_flashed(auth_client) -> None:
    def create(**kwargs):
        raise RuntimeError("network down")

    app.dependency_overrides[get_advisor_client] = lambda: SimpleNamespace(responses=SimpleNamespace(create=create))
    add_transaction(auth_client, category="Housing", amount="100")

    resp = auth_client.post("/advisor", data={"financial_goals": ""})
    assert "Could not generate budget advice" in resp.text
    assert auth_client.post("/api/advisor", json={}).status_code == 502


# -------------------------------------------------------------------
# Export
# -------------------------------------------------------------------

def test_csv_export(auth_client) -> None:
    add_transaction(auth_client, category="Housing", amount="1200", notes="rent")
    resp = auth_client.get("/export/transactions.csv")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert "attachment" in resp.headers["content-disposition"]
    lines = resp.text.strip().splitlines()
    assert lines[0] == "Date,Type,Category,Notes,Amount"
    assert lines[1].endswith("expense,Housing,rent,1200.0")


def test_summary_export(auth_client) -> None:
    add_transaction(auth_client, type_="income", category="Salary", amount="3000")
    text = auth_client.get("/export/summary.txt").text
    assert text.startswith("FINANCIAL SUMMARY")
    assert "Total Income: $3,000.00" in text
    assert "Salary: $3,000.00" in text


def test_pdf_report_export(auth_client) -> None:
    add_transaction(auth_client, type_="income", category="Salary", amount="3000")
    add_transaction(auth_client, category="Housing", amount="1200", notes="rent & <deposit>")

    resp = auth_client.get("/export/report.pdf")
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/pdf"
    assert 'filename="budget_report_' in resp.headers["content-disposition"]
    assert resp.content.startswith(b"%PDF")

    only_summary = auth_client.get("/export/report.pdf", params={"transactions": "0", "summary": "1"})
    assert only_summary.status_code == 200
    assert only_summary.content.startswith(b"%PDF")
    assert len(only_summary.content) < len(resp.content)


def test_pdf_report_without_transactions(auth_client) -> None:
    resp = auth_client.get("/export/report.pdf", follow_redirects=False)
    assert resp.status_code == 303
    assert resp.headers["location"] == "/dashboard"
    assert "No transactions to export." in auth_client.get("/dashboard").text


def test_pdf_report_requires_sign_in(client) -> None:
    resp = client.get("/export/report.pdf", follow_redirects=False)
    assert resp.status_code == 303
    assert resp.headers["location"].startswith("/login")
