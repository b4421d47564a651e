from decimal import Decimal

from fastapi.testclient import TestClient

from pocket_ledger.main import app

from conftest import TODAY

BANK_CSV = (
    b"Date,Description,Amount\n"
    b"2024-06-10,Corner Cafe,-4.50\n"
    b"2024-06-11,Employer,1500.00\n"
    b"someday,Unknown,-1.00\n"
)


def post_account(client, name="Everyday", account_type="checking", opening_balance="100.00"):
    response = client.post("/accounts/", json={
        "name": name, "account_type": account_type, "opening_balance": opening_balance,
    })
    assert response.status_code == 201, response.text
    return response.json()


def post_transaction(client, account_id, amount, payee="Cafe", category="Dining", on="2024-06-01"):
    response = client.post("/transactions/", json={
        "account_id": account_id, "transaction_date": on, "amount": amount,
        "payee": payee, "category": category,
    })
    assert response.status_code == 201, response.text
    return response.json()


class TestAuth:

    def test_missing_user_header(self, client, user):
        anonymous = TestClient(app)
        assert anonymous.get("/accounts/").status_code == 401

    def test_unknown_user_header(self, client):
        assert client.get("/accounts/", headers={"X-User-Id": "9999"}).status_code == 401
        assert client.get("/accounts/", headers={"X-User-Id": "alex"}).status_code == 401

    def test_health_check_is_open(self, client):
        assert TestClient(app).get("/").json() == "Server is running."


class TestUsers:

    def test_register_then_login(self, client):
        created = client.post("/users/", json={
            "email": "Jo@Example.com", "username": "jordan", "password": "long-enough-pw",
        })
        assert created.status_code == 201
        assert created.json()["email"] == "jo@example.com"

        login = client.post("/users/login", json={"email": "jo@example.com", "password": "long-enough-pw"})
        assert login.status_code == 200
        new_id = login.json()["user_id"]

        categories = client.get("/categories/", headers={"X-User-Id": str(new_id)})
        assert len(categories.json()) == 14

    def test_bad_password(self, client, user):
        response = client.post("/users/login", json={"email": "alex@example.com", "password": "wrong"})
        assert response.status_code == 401

    def test_me(self, client, user):
        assert client.get("/users/me").json()["username"] == "alex"


class TestAccountsAndTransactions:

    def test_transaction_moves_balance(self, client):
        account = post_account(client)
        post_transaction(client, account["id"], "-25.50")

        fetched = client.get(f"/accounts/{account['id']}").json()

        assert Decimal(fetched["balance"]) == Decimal("74.50")

    def test_summary_counts_credit_as_liability(self, client):
        post_account(client, "Everyday", "checking", "1000.00")
        post_account(client, "Card", "credit", "-250.00")

        summary = client.get("/accounts/summary").json()

        assert Decimal(summary["total_assets"]) == Decimal("1000.00")
        assert Decimal(summary["total_liabilities"]) == Decimal("250.00")
        assert Decimal(summary["net_worth"]) == Decimal("750.00")

    def test_unknown_account_is_bad_request(self, client):
        response = client.post("/transactions/", json={
            "account_id": 4242, "transaction_date": "2024-06-01", "amount": "-1.00", "payee": "X",
        })
        assert response.status_code == 400

    def test_invalid_body_is_unprocessable(self, client):
        assert client.post("/accounts/", json={"name": "No type"}).status_code == 422

    def test_out_of_range_amount_is_unprocessable(self, client):
        account = post_account(client)

        for amount in ("1e30", "-123456789012345678901234567890", "Infinity"):
            response = client.post("/transactions/", json={
                "account_id": account["id"], "transaction_date": "2024-06-01", "amount": amount, "payee": "X",
            })
            assert response.status_code == 422, amount

        assert Decimal(client.get(f"/accounts/{account['id']}").json()["balance"]) == Decimal("100.00")

    def test_missing_transaction(self, client):
        assert client.get("/transactions/31337").status_code == 404

    def test_filter_by_category(self, client):
        account = post_account(client)
        post_transaction(client, account["id"], "-3.00", category="Dining")
        post_transaction(client, account["id"], "-60.00", category="Groceries")

        listed = client.get("/transactions/", params={"category": "Groceries"}).json()

        assert [t["payee"] for t in listed] == ["Cafe"]
        assert Decimal(listed[0]["amount"]) == Decimal("-60.00")

    def test_export_is_csv_attachment(self, client):
        account = post_account(client)
        post_transaction(client, account["id"], "-3.00")

        response = client.get("/transactions/export")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "attachment" in response.headers["content-disposition"]
        assert response.text.splitlines()[0].startswith("date,payee,amount")

    def test_hard_delete_of_used_account_conflicts(self, client):
        account = post_account(client)
        post_transaction(client, account["id"], "-3.00")

        response = client.delete(f"/accounts/{account['id']}", params={"hard": True})

        assert response.status_code == 409


class TestTransfersAndReconciliation:

    def test_transfer_returns_both_legs(self, client):
        source = post_account(client, "Everyday", opening_balance="500.00")
        target = post_account(client, "Rainy Day", "savings", "0.00")

        response = client.post("/transfers/", json={
            "from_account_id": source["id"], "to_account_id": target["id"],
            "amount": "200.00", "transfer_date": "2024-06-01",
        })

        assert response.status_code == 201
        legs = response.json()
        assert Decimal(legs["withdrawal"]["amount"]) == Decimal("-200.00")
        assert Decimal(legs["deposit"]["amount"]) == Decimal("200.00")
        assert legs["withdrawal"]["linked_transaction_id"] == legs["deposit"]["id"]

        client.delete(f"/transfers/{legs['deposit']['id']}")
        assert Decimal(client.get(f"/accounts/{source['id']}").json()["balance"]) == Decimal("500.00")

    def test_same_account_transfer_is_unprocessable(self, client):
        account = post_account(client)
        response = client.post("/transfers/", json={
            "from_account_id": account["id"], "to_account_id": account["id"],
            "amount": "1.00", "transfer_date": "2024-06-01",
        })
        assert response.status_code == 422

    def test_reconcile_account_mismatch_conflicts(self, client):
        account = post_account(client, opening_balance="0.00")
        post_transaction(client, account["id"], "100.00", payee="Employer")

        mismatch = client.post(f"/reconciliation/accounts/{account['id']}", json={
            "reconcile_date": "2024-06-30", "expected_balance": "90.00",
        })
        match = client.post(f"/reconciliation/accounts/{account['id']}", json={
            "reconcile_date": "2024-06-30", "expected_balance": "100.00",
        })

        assert mismatch.status_code == 409
        assert "Difference" in mismatch.json()["detail"]
        assert match.status_code == 200
        assert match.json()["reconciled_count"] == 1


class TestCategoriesAndPlanning:

    def test_category_in_use_conflicts(self, client):
        category = client.post("/categories/", json={"name": "Pets", "category_type": "expense"}).json()
        account = post_account(client)
        post_transaction(client, account["id"], "-20.00", category="Pets")

        assert client.delete(f"/categories/{category['id']}").status_code == 409

    def test_recurring_process_is_idempotent(self, client):
        account = post_account(client, opening_balance="2000.00")
        client.post("/recurring/", json={
            "account_id": account["id"], "amount": "-1200.00", "payee": "Landlord",
            "category": "Rent/Mortgage", "frequency": "monthly", "next_date": TODAY.isoformat(),
        })

        first = client.post("/recurring/process").json()
        second = client.post("/recurring/process").json()

        assert len(first["created"]) == 1
        assert second["created"] == []

    def test_goal_listing_includes_progress(self, client):
        client.post("/goals/", json={
            "name": "Vacation", "target_amount": "1200.00", "current_amount": "300.00",
            "target_date": "2024-12-15",
        })

        goals = client.get("/goals/").json()

        assert goals[0]["progress"] == 25
        assert Decimal(goals[0]["monthly_savings_needed"]) == Decimal("150.00")

    def test_pay_reminder(self, client):
        account = post_account(client, opening_balance="200.00")
        reminder = client.post("/reminders/", json={
            "title": "Electric bill", "amount": "85.00", "due_date": "2024-06-20", "frequency": "monthly",
        }).json()

        paid = client.post(f"/reminders/{reminder['id']}/pay", json={"account_id": account["id"]})

        assert paid.status_code == 200
        body = paid.json()
        assert body["reminder"]["is_paid"] is True
        assert body["next_reminder"]["due_date"] == "2024-07-20"
        assert client.post(f"/reminders/{reminder['id']}/pay", json={"account_id": account["id"]}).status_code == 400


class TestImportsAndDashboard:

    def test_preview_then_commit(self, client):
        account = post_account(client, opening_balance="0.00")

        preview = client.post(
            "/imports/csv/preview",
            files={"file": ("bank.csv", BANK_CSV, "text/csv")},
            data={"date_column": "Date", "amount_column": "Amount", "payee_column": "Description"},
        )
        assert preview.status_code == 200, preview.text
        body = preview.json()
        assert body["error_count"] == 1
        assert len(body["rows"]) == 3

        committed = client.post("/imports/csv/commit", json={"account_id": account["id"], "rows": body["rows"]})

        assert committed.status_code == 201
        assert committed.json() == {"created": 2, "skipped_duplicates": 0, "skipped_errors": 1}
        assert Decimal(client.get(f"/accounts/{account['id']}").json()["balance"]) == Decimal("1495.50")

    def test_preview_with_bad_mapping(self, client):
        response = client.post(
            "/imports/csv/preview",
            files={"file": ("bank.csv", BANK_CSV, "text/csv")},
            data={"date_column": "Date", "amount_column": "Amount", "debit_column": "Amount"},
        )
        assert response.status_code == 400

    def test_dashboard(self, client):
        account = post_account(client, opening_balance="300.00")
        post_transaction(client, account["id"], "-30.00", category="Groceries", on=TODAY.isoformat())
        client.post("/budgets/", json={"category": "Groceries", "amount": "100.00", "start_date": "2024-06-01"})

        dashboard = client.get("/dashboard/").json()

        assert [a["name"] for a in dashboard["accounts"]] == ["Everyday"]
        assert len(dashboard["recent_transactions"]) == 1
        assert Decimal(dashboard["budgets"][0]["spent"]) == Decimal("30.00")
        assert Decimal(dashboard["net_worth"]["net_worth"]) == Decimal("270.00")
