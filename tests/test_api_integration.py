"""
Integration tests for the banking API
Tests end-to-end flows using FastAPI TestClient
"""

import pytest
from fastapi.testclient import TestClient

from banking_app.api import create_app
from banking_app.config import BankingConfig
from banking_app.system import BankingSystem


@pytest.fixture
def system():
    system = BankingSystem(BankingConfig(database_url="memory://", currency="EUR"))
    yield system
    system.close()


@pytest.fixture
def client(system):
    return TestClient(create_app(system))


@pytest.fixture
def alice(client):
    r = client.post("/accounts", json={"account_holder": "Alice", "initial_deposit": "1000"})
    assert r.status_code == 201
    return r.json()


class TestHealth:

    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "healthy"


class TestAccounts:
    """Opening and reading accounts"""

    def test_open_account(self, client, alice):
        assert alice["account_holder"] == "Alice"
        assert alice["balance"] == "1000.00"
        assert alice["loan"] == "0.00"
        assert alice["currency"] == "EUR"

    @pytest.mark.parametrize("deposit", ["0", "-5", "not-a-number"])
    def test_open_account_invalid_deposit(self, client, deposit):
        r = client.post("/accounts", json={"account_holder": "Bob", "initial_deposit": deposit})
        assert r.status_code == 400

    def test_open_duplicate_account(self, client, alice):
        r = client.post("/accounts", json={"account_holder": "Alice", "initial_deposit": "5"})
        assert r.status_code == 400
        assert "already exists" in r.json()["detail"]

    def test_get_account(self, client, alice):
        r = client.get("/accounts/Alice")
        assert r.status_code == 200
        assert r.json()["id"] == alice["id"]

    def test_get_unknown_account(self, client):
        assert client.get("/accounts/Nobody").status_code == 404

    def test_list_accounts(self, client, alice):
        client.post("/accounts", json={"account_holder": "Bob", "initial_deposit": "500"})
        r = client.get("/accounts")
        assert [a["account_holder"] for a in r.json()["accounts"]] == ["Alice", "Bob"]


class TestOperations:
    """Money movement endpoints"""

    def test_deposit(self, client, alice):
        r = client.post("/accounts/Alice/deposit", json={"amount": "200"})
        assert r.status_code == 200
        data = r.json()
        assert data["success"] is True
        assert data["balance"] == "1200.00"
        assert data["total_deposits"] == "1200.00"

    def test_deposit_unknown_account(self, client):
        r = client.post("/accounts/Nobody/deposit", json={"amount": "200"})
        assert r.status_code == 200
        assert r.json()["success"] is False
        assert r.json()["balance"] is None

    def test_negative_deposit(self, client, alice):
        r = client.post("/accounts/Alice/deposit", json={"amount": "-1"})
        assert r.status_code == 400

    @pytest.mark.parametrize("operation", ["deposit", "withdraw", "loan", "loan/repayment"])
    def test_out_of_range_amount(self, client, alice, operation):
        r = client.post(f"/accounts/Alice/{operation}", json={"amount": "1e30"})
        assert r.status_code == 400
        assert "Invalid amount" in r.json()["detail"]
        assert client.get("/accounts/Alice").json()["balance"] == "1000.00"

    def test_open_account_out_of_range_deposit(self, client):
        r = client.post("/accounts", json={"account_holder": "Bob", "initial_deposit": "1e30"})
        assert r.status_code == 400

    def test_withdraw_insufficient_funds(self, client, alice):
        r = client.post("/accounts/Alice/withdraw", json={"amount": "5000"})
        assert r.json()["success"] is False
        assert r.json()["balance"] == "1000.00"

    def test_loan_flow(self, client, alice):
        r = client.post("/accounts/Alice/loan", json={"amount": "400"})
        assert r.json()["success"] is True
        assert r.json()["loan"] == "400.00"
        assert r.json()["balance"] == "1000.00"
        assert r.json()["total_deposits"] == "600.00"

        r = client.post("/accounts/Alice/loan/repayment", json={"amount": "500"})
        assert r.json()["success"] is False

        r = client.post("/accounts/Alice/loan/repayment", json={"amount": "150"})
        assert r.json()["success"] is True
        assert r.json()["loan"] == "250.00"

        totals = client.get("/bank/totals").json()
        assert totals == {
            "currency": "EUR",
            "total_deposits": "750.00",
            "total_account_balances": "1000.00"
        }

    def test_loan_exceeding_total_deposits(self, client, alice):
        r = client.post("/accounts/Alice/loan", json={"amount": "1000.01"})
        assert r.json()["success"] is False


class TestAudit:

    def test_audit_verify(self, client, alice):
        client.post("/accounts/Alice/deposit", json={"amount": "1"})
        data = client.get("/audit/verify").json()
        assert data["valid"] is True
        assert data["total_events"] == 2

    def test_audit_disabled(self):
        system = BankingSystem(BankingConfig(enable_audit_logging=False))
        client = TestClient(create_app(system))
        assert client.get("/audit/verify").status_code == 404
