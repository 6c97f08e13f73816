from unittest.mock import patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from chat_ledger.app import create_app
from chat_ledger.core.errors import ProfileStoreError
from chat_ledger.core.settings import Settings
from chat_ledger.models import CandidateBatch
from chat_ledger.orchestrator import CommandOrchestrator
from chat_ledger.services.profiles import ProfileService

from factories import expense


@pytest.fixture
def app(store, interpreter, operations) -> FastAPI:
    application = create_app(Settings(log_level="WARNING"))
    application.state.orchestrator = CommandOrchestrator(store, interpreter, operations)
    application.state.profiles = ProfileService(store)
    return application


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


def test_chat_commits_operation(client: TestClient, interpreter, operations, ready_profile) -> None:
    interpreter.interpret.return_value = CandidateBatch(understood=True, operations=[expense()])

    response = client.post(
        "/chat",
        json={"chatId": 100, "userId": 42, "userName": "alice", "message": "coffee 1000"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["chatId"] == "100"
    assert data["success"] is True
    assert data["operationsCount"] == 1
    assert data["operations"][0]["amount"] == 1000
    assert data["operations"][0]["accountName"] == "CARD"
    operations.dispatch.assert_called_once()


def test_chat_store_failure_is_500(client: TestClient, store, interpreter, ready_profile) -> None:
    interpreter.interpret.return_value = CandidateBatch(understood=True, operations=[expense()])

    with patch.object(store, "save", side_effect=ProfileStoreError("42", "disk full")):
        response = client.post("/chat", json={"chatId": "100", "userId": "42", "message": "coffee 1000"})

    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to persist user profile"


def test_chat_without_services_is_500() -> None:
    client = TestClient(create_app(Settings(log_level="WARNING")))

    response = client.post("/chat", json={"chatId": "100", "userId": "42", "message": "hi"})

    assert response.status_code == 500
    assert response.json()["detail"] == "Service not initialized"


def test_get_user(client: TestClient, ready_profile) -> None:
    response = client.get("/users/42")

    assert response.status_code == 200
    data = response.json()
    assert data["userId"] == "42"
    assert data["accounts"] == ["CARD", "CASH"]
    assert data["onboardingState"] == "COMPLETED"


def test_unknown_user_omits_unset_lists(client: TestClient) -> None:
    data = client.get("/users/999").json()

    assert data["userId"] == "999"
    assert "accounts" not in data
    assert "funds" not in data


def test_replace_user_forces_path_id(client: TestClient, store) -> None:
    response = client.put("/users/42", json={"userId": "other", "accounts": ["CASH"], "funds": []})

    assert response.status_code == 200
    assert response.json()["userId"] == "42"
    saved = store.get("42")
    assert saved.accounts == ["CASH"]
    assert saved.is_list_set("funds")


def test_replace_user_rejects_invalid_document(client: TestClient) -> None:
    response = client.put("/users/42", json={"accounts": "CASH"})

    assert response.status_code == 422


def test_update_defaults(client: TestClient, store, ready_profile) -> None:
    response = client.patch("/users/42/defaults", json={"defaultCurrency": "eur", "defaultFund": "food"})

    assert response.status_code == 200
    saved = store.get("42")
    assert saved.default_currency == "EUR"
    assert saved.default_fund == "FOOD"
    assert saved.default_account == "CARD"


def test_instructions_add_and_remove(client: TestClient, store, ready_profile) -> None:
    added = client.post("/users/42/instructions", json={"instruction": "shawarma = FOOD"})
    assert added.status_code == 201
    assert added.json()["customInstructions"] == ["shawarma = FOOD"]

    missing = client.delete("/users/42/instructions/5")
    assert missing.status_code == 404

    removed = client.delete("/users/42/instructions/0")
    assert removed.status_code == 200
    assert removed.json() == {"status": "removed", "detail": "shawarma = FOOD"}
    assert store.get("42").custom_instructions == []


def test_add_account_and_fund(client: TestClient, store, ready_profile) -> None:
    assert client.post("/users/42/accounts", json={"name": "savings account"}).status_code == 201
    assert client.post("/users/42/funds", json={"name": "health"}).status_code == 201

    saved = store.get("42")
    assert saved.accounts == ["CARD", "CASH", "SAVINGS_ACCOUNT"]
    assert saved.funds == ["FOOD", "TRANSPORT", "HEALTH"]


def test_blank_account_name_is_rejected(client: TestClient, ready_profile) -> None:
    response = client.post("/users/42/accounts", json={"name": "   "})

    assert response.status_code == 400


def test_delete_user(client: TestClient, store, ready_profile) -> None:
    response = client.delete("/users/42")

    assert response.status_code == 200
    assert response.json()["status"] == "deleted"
    assert not store.exists("42")
