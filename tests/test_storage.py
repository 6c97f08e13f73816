import json
from unittest.mock import patch

import pytest

from chat_ledger.core.errors import ProfileStoreError
from chat_ledger.models import OnboardingState, UserProfile
from chat_ledger.storage.profiles import InMemoryProfileStore, JsonProfileStore

from factories import expense


@pytest.fixture
def json_store(tmp_path) -> JsonProfileStore:
    return JsonProfileStore(str(tmp_path / "profiles"))


def test_unknown_user_gets_empty_profile(json_store: JsonProfileStore) -> None:
    profile = json_store.get("42")

    assert profile.user_id == "42"
    assert profile.accounts == []
    assert not json_store.exists("42")


def test_save_and_reload(json_store: JsonProfileStore) -> None:
    profile = UserProfile(
        user_id="42",
        display_name="Alice",
        accounts=["CARD"],
        funds=["FOOD"],
        onboarding_state=OnboardingState.COMPLETED,
        pending_commands=[expense(amount=None)],
    )

    json_store.save(profile)
    loaded = json_store.get("42")

    assert json_store.exists("42")
    assert loaded.display_name == "Alice"
    assert loaded.onboarding_state == OnboardingState.COMPLETED
    assert loaded.pending_commands[0].comment == "coffee"
    assert loaded.pending_commands[0].amount is None


def test_empty_list_differs_from_unset(json_store: JsonProfileStore, tmp_path) -> None:
    unset = UserProfile(user_id="1")
    emptied = UserProfile(user_id="2")
    emptied.accounts = []

    json_store.save(unset)
    json_store.save(emptied)

    unset_doc = json.loads((tmp_path / "profiles" / "1.json").read_text())
    emptied_doc = json.loads((tmp_path / "profiles" / "2.json").read_text())
    assert "accounts" not in unset_doc
    assert emptied_doc["accounts"] == []

    reloaded = json_store.get("2")
    assert reloaded.is_list_set("accounts")
    assert not json_store.get("1").is_list_set("accounts")
    assert "accounts" in reloaded.to_document()


def test_corrupt_file_raises(json_store: JsonProfileStore, tmp_path) -> None:
    (tmp_path / "profiles" / "42.json").write_text("{not json")

    with pytest.raises(ProfileStoreError) as exc_info:
        json_store.get("42")

    assert exc_info.value.user_id == "42"


def test_non_object_document_raises(json_store: JsonProfileStore, tmp_path) -> None:
    (tmp_path / "profiles" / "42.json").write_text("[1, 2, 3]")

    with pytest.raises(ProfileStoreError):
        json_store.get("42")


def test_invalid_document_raises(json_store: JsonProfileStore, tmp_path) -> None:
    (tmp_path / "profiles" / "42.json").write_text(json.dumps({"accounts": "CARD"}))

    with pytest.raises(ProfileStoreError):
        json_store.get("42")


def test_stored_user_id_follows_file(json_store: JsonProfileStore, tmp_path) -> None:
    (tmp_path / "profiles" / "42.json").write_text(json.dumps({"userId": "other", "accounts": ["CASH"]}))

    profile = json_store.get("42")

    assert profile.user_id == "42"
    assert profile.accounts == ["CASH"]


def test_unknown_onboarding_state_restarts(json_store: JsonProfileStore, tmp_path) -> None:
    (tmp_path / "profiles" / "42.json").write_text(json.dumps({"onboardingState": "ASK_PETS"}))

    assert json_store.get("42").onboarding_state == OnboardingState.ASK_ACCOUNTS


def test_unsafe_ids_stay_inside_store(json_store: JsonProfileStore, tmp_path) -> None:
    json_store.save(UserProfile(user_id="../evil"))

    assert not (tmp_path / "evil.json").exists()
    assert json_store.exists("../evil")


def test_similar_ids_get_separate_files(json_store: JsonProfileStore) -> None:
    json_store.save(UserProfile(user_id="a/b", accounts=["SECRET"]))

    assert not json_store.exists("a_b")
    assert json_store.get("a_b").accounts == []
    assert json_store.get("a/b").accounts == ["SECRET"]


def test_delete(json_store: JsonProfileStore) -> None:
    json_store.save(UserProfile(user_id="42", accounts=["CARD"]))

    json_store.delete("42")
    json_store.delete("42")

    assert not json_store.exists("42")


def test_save_failure_raises(json_store: JsonProfileStore) -> None:
    with patch("chat_ledger.storage.profiles.os.replace", side_effect=OSError("disk full")):
        with pytest.raises(ProfileStoreError) as exc_info:
            json_store.save(UserProfile(user_id="42"))

    assert exc_info.value.user_id == "42"


def test_in_memory_store_returns_copies() -> None:
    store = InMemoryProfileStore()
    store.save(UserProfile(user_id="1", accounts=["CARD"]))

    first = store.get("1")
    first.accounts.append("CASH")

    assert store.get("1").accounts == ["CARD"]
    assert store.exists("1")
    store.delete("1")
    assert not store.exists("1")
