from __future__ import annotations

import re
import sys
from pathlib import Path

import pytest

# keep the package importable when running tests from a checkout
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from kushl.core import config as core_config
from kushl.repositories import storage
from kushl.services import user_list_service as lists


@pytest.fixture(autouse=True)
def memory_store(monkeypatch):
    monkeypatch.setenv("STORAGE_BACKEND", "memory")
    core_config.get_settings.cache_clear()
    storage.get_store.cache_clear()
    yield storage.get_store()
    storage.get_store.cache_clear()
    core_config.get_settings.cache_clear()


def _entry(user_id: str, reason: str = "spam") -> dict:
    return {"userId": user_id, "username": f"user-{user_id}", "email": f"{user_id}@example.com", "addedBy": "admin1", "reason": reason}


def test_add_is_idempotent_on_user_id(memory_store):
    assert lists.add_user_to_list("banned", _entry("a")) is True
    assert lists.add_user_to_list("banned", _entry("a", reason="again")) is False

    items = lists.get_users_from_list("banned")
    assert len(items) == 1
    assert items[0]["reason"] == "spam"
    assert isinstance(items[0]["addedAt"], int)
    assert memory_store.get("kushl_banned_users") == items


def test_remove_absent_id_leaves_list_unchanged():
    lists.add_user_to_list("discouraged", _entry("a"))
    before = lists.get_users_from_list("discouraged")

    assert lists.remove_user_from_list("discouraged", "zzz") is False
    assert lists.get_users_from_list("discouraged") == before

    assert lists.remove_user_from_list("discouraged", "a") is True
    assert lists.get_users_from_list("discouraged") == []


def test_lists_are_independent():
    lists.add_user_to_list("banned", _entry("a"))

    assert lists.is_user_in_list("banned", "a") is True
    assert lists.is_user_in_list("encouraged", "a") is False
    assert lists.apply_user_list_effects("a") == {"isBanned": True, "isDiscouraged": False, "isEncouraged": False}


def test_search_is_case_insensitive():
    lists.add_user_to_list("encouraged", _entry("Alpha"))
    lists.add_user_to_list("encouraged", _entry("beta"))

    assert [u["userId"] for u in lists.search_users_in_list("encouraged", "ALPHA")] == ["Alpha"]
    assert len(lists.search_users_in_list("encouraged", "")) == 2
    assert [u["userId"] for u in lists.search_users_in_list("encouraged", "beta@")] == ["beta"]


def test_export_format():
    lists.add_user_to_list("banned", _entry("a"))

    header, row = lists.export_users_from_list("banned").split("\n")

    assert header == "userId,username,email,addedAt,addedBy,reason"
    fields = row.split(",")
    assert fields[:3] == ["a", "user-a", "a@example.com"]
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", fields[3])
    assert fields[4:] == ["admin1", "spam"]


def test_export_of_empty_list_is_header_only():
    assert lists.export_users_from_list("encouraged") == lists.CSV_HEADER


def test_export_then_import_round_trips_comma_free_lists():
    lists.add_user_to_list("banned", _entry("a", "spam"))
    lists.add_user_to_list("banned", _entry("b", "abuse"))
    csv_data = lists.export_users_from_list("banned")

    added = lists.import_users_to_list("discouraged", csv_data, "admin2")

    assert added == 2
    keep = ("userId", "username", "email", "reason")
    original = [{k: u[k] for k in keep} for u in lists.get_users_from_list("banned")]
    imported = [{k: u[k] for k in keep} for u in lists.get_users_from_list("discouraged")]
    assert imported == original
    # the importer stamps its own admin, not the exported addedBy column
    assert {u["addedBy"] for u in lists.get_users_from_list("discouraged")} == {"admin2"}


def test_import_skips_blank_existing_and_repeated_rows():
    lists.add_user_to_list("banned", _entry("a"))
    csv_data = "\n".join(
        [
            "UserId, Username ,EMAIL",
            "a,user-a,a@example.com",
            "",
            "b,user-b,b@example.com",
            "b,user-b,b@example.com",
            "   ",
            ",nobody,none@example.com",
            "c,user-c,c@example.com",
        ]
    )

    assert lists.import_users_to_list("banned", csv_data, "admin1") == 2
    assert [u["userId"] for u in lists.get_users_from_list("banned")] == ["a", "b", "c"]
    assert lists.get_users_from_list("banned")[1]["reason"] == ""


def test_import_without_required_header_adds_nothing():
    assert lists.import_users_to_list("banned", "id,name\n1,x", "admin1") == 0
    assert lists.get_users_from_list("banned") == []


def test_comma_inside_a_field_shifts_columns():
    lists.add_user_to_list("banned", _entry("a", reason="spam, repeated"))
    csv_data = lists.export_users_from_list("banned")

    lists.import_users_to_list("encouraged", csv_data, "admin1")

    assert lists.get_users_from_list("encouraged")[0]["reason"] == "spam"


def test_unknown_list_type_raises():
    with pytest.raises(ValueError):
        lists.get_users_from_list("vip")
    with pytest.raises(ValueError):
        lists.add_user_to_list("vip", _entry("a"))
