from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from cv_core.errors import InvalidTransitionError, NotFoundError, ValidationError
from cv_core.store import BatchFetcher, SqliteStore
from cv_core.versions import VersionStore


@pytest.fixture()
def store(tmp_path: Path) -> Iterator[SqliteStore]:
    opened = SqliteStore.open(tmp_path / "content.db")
    yield opened
    opened.close()


@pytest.fixture()
def versions(store: SqliteStore) -> VersionStore:
    return VersionStore(store, BatchFetcher(store), default_actor="tester")


def test_version_numbers_increase_regardless_of_review_outcome(versions: VersionStore) -> None:
    first = versions.propose_version("home.title", "de", "Start")
    versions.approve(first)
    second = versions.propose_version("home.title", "de", "Startseite")
    versions.reject(second, "Too long")
    third = versions.propose_version("home.title", "de", "Home")

    history = versions.history("home.title", "de")

    assert [item.version_number for item in history] == [3, 2, 1]
    assert [item.status for item in history] == ["pending", "rejected", "approved"]
    assert history[0].id == third
    assert history[0].previous_version_id == second
    assert history[1].previous_version_id == first
    assert history[2].previous_version_id is None


def test_chains_are_independent_per_locale(versions: VersionStore) -> None:
    versions.propose_version("home.title", "de", "Start")
    french = versions.propose_version("home.title", "fr_ca", "Accueil")

    version = versions.get_version(french)
    assert version.locale == "fr-CA"
    assert version.version_number == 1


def test_propose_records_actor_and_auto_flag(versions: VersionStore) -> None:
    version_id = versions.propose_version("nav.back", "es", "Volver", True, created_by="mt-bot")
    version = versions.get_version(version_id)

    assert version.status == "pending"
    assert version.auto_translated is True
    assert version.created_by == "mt-bot"

    approved = versions.approve(version_id, reviewed_by="  ")
    assert approved is True
    assert versions.get_version(version_id).reviewed_by == "tester"


def test_rollback_appends_without_touching_history(versions: VersionStore) -> None:
    first = versions.propose_version("cta", "en", "Buy now")
    versions.approve(first)
    second = versions.propose_version("cta", "en", "Purchase")
    versions.approve(second)

    restored_id = versions.rollback("cta", "en", 1, created_by="editor")

    original = versions.get_version(first)
    assert original.value == "Buy now"
    assert original.version_number == 1
    assert original.status == "approved"

    restored = versions.get_version(restored_id)
    assert restored.version_number == 3
    assert restored.value == "Buy now"
    assert restored.previous_version_id == first
    assert restored.status == "approved"
    assert restored.reviewed_by == "editor"
    assert restored.review_notes == "Rolled back to version 1"

    current = versions.current_approved("cta", "en")
    assert current is not None
    assert current.id == restored_id
    assert versions.approved_map("en") == {"cta": "Buy now"}


def test_rollback_to_unreviewed_version_needs_review_again(versions: VersionStore) -> None:
    versions.propose_version("cta", "en", "Draft")
    restored_id = versions.rollback("cta", "en", 1)

    assert versions.get_version(restored_id).status == "pending"


def test_rollback_to_missing_version_fails(versions: VersionStore) -> None:
    versions.propose_version("cta", "en", "Buy now")

    with pytest.raises(NotFoundError):
        versions.rollback("cta", "en", 7)
    with pytest.raises(NotFoundError):
        versions.rollback("cta", "en", 0)


def test_review_errors(versions: VersionStore) -> None:
    version_id = versions.propose_version("cta", "en", "Buy now")

    with pytest.raises(ValidationError):
        versions.reject(version_id, "   ")
    assert versions.get_version(version_id).status == "pending"

    with pytest.raises(NotFoundError):
        versions.approve("does-not-exist")

    versions.approve(version_id)
    with pytest.raises(InvalidTransitionError):
        versions.approve(version_id)
    with pytest.raises(InvalidTransitionError):
        versions.reject(version_id, "Changed my mind")


@pytest.mark.parametrize("key", ["", "card[object Object]title", "has space", "trailing."])
def test_propose_rejects_bad_keys(versions: VersionStore, key: str) -> None:
    with pytest.raises(ValidationError):
        versions.propose_version(key, "en", "value")


def test_batch_approve_counts_successes_only(versions: VersionStore) -> None:
    first = versions.propose_version("a", "en", "A")
    second = versions.propose_version("b", "en", "B")
    already = versions.propose_version("c", "en", "C")
    versions.approve(already)

    count = versions.batch_approve([first, "missing-id", already, second], "bulk")

    assert count == 2
    assert versions.get_version(first).status == "approved"
    assert versions.get_version(second).review_notes == "bulk"


def test_pending_queue_is_newest_first_and_hides_corrupted_keys(
    store: SqliteStore, versions: VersionStore
) -> None:
    store.insert(
        "translation_versions",
        [
            {
                "id": "old",
                "key": "old.key",
                "locale": "fr",
                "value": "Ancien",
                "version_number": 1,
                "status": "pending",
                "auto_translated": 0,
                "created_at": "2020-01-01T00:00:00Z",
                "created_by": "seed",
            },
            {
                "id": "broken",
                "key": "card[object Object]title",
                "locale": "fr",
                "value": "Titre",
                "version_number": 1,
                "status": "pending",
                "auto_translated": 0,
                "created_at": "2030-01-01T00:00:00Z",
                "created_by": "seed",
            },
        ],
    )
    newest = versions.propose_version("new.key", "fr", "Nouveau")
    versions.propose_version("other", "de", "Andere")

    queue = versions.pending("fr")

    assert [item.id for item in queue] == [newest, "old"]
    assert len(versions.pending()) == 3
    assert "card[object Object]title" not in versions.all_keys()
    assert "card[object Object]title" in versions.all_keys(include_corrupted=True)


def test_approved_map_keeps_latest_approval(versions: VersionStore) -> None:
    first = versions.propose_version("title", "it", "Titolo")
    versions.approve(first)
    second = versions.propose_version("title", "it", "Titolo nuovo")
    versions.approve(second)
    versions.propose_version("title", "it", "Bozza")

    assert versions.approved_map("it") == {"title": "Titolo nuovo"}


def test_delete_key_removes_whole_chain(versions: VersionStore) -> None:
    versions.propose_version("gone", "en", "one")
    versions.propose_version("gone", "en", "two")
    versions.propose_version("gone", "fr", "un")

    assert versions.delete_key("gone") == 3
    assert versions.history("gone", "en") == []
    with pytest.raises(NotFoundError):
        versions.delete_key("gone")
