from __future__ import annotations

import json
import re
from pathlib import Path

from typer.testing import CliRunner

from cv_cli.main import app

runner = CliRunner()


def _invoke(root: Path, *args: str):
    return runner.invoke(app, [*args, "--root", str(root)])


def _version_id(output: str) -> str:
    match = re.search(r"^Id: (\S+)$", output, flags=re.MULTILINE)
    assert match, output
    return match.group(1)


def test_review_workflow_end_to_end(tmp_path: Path) -> None:
    root = tmp_path / "workspaces"

    created = runner.invoke(
        app, ["init", "Content", "--locales", "fr,fr-CA", "--root", str(root)]
    )
    assert created.exit_code == 0, created.output
    assert "Workspace created: content" in created.output
    assert "Locales: en, fr, fr-CA" in created.output

    proposed = _invoke(root, "propose", "greeting", "fr", "Bonjour")
    assert proposed.exit_code == 0, proposed.output
    assert "Proposed version 1 of greeting (fr)" in proposed.output
    version_id = _version_id(proposed.output)

    pending = _invoke(root, "pending", "--locale", "fr")
    assert pending.exit_code == 0, pending.output
    assert version_id in pending.output
    assert "1 pending" in pending.output

    approved = _invoke(root, "approve", version_id, "--notes", "looks good")
    assert approved.exit_code == 0, approved.output

    resolved = _invoke(root, "resolve", "fr-CA")
    assert resolved.exit_code == 0, resolved.output
    assert "greeting = Bonjour  [fr]" in resolved.output

    history = _invoke(root, "history", "greeting", "fr")
    assert "v1 approved" in history.output

    stats = _invoke(root, "stats")
    assert "fr: 1/1 approved (100.0%)" in stats.output
    assert "fr-CA: 0/1 approved (0.0%), 0 pending, 1 missing" in stats.output


def test_reject_and_rollback(tmp_path: Path) -> None:
    root = tmp_path / "workspaces"
    runner.invoke(app, ["init", "Content", "--root", str(root)])

    first = _version_id(_invoke(root, "propose", "cta", "en", "Buy").output)
    _invoke(root, "approve", first)
    second = _version_id(_invoke(root, "propose", "cta", "en", "Purchase").output)

    missing_notes = _invoke(root, "reject", second)
    assert missing_notes.exit_code != 0

    rejected = _invoke(root, "reject", second, "--notes", "Off brand")
    assert rejected.exit_code == 0, rejected.output

    again = _invoke(root, "reject", second, "--notes", "Still off brand")
    assert again.exit_code == 1
    assert "only pending versions" in again.output

    rolled_back = _invoke(root, "rollback", "cta", "en", "1")
    assert rolled_back.exit_code == 0, rolled_back.output
    assert "Created version 3 (approved) from version 1 of cta" in rolled_back.output

    unknown = _invoke(root, "rollback", "cta", "en", "9")
    assert unknown.exit_code == 1


def test_batch_approve_reports_count(tmp_path: Path) -> None:
    root = tmp_path / "workspaces"
    runner.invoke(app, ["init", "Content", "--root", str(root)])

    ids = [
        _version_id(_invoke(root, "propose", key, "en", key.title()).output)
        for key in ("one", "two")
    ]

    result = _invoke(root, "batch-approve", *ids, "nope")

    assert result.exit_code == 0, result.output
    assert "Approved 2 of 3" in result.output


def test_import_export_and_cleanup(tmp_path: Path) -> None:
    root = tmp_path / "workspaces"
    runner.invoke(app, ["init", "Content", "--root", str(root)])

    source = tmp_path / "en.json"
    source.write_text(json.dumps({"nav": {"home": "Home"}, "title": "App"}), encoding="utf-8")

    imported = _invoke(root, "import-json", "en", str(source), "--approve")
    assert imported.exit_code == 0, imported.output
    assert "Created: 2" in imported.output

    exported = _invoke(root, "export", "en", "--format", "csv")
    assert exported.exit_code == 0, exported.output
    assert "Exported 2 keys" in exported.output
    assert list((root / "content" / "exports").glob("translations_en_*.csv"))

    bad_format = _invoke(root, "export", "en", "--format", "pdf")
    assert bad_format.exit_code == 1

    cleanup = _invoke(root, "cleanup", "--strategy", "repair")
    assert cleanup.exit_code == 0, cleanup.output
    assert "Corrupted keys found: 0" in cleanup.output

    bad_strategy = _invoke(root, "cleanup", "--strategy", "everything")
    assert bad_strategy.exit_code == 1


def test_missing_workspace_fails_cleanly(tmp_path: Path) -> None:
    result = _invoke(tmp_path / "workspaces", "resolve", "en")

    assert result.exit_code == 1
    assert "Workspace config not found" in result.output
