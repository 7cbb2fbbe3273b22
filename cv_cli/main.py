from __future__ import annotations

import json
from pathlib import Path
from typing import NoReturn

import typer

from cv_core.engine import CLEANUP_STRATEGIES, ContentVersioningEngine
from cv_core.errors import EngineError
from cv_core.io.export import EXPORT_FORMATS
from cv_core.logging_setup import setup_logging
from cv_core.project.workspace import WorkspaceLayout, init_workspace, load_workspace

app = typer.Typer(help="Localized content versioning CLI")

CLI_ERRORS = (EngineError, FileExistsError, FileNotFoundError, ValueError)


def _workspace_option() -> typer.models.OptionInfo:
    return typer.Option("content", "--workspace", "-w", help="Workspace slug.")


def _root_option() -> typer.models.OptionInfo:
    return typer.Option(
        None,
        "--root",
        help="Workspaces root path. Defaults to ./workspaces.",
        file_okay=False,
        resolve_path=False,
    )


def _fail(exc: Exception) -> NoReturn:
    typer.secho(str(exc), fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1) from exc


def _open_engine(workspace: str, root: Path | None) -> ContentVersioningEngine:
    return ContentVersioningEngine.from_workspace(WorkspaceLayout.for_slug(workspace, root).path)


def _parse_locales(locales_option: str | None) -> list[str]:
    if not locales_option:
        return []
    return [chunk.strip() for chunk in locales_option.split(",") if chunk.strip()]


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    setup_logging("DEBUG" if verbose else "WARNING")


@app.command("init")
def init_command(
    name: str = typer.Argument(..., help="Human-readable workspace name."),
    slug: str | None = typer.Option(None, "--slug", help="Slug override."),
    default_language: str = typer.Option("en", "--default-language", help="Default language."),
    locales: str | None = typer.Option(
        None,
        "--locales",
        help="Comma-separated locales to track. The default language is always included.",
    ),
    root: Path | None = _root_option(),
) -> None:
    """Create a workspace folder with its config and SQLite database."""

    try:
        created = init_workspace(
            name,
            slug=slug,
            default_language=default_language,
            locales=_parse_locales(locales),
            root=root,
        )
        info = load_workspace(created.slug, root=created.root)
    except CLI_ERRORS as exc:
        _fail(exc)

    typer.echo(f"Workspace created: {created.slug}")
    typer.echo(f"Path: {created.workspace_path}")
    typer.echo(f"Database: {created.db_path}")
    typer.echo(f"Locales: {', '.join(info.active_languages)}")
    typer.echo(f"Schema version: {info.schema_version}")


@app.command("resolve")
def resolve_command(
    locale: str = typer.Argument(..., help="Requested locale, e.g. fr-CA."),
    workspace: str = _workspace_option(),
    root: Path | None = _root_option(),
) -> None:
    """Print the resolved translation set of a locale."""

    try:
        with _open_engine(workspace, root) as engine:
            resolved = engine.get_translations(locale)
    except CLI_ERRORS as exc:
        _fail(exc)

    for key, value, source in resolved.entries():
        typer.echo(f"{key} = {value}  [{source}]")
    typer.echo(f"{len(resolved)} keys resolved for {resolved.locale}")


@app.command("item")
def item_command(
    item_id: str = typer.Argument(..., help="Content item id."),
    locale: str = typer.Argument(..., help="Requested locale."),
    workspace: str = _workspace_option(),
    root: Path | None = _root_option(),
) -> None:
    """Print the effective field values of a content item."""

    try:
        with _open_engine(workspace, root) as engine:
            resolved = engine.get_content_item(item_id, locale)
    except CLI_ERRORS as exc:
        _fail(exc)

    for field_key, value in resolved.values.items():
        rendered = json.dumps(value, ensure_ascii=False)
        typer.echo(f"{field_key} = {rendered}  [{resolved.sources[field_key]}]")


@app.command("propose")
def propose_command(
    key: str = typer.Argument(..., help="Translation key."),
    locale: str = typer.Argument(..., help="Locale of the value."),
    value: str = typer.Argument(..., help="Proposed text."),
    auto: bool = typer.Option(False, "--auto", help="Mark as machine translated."),
    actor: str | None = typer.Option(None, "--actor", help="Who proposes the change."),
    workspace: str = _workspace_option(),
    root: Path | None = _root_option(),
) -> None:
    """Append a pending version to a key's chain."""

    try:
        with _open_engine(workspace, root) as engine:
            version_id = engine.propose_translation(
                key, locale, value, auto, created_by=actor
            )
            version = engine.versions.get_version(version_id)
    except CLI_ERRORS as exc:
        _fail(exc)

    typer.echo(f"Proposed version {version.version_number} of {version.key} ({version.locale})")
    typer.echo(f"Id: {version.id}")


@app.command("approve")
def approve_command(
    version_id: str = typer.Argument(..., help="Version id."),
    notes: str | None = typer.Option(None, "--notes", help="Review notes."),
    actor: str | None = typer.Option(None, "--actor", help="Reviewer."),
    workspace: str = _workspace_option(),
    root: Path | None = _root_option(),
) -> None:
    """Approve a pending version."""

    try:
        with _open_engine(workspace, root) as engine:
            engine.approve(version_id, notes, reviewed_by=actor)
    except CLI_ERRORS as exc:
        _fail(exc)

    typer.echo(f"Approved {version_id}")


@app.command("batch-approve")
def batch_approve_command(
    version_ids: list[str] = typer.Argument(..., help="Version ids."),
    notes: str | None = typer.Option(None, "--notes", help="Review notes."),
    actor: str | None = typer.Option(None, "--actor", help="Reviewer."),
    workspace: str = _workspace_option(),
    root: Path | None = _root_option(),
) -> None:
    """Approve several versions; failures are skipped."""

    try:
        with _open_engine(workspace, root) as engine:
            approved = engine.batch_approve(version_ids, notes, reviewed_by=actor)
    except CLI_ERRORS as exc:
        _fail(exc)

    typer.echo(f"Approved {approved} of {len(version_ids)}")


@app.command("reject")
def reject_command(
    version_id: str = typer.Argument(..., help="Version id."),
    notes: str = typer.Option(..., "--notes", help="Why the version is rejected."),
    actor: str | None = typer.Option(None, "--actor", help="Reviewer."),
    workspace: str = _workspace_option(),
    root: Path | None = _root_option(),
) -> None:
    """Reject a pending version."""

    try:
        with _open_engine(workspace, root) as engine:
            engine.reject(version_id, notes, reviewed_by=actor)
    except CLI_ERRORS as exc:
        _fail(exc)

    typer.echo(f"Rejected {version_id}")


@app.command("rollback")
def rollback_command(
    key: str = typer.Argument(..., help="Translation key."),
    locale: str = typer.Argument(..., help="Locale of the chain."),
    version: int = typer.Argument(..., help="Version number to restore."),
    actor: str | None = typer.Option(None, "--actor", help="Who performs the rollback."),
    workspace: str = _workspace_option(),
    root: Path | None = _root_option(),
) -> None:
    """Restore an earlier value as a new version."""

    try:
        with _open_engine(workspace, root) as engine:
            version_id = engine.rollback(key, locale, version, created_by=actor)
            restored = engine.versions.get_version(version_id)
    except CLI_ERRORS as exc:
        _fail(exc)

    typer.echo(
        f"Created version {restored.version_number} ({restored.status}) "
        f"from version {version} of {key}"
    )


@app.command("pending")
def pending_command(
    locale: str | None = typer.Option(None, "--locale", help="Only this locale."),
    workspace: str = _workspace_option(),
    root: Path | None = _root_option(),
) -> None:
    """List versions awaiting review, newest first."""

    try:
        with _open_engine(workspace, root) as engine:
            queue = engine.get_pending_queue(locale)
    except CLI_ERRORS as exc:
        _fail(exc)

    for version in queue:
        marker = " (auto)" if version.auto_translated else ""
        typer.echo(
            f"{version.id}  {version.key} [{version.locale}] "
            f"v{version.version_number}{marker}: {version.value}"
        )
    typer.echo(f"{len(queue)} pending")


@app.command("history")
def history_command(
    key: str = typer.Argument(..., help="Translation key."),
    locale: str = typer.Argument(..., help="Locale of the chain."),
    workspace: str = _workspace_option(),
    root: Path | None = _root_option(),
) -> None:
    """Show every version of a key in one locale, newest first."""

    try:
        with _open_engine(workspace, root) as engine:
            versions = engine.get_history(key, locale)
    except CLI_ERRORS as exc:
        _fail(exc)

    for version in versions:
        typer.echo(f"v{version.version_number} {version.status:<8} {version.value}")


@app.command("cleanup")
def cleanup_command(
    strategy: str = typer.Option(
        ...,
        "--strategy",
        help=f"One of: {', '.join(CLEANUP_STRATEGIES)}.",
    ),
    workspace: str = _workspace_option(),
    root: Path | None = _root_option(),
) -> None:
    """Purge or repair keys corrupted by object stringification."""

    try:
        with _open_engine(workspace, root) as engine:
            report = engine.cleanup_corrupted_keys(strategy)
    except CLI_ERRORS as exc:
        _fail(exc)

    typer.echo(f"Corrupted keys found: {report.found}")
    if report.strategy == "purge":
        typer.echo(f"Versions deleted: {report.deleted}")
    else:
        typer.echo(f"Versions cleaned: {report.cleaned}")
        typer.echo(f"Versions failed: {report.failed}")


@app.command("stats")
def stats_command(
    workspace: str = _workspace_option(),
    root: Path | None = _root_option(),
) -> None:
    """Show per-locale translation progress."""

    try:
        with _open_engine(workspace, root) as engine:
            statistics = engine.get_statistics()
    except CLI_ERRORS as exc:
        _fail(exc)

    for entry in statistics:
        typer.echo(
            f"{entry.locale}: {entry.approved}/{entry.total_keys} approved "
            f"({entry.completion:.1f}%), {entry.pending} pending, {entry.missing} missing"
        )


@app.command("import-json")
def import_json_command(
    locale: str = typer.Argument(..., help="Locale of the file's values."),
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Nested JSON file."),
    approve: bool = typer.Option(False, "--approve", help="Approve imported versions."),
    actor: str | None = typer.Option(None, "--actor", help="Who performs the import."),
    workspace: str = _workspace_option(),
    root: Path | None = _root_option(),
) -> None:
    """Propose a version for every changed key in a nested JSON file."""

    try:
        payload = json.loads(file.read_text(encoding="utf-8"))
        if not isinstance(payload, dict):
            raise ValueError("Import file must contain a JSON object")
        with _open_engine(workspace, root) as engine:
            result = engine.import_json(locale, payload, approve=approve, created_by=actor)
    except CLI_ERRORS as exc:
        _fail(exc)

    typer.echo(f"Created: {result.created}")
    typer.echo(f"Updated: {result.updated}")
    typer.echo(f"Skipped: {result.skipped}")
    for error in result.errors:
        typer.secho(error, fg=typer.colors.YELLOW, err=True)


@app.command("export")
def export_command(
    locale: str = typer.Argument(..., help="Locale to export."),
    file_format: str = typer.Option(
        "json", "--format", help=f"One of: {', '.join(EXPORT_FORMATS)}."
    ),
    output_dir: Path | None = typer.Option(
        None,
        "--output-dir",
        help="Directory for the export. Defaults to the workspace exports folder.",
        file_okay=False,
    ),
    workspace: str = _workspace_option(),
    root: Path | None = _root_option(),
) -> None:
    """Write the resolved set of a locale to a file."""

    try:
        with _open_engine(workspace, root) as engine:
            exported = engine.export_translations(locale, file_format, output_dir)
    except CLI_ERRORS as exc:
        _fail(exc)

    typer.echo(f"Exported {exported.row_count} keys to {exported.path}")


if __name__ == "__main__":
    app()
