"""Workspace folders: one config file and one SQLite database per workspace."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from sqlalchemy import text

from cv_core.constants import (
    WORKSPACE_CONFIG_FILENAME,
    WORKSPACE_DB_FILENAME,
    WORKSPACE_SUBDIRS,
    default_workspaces_root,
)
from cv_core.db.engine import initialize_database
from cv_core.db.migrations import get_schema_version
from cv_core.errors import ValidationError
from cv_core.project.config import EngineConfig, read_config, write_config
from cv_core.store.procedures import utc_now_iso

_NON_ALNUM_PATTERN = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    slug = _NON_ALNUM_PATTERN.sub("-", name.strip().lower()).strip("-")
    if not slug:
        raise ValidationError(f"Unable to generate a valid slug from {name!r}")
    return slug


@dataclass(slots=True, frozen=True)
class WorkspaceLayout:
    path: Path

    @classmethod
    def for_slug(cls, slug: str, root: Path | None = None) -> WorkspaceLayout:
        workspaces_root = default_workspaces_root() if root is None else Path(root).expanduser()
        return cls(workspaces_root / slugify(slug))

    @property
    def root(self) -> Path:
        return self.path.parent

    @property
    def slug(self) -> str:
        return self.path.name

    @property
    def db_path(self) -> Path:
        return self.path / WORKSPACE_DB_FILENAME

    @property
    def config_path(self) -> Path:
        return self.path / WORKSPACE_CONFIG_FILENAME

    @property
    def exports_dir(self) -> Path:
        return self.path / "exports"

    def create(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        self.path.mkdir(exist_ok=False)
        for dirname in WORKSPACE_SUBDIRS:
            (self.path / dirname).mkdir(exist_ok=True)


@dataclass(slots=True)
class CreatedWorkspace:
    name: str
    layout: WorkspaceLayout

    @property
    def slug(self) -> str:
        return self.layout.slug

    @property
    def root(self) -> Path:
        return self.layout.root

    @property
    def workspace_path(self) -> Path:
        return self.layout.path

    @property
    def db_path(self) -> Path:
        return self.layout.db_path

    @property
    def config_path(self) -> Path:
        return self.layout.config_path


@dataclass(slots=True)
class WorkspaceInfo:
    layout: WorkspaceLayout
    config: EngineConfig
    schema_version: int
    active_languages: list[str]

    @property
    def name(self) -> str:
        return self.config.workspace_name


def init_workspace(
    name: str,
    *,
    slug: str | None = None,
    default_language: str = "en",
    locales: list[str] | None = None,
    root: Path | None = None,
) -> CreatedWorkspace:
    """Create the workspace folder, write its config and register its locales."""

    layout = WorkspaceLayout.for_slug(slug if slug is not None else name, root)
    if layout.path.exists():
        raise FileExistsError(f"Workspace path already exists: {layout.path}")

    # validate before touching the filesystem
    config = EngineConfig(
        workspace_name=name,
        default_language=default_language,
        enabled_locales=[default_language, *(locales or [])],
    )

    layout.create()
    write_config(layout.config_path, config)

    engine = initialize_database(layout.db_path)
    now = utc_now_iso()
    with engine.begin() as connection:
        connection.execute(
            text(
                """
                INSERT INTO languages(code, name, native_name, is_active, created_at)
                VALUES (:code, :code, NULL, 1, :created_at)
                ON CONFLICT(code) DO UPDATE SET is_active = 1
                """
            ),
            [{"code": locale, "created_at": now} for locale in config.enabled_locales],
        )
    engine.dispose()

    return CreatedWorkspace(name=name, layout=layout)


def load_workspace(slug: str, *, root: Path | None = None) -> WorkspaceInfo:
    layout = WorkspaceLayout.for_slug(slug, root)
    if not layout.config_path.exists():
        raise FileNotFoundError(f"Workspace does not exist: {layout.path}")

    config = read_config(layout.config_path)
    engine = initialize_database(layout.db_path)
    with engine.connect() as connection:
        schema_version = get_schema_version(connection)
        codes = connection.execute(
            text("SELECT code FROM languages WHERE is_active = 1 ORDER BY code")
        ).scalars().all()
    engine.dispose()

    return WorkspaceInfo(
        layout=layout,
        config=config,
        schema_version=schema_version,
        active_languages=list(codes),
    )
