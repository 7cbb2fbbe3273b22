from __future__ import annotations

from pathlib import Path

CURRENT_SCHEMA_VERSION = 2
DEFAULT_WORKSPACES_DIRNAME = "workspaces"
WORKSPACE_DB_FILENAME = "content.db"
WORKSPACE_CONFIG_FILENAME = "config.yml"
WORKSPACE_SUBDIRS = ("imports", "exports")

DEFAULT_LANGUAGE = "en"
DEFAULT_ACTOR = "system"

# The hosted store returns at most this many rows per request.
STORE_ROW_CAP = 1000
BATCH_PAGE_SIZE = 1000
MAX_BATCHES = 50

CORRUPTION_MARKER = "[object Object]"
LOCALE_SEPARATOR = "-"

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"
VERSION_STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED)


def default_workspaces_root(cwd: Path | None = None) -> Path:
    base = cwd or Path.cwd()
    return base / DEFAULT_WORKSPACES_DIRNAME
