"""Workspace layout and configuration."""

from cv_core.project.config import EngineConfig, read_config, write_config
from cv_core.project.workspace import (
    CreatedWorkspace,
    WorkspaceInfo,
    WorkspaceLayout,
    init_workspace,
    load_workspace,
    slugify,
)

__all__ = [
    "CreatedWorkspace",
    "EngineConfig",
    "WorkspaceInfo",
    "WorkspaceLayout",
    "init_workspace",
    "load_workspace",
    "read_config",
    "slugify",
    "write_config",
]
