from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from cv_core.errors import EngineError
from cv_core.i18n.locale import normalize_locale
from cv_core.versions.version_store import VersionStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ImportResult:
    created: int = 0
    updated: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)


def flatten(nested: Mapping[str, Any], prefix: str = "") -> dict[str, str]:
    """Dot-joined keys for every string leaf; other leaves are ignored."""

    flat: dict[str, str] = {}
    for key, value in nested.items():
        full_key = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            flat.update(flatten(value, full_key))
        elif isinstance(value, str):
            flat[full_key] = value
    return flat


def unflatten(flat: Mapping[str, Any]) -> dict[str, Any]:
    """Nest dot keys into groups.

    A group whose name is also a leaf key stays flat under its dotted keys,
    so ``card`` and ``card.title`` both survive and flatten back unchanged.
    """

    leaves: dict[str, Any] = {}
    groups: dict[str, dict[str, Any]] = {}
    for key, value in flat.items():
        head, separator, rest = key.partition(".")
        if separator:
            groups.setdefault(head, {})[rest] = value
        else:
            leaves[head] = value

    nested: dict[str, Any] = dict(leaves)
    for head, children in groups.items():
        if head in leaves:
            nested.update({f"{head}.{rest}": value for rest, value in children.items()})
        else:
            nested[head] = unflatten(children)
    return nested


def import_json(
    versions: VersionStore,
    locale: str,
    nested: Mapping[str, Any],
    *,
    approve: bool = False,
    created_by: str | None = None,
) -> ImportResult:
    """Propose a version for every key whose value differs from the approved one."""

    target_locale = normalize_locale(locale)
    result = ImportResult()
    for key, value in flatten(nested).items():
        try:
            current = versions.current_approved(key, target_locale)
            if current is not None and current.value == value:
                result.skipped += 1
                continue
            version_id = versions.propose_version(
                key, target_locale, value, created_by=created_by
            )
            if approve:
                versions.approve(version_id, "Imported", reviewed_by=created_by)
        except EngineError as exc:
            result.errors.append(f"{key}: {exc}")
            continue

        if current is None:
            result.created += 1
        else:
            result.updated += 1

    logger.info(
        "Imported %s: %d created, %d updated, %d skipped, %d errors",
        target_locale,
        result.created,
        result.updated,
        result.skipped,
        len(result.errors),
    )
    return result
