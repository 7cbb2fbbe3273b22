from __future__ import annotations

import json
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

import pandas as pd

from cv_core.errors import ValidationError
from cv_core.i18n.fallback import ResolvedTranslationSet
from cv_core.io.json_io import unflatten

EXPORT_FORMATS = ("json", "csv", "xlsx")

_SAFE_CHARS = re.compile(r"[^a-zA-Z0-9_-]+")


@dataclass(slots=True)
class ExportResult:
    path: Path
    row_count: int
    file_format: str


def _utc_timestamp_token() -> str:
    return datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")


def _safe_fragment(value: str) -> str:
    cleaned = _SAFE_CHARS.sub("_", value.strip())
    return cleaned.strip("_") or "export"


def export_translations(
    resolved: ResolvedTranslationSet,
    *,
    file_format: str,
    output_dir: Path,
    filename_prefix: str = "translations",
) -> ExportResult:
    normalized_format = file_format.strip().lower()
    if normalized_format not in EXPORT_FORMATS:
        raise ValidationError("file_format must be 'json', 'csv' or 'xlsx'")

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    filename = (
        f"{_safe_fragment(filename_prefix)}_"
        f"{_safe_fragment(resolved.locale)}_"
        f"{_utc_timestamp_token()}."
        f"{normalized_format}"
    )
    output_path = output_dir / filename

    entries = resolved.entries()
    if normalized_format == "json":
        payload = unflatten({key: value for key, value, _ in entries})
        with output_path.open("w", encoding="utf-8") as handle:
            json.dump(payload, handle, ensure_ascii=False, indent=2, sort_keys=True)
    else:
        dataframe = pd.DataFrame.from_records(
            entries, columns=["key", "value", "source_locale"]
        )
        if normalized_format == "csv":
            dataframe.to_csv(output_path, index=False)
        else:
            dataframe.to_excel(output_path, index=False, engine="openpyxl")

    return ExportResult(
        path=output_path,
        row_count=len(entries),
        file_format=normalized_format,
    )
