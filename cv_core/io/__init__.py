"""JSON import and JSON/CSV/XLSX export of translation sets."""

from cv_core.io.export import EXPORT_FORMATS, ExportResult, export_translations
from cv_core.io.json_io import ImportResult, flatten, import_json, unflatten

__all__ = [
    "EXPORT_FORMATS",
    "ExportResult",
    "ImportResult",
    "export_translations",
    "flatten",
    "import_json",
    "unflatten",
]
