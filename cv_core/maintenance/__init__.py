"""Maintenance passes over stored translation data."""

from cv_core.maintenance.corruption import CorruptionScanner, RepairReport, clean_key

__all__ = ["CorruptionScanner", "RepairReport", "clean_key"]
