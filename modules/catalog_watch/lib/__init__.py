# modules/catalog_watch/lib/__init__.py
from __future__ import annotations

# Re-export commonly-used types for convenience
from .config import ConfigError, Settings
from .differ import diff
from .engine import run_once
from .extractor import extract
from .models import ExtractionRule, Outcome, Record, RunSummary, SiteDescriptor, SiteResult

__all__ = [
    "ConfigError",
    "ExtractionRule",
    "Outcome",
    "Record",
    "RunSummary",
    "Settings",
    "SiteDescriptor",
    "SiteResult",
    "diff",
    "extract",
    "run_once",
]
