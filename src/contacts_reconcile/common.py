from __future__ import annotations

from typing import Any, Dict

from .config_loader import PipelineConfig, load_pipeline_config
from .dedupe import BatchDeduplicator, dedupe
from .errors import (
    ConfigError,
    ReconcileError,
    SourceUnavailableError,
    StoreReadError,
    StoreWriteError,
)
from .listener import ContactsChangeListener, fingerprint
from .models import (
    CandidateRecord,
    DedupeConflict,
    DedupeReport,
    ImportResult,
    PersonEntity,
    RawRecord,
)
from .normalization import NormalizationSettings, normalize, normalize_name_key
from .pipeline import ContactsImporter
from .reconcile import ImportSettings, StoreReconciler, reconcile
from .similarity import (
    NameMatcher,
    emails_match,
    exact_name_match,
    fuzzy_name_match,
    levenshtein_distance,
)
from .sources import CsvContactSource, StaticContactSource, VCardContactSource
from .stores import CsvPersonStore, InMemoryPersonStore

__all__ = [
    "BatchDeduplicator",
    "CandidateRecord",
    "ConfigError",
    "ContactsChangeListener",
    "ContactsImporter",
    "CsvContactSource",
    "CsvPersonStore",
    "DedupeConflict",
    "DedupeReport",
    "ImportResult",
    "ImportSettings",
    "InMemoryPersonStore",
    "NameMatcher",
    "NormalizationSettings",
    "PersonEntity",
    "PipelineConfig",
    "RawRecord",
    "ReconcileError",
    "SourceUnavailableError",
    "StaticContactSource",
    "StoreReconciler",
    "StoreReadError",
    "StoreWriteError",
    "VCardContactSource",
    "dedupe",
    "emails_match",
    "exact_name_match",
    "fingerprint",
    "fuzzy_name_match",
    "levenshtein_distance",
    "load_config",
    "load_pipeline_config",
    "normalize",
    "normalize_name_key",
    "reconcile",
    "to_raw_record",
]


def load_config(args: Any) -> PipelineConfig:
    return load_pipeline_config(args)


def to_raw_record(payload: Dict[str, Any]) -> RawRecord:
    return RawRecord.from_mapping(payload)
