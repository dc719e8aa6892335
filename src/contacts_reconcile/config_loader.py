from __future__ import annotations

import argparse
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml  # type: ignore[import-untyped]

from .errors import ConfigError


@dataclass
class StoreConfig:
    people_csv: Optional[Path] = None


@dataclass
class NormalizationConfig:
    validate_emails: bool = False


@dataclass
class MatchingConfig:
    max_edit_distance: int = 2


@dataclass
class DedupeConfig:
    conflict_policy: str = "merge"


@dataclass
class ImportingConfig:
    default_relationship: str = "acquaintance"
    provenance_tag: str = "imported-from-contacts"
    fallback_first_name: str = "Unknown"


@dataclass
class ListenerConfig:
    interval_seconds: float = 30.0


@dataclass
class LoggingConfig:
    level: str = "WARNING"
    format: Optional[str] = None


@dataclass
class PipelineConfig:
    inputs: Dict[str, Optional[str]]
    store: StoreConfig
    normalization: NormalizationConfig
    matching: MatchingConfig
    dedupe: DedupeConfig
    importing: ImportingConfig
    listener: ListenerConfig
    logging: LoggingConfig


def _load_yaml(path: Optional[str]) -> Dict[str, Any]:
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except OSError as exc:
        raise ConfigError(f"could not read config {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"config {path} must be a mapping at the top level")
    return data


def _first_set(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


def load_pipeline_config(args: argparse.Namespace) -> PipelineConfig:
    config_data = _load_yaml(getattr(args, "config", None))
    inputs = config_data.get("inputs", {}) or {}
    store_cfg = config_data.get("store", {}) or {}
    normalization_cfg = config_data.get("normalization", {}) or {}
    matching_cfg = config_data.get("matching", {}) or {}
    dedupe_cfg = config_data.get("dedupe", {}) or {}
    importing_cfg = config_data.get("importing", {}) or {}
    listener_cfg = config_data.get("listener", {}) or {}
    logging_cfg = config_data.get("logging", {}) or {}

    people_csv = getattr(args, "people_csv", None) or store_cfg.get("people_csv")
    store = StoreConfig(people_csv=Path(people_csv) if people_csv else None)

    normalization = NormalizationConfig(
        validate_emails=bool(
            _first_set(
                getattr(args, "validate_emails", None),
                normalization_cfg.get("validate_emails"),
                False,
            )
        ),
    )

    max_edit_distance = _first_set(
        getattr(args, "max_edit_distance", None), matching_cfg.get("max_edit_distance"), 2
    )
    try:
        max_edit_distance = int(max_edit_distance)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"matching.max_edit_distance must be an integer: {exc}") from exc
    if max_edit_distance < 0:
        raise ConfigError("matching.max_edit_distance must not be negative")
    matching = MatchingConfig(max_edit_distance=max_edit_distance)

    conflict_policy = str(
        getattr(args, "conflict_policy", None) or dedupe_cfg.get("conflict_policy") or "merge"
    ).lower()
    if conflict_policy not in ("merge", "first"):
        raise ConfigError(f"dedupe.conflict_policy must be 'merge' or 'first', got {conflict_policy!r}")
    dedupe = DedupeConfig(conflict_policy=conflict_policy)

    importing = ImportingConfig(
        default_relationship=importing_cfg.get("default_relationship", "acquaintance"),
        provenance_tag=importing_cfg.get("provenance_tag", "imported-from-contacts"),
        fallback_first_name=importing_cfg.get("fallback_first_name", "Unknown"),
    )

    interval = _first_set(
        getattr(args, "interval", None), listener_cfg.get("interval_seconds"), 30.0
    )
    try:
        interval = float(interval)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"listener.interval_seconds must be a number: {exc}") from exc
    if interval <= 0:
        raise ConfigError("listener.interval_seconds must be positive")
    listener = ListenerConfig(interval_seconds=interval)

    arg_level = getattr(args, "log_level", None)
    effective_level = (arg_level or logging_cfg.get("level") or "WARNING").upper()
    logging_config = LoggingConfig(level=effective_level, format=logging_cfg.get("format"))

    resolved_inputs = {
        "contacts_csv": getattr(args, "contacts_csv", None) or inputs.get("contacts_csv"),
        "contacts_vcf": getattr(args, "contacts_vcf", None) or inputs.get("contacts_vcf"),
        "contacts_csv_header": getattr(args, "contacts_csv_header", None)
        or inputs.get("contacts_csv_header"),
    }

    return PipelineConfig(
        inputs=resolved_inputs,
        store=store,
        normalization=normalization,
        matching=matching,
        dedupe=dedupe,
        importing=importing,
        listener=listener,
        logging=logging_config,
    )
