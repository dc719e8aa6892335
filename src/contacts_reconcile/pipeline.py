from __future__ import annotations

import logging
from typing import List, Optional

from .config_loader import PipelineConfig
from .dedupe import CONFLICT_MERGE, BatchDeduplicator
from .errors import ConfigError, SourceUnavailableError
from .interfaces import ContactSource, PersonStore
from .models import DedupeReport, ImportResult, RawRecord
from .normalization import NormalizationSettings, normalize
from .reconcile import ImportSettings, StoreReconciler
from .similarity import NameMatcher
from .sources import CsvContactSource, VCardContactSource
from .stores import CsvPersonStore, InMemoryPersonStore

logger = logging.getLogger(__name__)


class ContactsImporter:
    """Runs the whole import: fetch, normalize, dedupe, reconcile."""

    def __init__(
        self,
        source: ContactSource,
        store: PersonStore,
        normalization: Optional[NormalizationSettings] = None,
        matcher: Optional[NameMatcher] = None,
        conflict_policy: str = CONFLICT_MERGE,
        import_settings: Optional[ImportSettings] = None,
    ):
        self.source = source
        self.store = store
        self.normalization = normalization or NormalizationSettings()
        self.matcher = matcher or NameMatcher()
        self.deduplicator = BatchDeduplicator(self.matcher, conflict_policy)
        self.reconciler = StoreReconciler(store, import_settings, self.matcher)
        self.last_report: Optional[DedupeReport] = None

    @classmethod
    def from_config(
        cls,
        config: PipelineConfig,
        source: Optional[ContactSource] = None,
        store: Optional[PersonStore] = None,
    ) -> "ContactsImporter":
        return cls(
            source=source or build_source(config),
            store=store or build_store(config),
            normalization=NormalizationSettings(
                validate_emails=config.normalization.validate_emails
            ),
            matcher=NameMatcher(max_distance=config.matching.max_edit_distance),
            conflict_policy=config.dedupe.conflict_policy,
            import_settings=ImportSettings(
                default_relationship=config.importing.default_relationship,
                provenance_tag=config.importing.provenance_tag,
                fallback_first_name=config.importing.fallback_first_name,
            ),
        )

    def fetch(self) -> List[RawRecord]:
        try:
            return list(self.source.fetch_all())
        except SourceUnavailableError:
            raise
        except Exception as exc:
            raise SourceUnavailableError(f"contact source failed: {exc}") from exc

    def run_once(self) -> ImportResult:
        raw_records = self.fetch()
        logger.info("Found %d contact(s)", len(raw_records))

        candidates = normalize(raw_records, self.normalization)
        report = self.deduplicator.run(candidates)
        self.last_report = report
        logger.info(
            "After deduplication: %d contact(s), %d conflict(s)",
            len(report.candidates),
            len(report.conflicts),
        )

        existing = self.store.get_all()
        return self.reconciler.reconcile(report.candidates, existing)


def build_source(config: PipelineConfig) -> ContactSource:
    csv_path = config.inputs.get("contacts_csv")
    vcf_path = config.inputs.get("contacts_vcf")
    if csv_path and vcf_path:
        raise ConfigError("configure either contacts_csv or contacts_vcf, not both")
    if csv_path:
        return CsvContactSource(csv_path, config.inputs.get("contacts_csv_header"))
    if vcf_path:
        return VCardContactSource(vcf_path)
    raise ConfigError("no contact source configured (contacts_csv or contacts_vcf)")


def build_store(config: PipelineConfig) -> PersonStore:
    if config.store.people_csv:
        return CsvPersonStore(str(config.store.people_csv))
    logger.warning("No people_csv configured; persons are kept in memory only")
    return InMemoryPersonStore()
