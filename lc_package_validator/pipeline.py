"""
Package validation pipeline - orchestrates the full workflow.

Flow:
  ┌───────────────────┐
  │ Package documents │
  └─────────┬─────────┘
            │
  ┌─────────▼─────────┐
  │ Extract (LLM) x N │   ← bounded concurrency, one call per document
  └─────────┬─────────┘
            │
  ┌─────────▼─────────┐
  │     Assemble      │   ← defensive parse, regex dates override
  └─────────┬─────────┘
            │   (all documents gathered before going on)
  ┌─────────▼─────────┐
  │ Payment-mode gate │   ← LC present? picks the rule set
  └─────────┬─────────┘
            │
  ┌─────────▼─────────┐
  │  Cross-reference  │   ← pure code, one comparator fan-out
  └─────────┬─────────┘
            │
  ┌─────────▼─────────┐
  │      Verdict      │   ← GO / WAIT / NO_GO + recommendation
  └─────────┬─────────┘
            │
  ┌─────────▼─────────┐
  │      Record       │   ← best-effort, never changes the verdict
  └───────────────────┘

Design principles:
  - Extraction is optional (no API key = deterministic dates only).
  - One failing document degrades to WAIT; it never aborts the package.
  - The cross-reference stage sees the complete, frozen document list.
  - Collaborators are injected, so every stage runs offline under test.
"""

from __future__ import annotations

import logging
import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Iterable, Optional

from .assembler import assemble_document_result
from .comparator import GoodsComparator, OpenAIGoodsComparator
from .config import Settings
from .exceptions import ExtractionError
from .extractor_llm import FieldExtractor, OpenAIFieldExtractor
from .models import DocumentInput, DocumentResult, PackageInput, PackageVerdict
from .payment_mode import active_rules, determine_payment_mode
from .persistence import (
    Embedder,
    JsonlPackageStore,
    OpenAIEmbedder,
    PackageStore,
    record_package,
)
from .rules import DocumentPackage, RuleContext, run_rules
from .verdict import aggregate_verdict

logger = logging.getLogger(__name__)


class PackageValidationPipeline:
    """Validates a complete document package.

    Usage:
        pipeline = PackageValidationPipeline()
        verdict = pipeline.run(package_input)
        if verdict.overall_verdict != Verdict.GO:
            for issue in verdict.cross_reference_issues:
                print(issue.description)
    """

    def __init__(
        self,
        settings: Settings | None = None,
        extractor: FieldExtractor | None = None,
        comparator: GoodsComparator | None = None,
        store: PackageStore | None = None,
        embedder: Embedder | None = None,
        today: date | None = None,
    ):
        self.settings = settings or Settings.from_env()
        self.extractor = extractor or OpenAIFieldExtractor(self.settings)
        self.comparator = comparator or OpenAIGoodsComparator(self.settings)

        if store is None and self.settings.store_path:
            store = JsonlPackageStore(self.settings.store_path)
        self.store = store
        if embedder is None and store is not None:
            embedder = OpenAIEmbedder(self.settings)
        self.embedder = embedder
        self._today = today

    def run(self, package: PackageInput) -> PackageVerdict:
        """Execute the full pipeline on one package.

        Args:
            package: The documents plus client identifier and channel.

        Returns:
            PackageVerdict. Always a verdict: incomplete information
            yields WAIT, never an exception.
        """
        logger.info(
            "Validating package for %s: %d document(s)",
            package.client_identifier,
            len(package.documents),
        )
        # ── Step 1: Extract + assemble every document ───────────────
        results = self.extract_documents(package.documents)

        # ── Step 2: Cross-reference + verdict ───────────────────────
        verdict = self.evaluate(results)

        # ── Step 3: Hand off to persistence ─────────────────────────
        if self.store is not None:
            record_package(verdict, package, self.store, self.embedder)
        return verdict

    def extract_documents(self, documents: Iterable[DocumentInput]) -> list[DocumentResult]:
        """Extract all documents concurrently; results keep input order."""
        documents = list(documents)
        if not documents:
            return []
        workers = min(self.settings.extraction_concurrency, len(documents))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="extract") as pool:
            return list(pool.map(self._extract_one, documents))

    def _extract_one(self, document: DocumentInput) -> DocumentResult:
        response: Optional[str]
        try:
            response = self.extractor.extract(document.type, document.text)
        except ExtractionError as e:
            logger.warning(
                "Extraction failed for %s (%s) - deterministic fallback",
                document.type.value,
                e,
            )
            response = None
        except Exception:  # any extractor failure degrades this document only
            logger.exception(
                "Extractor raised for %s - deterministic fallback",
                document.type.value,
            )
            response = None
        return assemble_document_result(document.type, document.text, response)

    def evaluate(
        self,
        results: list[DocumentResult],
        package_id: str | None = None,
    ) -> PackageVerdict:
        """Cross-reference a complete set of document results and roll up the verdict."""
        mode = determine_payment_mode(results)
        context = RuleContext(
            today=self._today or date.today(),
            comparator=self.comparator,
            comparator_concurrency=self.settings.comparator_concurrency,
            comparator_timeout=self.settings.comparator_timeout,
        )
        issues = run_rules(DocumentPackage(results), active_rules(mode), context)
        overall, recommendation = aggregate_verdict(results, issues)

        logger.info(
            "Payment mode %s: %d cross-reference issue(s), verdict %s",
            mode.value,
            len(issues),
            overall.value,
        )
        return PackageVerdict(
            package_id=package_id or str(uuid.uuid4()),
            overall_verdict=overall,
            document_results=results,
            cross_reference_issues=issues,
            recommendation=recommendation,
            payment_mode=mode,
        )
