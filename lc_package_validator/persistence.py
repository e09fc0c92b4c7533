"""
Persistence hand-off for finished verdicts.

Recording is best-effort. A verdict that was computed is returned to the
caller whether or not it could be stored or embedded; failures are logged
for an operator to pick up.

Stores:
  - JsonlPackageStore: one JSON object per line, append-only
  - InMemoryPackageStore: keeps records in a list, nothing written to disk
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Protocol

from openai import OpenAI, OpenAIError

from .config import Settings
from .exceptions import PersistenceError
from .models import PackageInput, PackageVerdict

logger = logging.getLogger(__name__)

ADVICE_SUMMARY_LIMIT = 500


class PackageStore(Protocol):
    def save(self, record: dict[str, Any]) -> None:
        ...


class Embedder(Protocol):
    def embed(self, text: str) -> Optional[list[float]]:
        ...


# ─── Stores ──────────────────────────────────────────────────────────


class JsonlPackageStore:
    """Append records to a JSON Lines file."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def save(self, record: dict[str, Any]) -> None:
        line = json.dumps(record, ensure_ascii=False)
        try:
            with self._lock:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with self.path.open("a", encoding="utf-8") as fh:
                    fh.write(line + "\n")
        except OSError as e:
            raise PersistenceError(
                f"Could not write package record to {self.path}: {e}",
                {"path": str(self.path)},
            ) from e

    def load(self) -> list[dict[str, Any]]:
        if not self.path.exists():
            return []
        with self.path.open(encoding="utf-8") as fh:
            return [json.loads(line) for line in fh if line.strip()]


class InMemoryPackageStore:
    def __init__(self) -> None:
        self.records: list[dict[str, Any]] = []

    def save(self, record: dict[str, Any]) -> None:
        self.records.append(record)


# ─── Embeddings ──────────────────────────────────────────────────────


class OpenAIEmbedder:
    """Embeds the package summary for later similar-case search."""

    def __init__(self, settings: Settings, client: OpenAI | None = None):
        self.model = settings.embedding_model
        if client is not None:
            self._client: OpenAI | None = client
        elif settings.online:
            self._client = OpenAI(api_key=settings.openai_api_key)
        else:
            self._client = None

    def embed(self, text: str) -> Optional[list[float]]:
        """Return the embedding vector, or None in offline mode.

        Raises:
            PersistenceError: the embeddings call failed.
        """
        if self._client is None:
            return None
        try:
            response = self._client.embeddings.create(model=self.model, input=text)
        except OpenAIError as e:
            raise PersistenceError(f"Embedding failed: {e}") from e
        return list(response.data[0].embedding)


# ─── Recording ───────────────────────────────────────────────────────


def build_summary_text(verdict: PackageVerdict) -> str:
    """Plain-text summary used as the embedding input."""
    return "\n".join(
        [
            f"Package validation: {verdict.overall_verdict.value}",
            f"Documents: {', '.join(r.type.value for r in verdict.document_results)}",
            "Cross-reference issues: "
            + "; ".join(i.description for i in verdict.cross_reference_issues),
            verdict.recommendation,
        ]
    )


def build_record(
    verdict: PackageVerdict,
    package: PackageInput,
    embedding: Optional[list[float]] = None,
) -> dict[str, Any]:
    """The stored shape: verdict, per-document outcome, issues, summary, embedding."""
    return {
        "id": verdict.package_id,
        "clientIdentifier": package.client_identifier,
        "channel": package.channel.value,
        "paymentMode": verdict.payment_mode.value,
        "verdict": verdict.overall_verdict.value,
        "documents": [
            {
                "type": r.type.value,
                "verdict": r.verdict.value,
                "issues": [i.model_dump(mode="json", by_alias=True) for i in r.issues],
            }
            for r in verdict.document_results
        ],
        "crossReferenceIssues": [
            i.model_dump(mode="json", by_alias=True) for i in verdict.cross_reference_issues
        ],
        "adviceSummary": verdict.recommendation[:ADVICE_SUMMARY_LIMIT],
        "embedding": embedding,
        "createdAt": datetime.now(timezone.utc).isoformat(),
    }


def record_package(
    verdict: PackageVerdict,
    package: PackageInput,
    store: PackageStore,
    embedder: Optional[Embedder] = None,
) -> bool:
    """Embed and store a finished verdict. Returns True if it was stored.

    Never raises for a persistence failure: the verdict stands regardless.
    """
    embedding: Optional[list[float]] = None
    if embedder is not None:
        try:
            embedding = embedder.embed(build_summary_text(verdict))
        except PersistenceError as e:
            logger.error("Embedding failed for package %s: %s", verdict.package_id, e)

    try:
        store.save(build_record(verdict, package, embedding))
    except PersistenceError as e:
        logger.error("Could not record package %s: %s", verdict.package_id, e)
        return False

    logger.info("Recorded package %s (%s)", verdict.package_id, verdict.overall_verdict.value)
    return True
