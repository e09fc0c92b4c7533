"""
Collaborator tests: OpenAI clients replaced by stubs, no network.

Covers the goods comparator, field extractor, embedder, stores and settings.
"""

from __future__ import annotations

import time
from types import SimpleNamespace

import pytest
from openai import OpenAIError

from lc_package_validator.comparator import (
    FAIL_CLOSED,
    GoodsComparison,
    OpenAIGoodsComparator,
    Strictness,
    compare_all,
    parse_comparison,
)
from lc_package_validator.config import Settings
from lc_package_validator.exceptions import (
    ComparatorError,
    ConfigurationError,
    ExtractionError,
    PersistenceError,
)
from lc_package_validator.extractor_llm import OpenAIFieldExtractor
from lc_package_validator.models import (
    Channel,
    CrossRefIssue,
    DocumentInput,
    DocumentResult,
    DocumentType,
    PackageInput,
    PackageVerdict,
    PaymentMode,
    Severity,
    Verdict,
)
from lc_package_validator.persistence import (
    InMemoryPackageStore,
    JsonlPackageStore,
    OpenAIEmbedder,
    build_record,
    record_package,
)


# ─── Stub OpenAI Client ──────────────────────────────────────────────


class StubChat:
    """Records create() kwargs and replies with fixed content (or raises)."""

    def __init__(self, content: str | None = None, error: Exception | None = None):
        self.content = content
        self.error = error
        self.requests: list[dict] = []

    def create(self, **kwargs):
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _chat_client(chat: StubChat) -> SimpleNamespace:
    return SimpleNamespace(chat=SimpleNamespace(completions=chat))


def _embedding_client(create) -> SimpleNamespace:
    return SimpleNamespace(embeddings=SimpleNamespace(create=create))


# ═══════════════════════════════════════════════════════════════════════
# GOODS COMPARATOR
# ═══════════════════════════════════════════════════════════════════════


class TestGoodsComparator:
    def test_answer_is_parsed(self):
        chat = StubChat('{"matches": false, "reason": "Invoice omits grade MURBAN"}')
        comparator = OpenAIGoodsComparator(Settings(), client=_chat_client(chat))
        result = comparator.compare("MURBAN CRUDE OIL", "CRUDE OIL", Strictness.STRICT)
        assert result == GoodsComparison(matches=False, reason="Invoice omits grade MURBAN")

        request = chat.requests[0]
        assert request["response_format"] == {"type": "json_object"}
        prompt = request["messages"][0]["content"]
        assert '"MURBAN CRUDE OIL"' in prompt
        assert "Article 18(c)" in prompt

    def test_lenient_rule_in_prompt(self):
        chat = StubChat('{"matches": true}')
        comparator = OpenAIGoodsComparator(Settings(), client=_chat_client(chat))
        comparator.compare("MURBAN CRUDE OIL", "CRUDE OIL", Strictness.LENIENT)
        assert "Article 19" in chat.requests[0]["messages"][0]["content"]

    def test_offline_raises(self):
        with pytest.raises(ComparatorError):
            OpenAIGoodsComparator(Settings()).compare("A", "B", Strictness.STRICT)

    def test_transport_error_raises(self):
        chat = StubChat(error=OpenAIError("connection reset"))
        comparator = OpenAIGoodsComparator(Settings(), client=_chat_client(chat))
        with pytest.raises(ComparatorError) as exc:
            comparator.compare("A", "B", Strictness.STRICT)
        assert exc.value.code == "COMPARATOR_FAILED"


class TestParseComparison:
    def test_code_fences_tolerated(self):
        assert parse_comparison('```json\n{"matches": true, "reason": "ok"}\n```').matches is True

    @pytest.mark.parametrize("content", ["", "yes they match", '{"reason": "no verdict"}', '{"matches": "sort of"}'])
    def test_unusable_answers(self, content):
        with pytest.raises(ComparatorError):
            parse_comparison(content)


class TestCompareAll:
    def test_results_follow_request_order(self):
        class Echo:
            def compare(self, lc_description, other_description, strictness):
                time.sleep(0.05 if other_description == "first" else 0)
                return GoodsComparison(matches=True, reason=other_description)

        others = [("first", Strictness.STRICT), ("second", Strictness.LENIENT), ("third", Strictness.LENIENT)]
        results = compare_all(Echo(), "LC", others, max_workers=3, timeout=5)
        assert [r.reason for r in results] == ["first", "second", "third"]

    def test_one_failure_does_not_sink_the_rest(self):
        class Flaky:
            def compare(self, lc_description, other_description, strictness):
                if other_description == "bad":
                    raise ComparatorError("garbage answer")
                return GoodsComparison(matches=True)

        results = compare_all(Flaky(), "LC", [("good", Strictness.LENIENT), ("bad", Strictness.STRICT)])
        assert results == [GoodsComparison(matches=True), FAIL_CLOSED]

    def test_nothing_to_compare(self):
        assert compare_all(object(), "LC", []) == []


# ═══════════════════════════════════════════════════════════════════════
# FIELD EXTRACTOR
# ═══════════════════════════════════════════════════════════════════════


class TestFieldExtractor:
    def test_offline_returns_none(self):
        extractor = OpenAIFieldExtractor(Settings())
        assert extractor.extract(DocumentType.BILL_OF_LADING, "BILL OF LADING") is None

    def test_returns_raw_content(self):
        chat = StubChat('{"verdict": "GO"}')
        extractor = OpenAIFieldExtractor(Settings(extraction_model="gpt-test"), client=_chat_client(chat))
        assert extractor.extract(DocumentType.BILL_OF_LADING, "B/L TEXT") == '{"verdict": "GO"}'

        request = chat.requests[0]
        assert request["model"] == "gpt-test"
        assert request["temperature"] == 0
        assert request["messages"][1]["content"].startswith("Document type: bill of lading")

    def test_empty_content_raises(self):
        extractor = OpenAIFieldExtractor(Settings(), client=_chat_client(StubChat(None)))
        with pytest.raises(ExtractionError):
            extractor.extract(DocumentType.LETTER_OF_CREDIT, "LC")

    def test_api_error_raises(self):
        chat = StubChat(error=OpenAIError("rate limited"))
        extractor = OpenAIFieldExtractor(Settings(), client=_chat_client(chat))
        with pytest.raises(ExtractionError) as exc:
            extractor.extract(DocumentType.LETTER_OF_CREDIT, "LC")
        assert exc.value.details == {"document_type": "letter_of_credit"}


# ═══════════════════════════════════════════════════════════════════════
# PERSISTENCE
# ═══════════════════════════════════════════════════════════════════════


def _verdict(recommendation: str = "Proceed.") -> PackageVerdict:
    return PackageVerdict(
        package_id="pkg-42",
        overall_verdict=Verdict.WAIT,
        document_results=[DocumentResult(type=DocumentType.BILL_OF_LADING, verdict=Verdict.GO)],
        cross_reference_issues=[
            CrossRefIssue(
                field="portOfDischarge",
                documents=["LC", "B/L"],
                values=["LC: Jebel Ali", "B/L: Dubai"],
                severity=Severity.MAJOR,
                description="Port of discharge mismatch across documents",
            )
        ],
        recommendation=recommendation,
        payment_mode=PaymentMode.LC,
    )


PACKAGE = PackageInput(
    documents=[DocumentInput(type=DocumentType.BILL_OF_LADING, text="BILL OF LADING")],
    client_identifier="+971500000000",
    channel=Channel.WHATSAPP,
)


class TestRecord:
    def test_record_shape(self):
        record = build_record(_verdict(), PACKAGE, [0.5])
        assert record["id"] == "pkg-42"
        assert record["channel"] == "whatsapp"
        assert record["verdict"] == "WAIT"
        assert record["documents"] == [{"type": "bill_of_lading", "verdict": "GO", "issues": []}]
        assert record["crossReferenceIssues"][0]["field"] == "portOfDischarge"
        assert record["embedding"] == [0.5]
        assert record["createdAt"]

    def test_advice_summary_is_truncated(self):
        record = build_record(_verdict("x" * 800), PACKAGE)
        assert len(record["adviceSummary"]) == 500

    def test_record_package_reports_outcome(self):
        store = InMemoryPackageStore()
        assert record_package(_verdict(), PACKAGE, store) is True
        assert len(store.records) == 1


class TestJsonlStore:
    def test_append_and_load(self, tmp_path):
        store = JsonlPackageStore(tmp_path / "nested" / "packages.jsonl")
        assert store.load() == []
        store.save({"id": "a"})
        store.save({"id": "b", "note": "Jebel Ali – UAE"})
        assert [r["id"] for r in store.load()] == ["a", "b"]

    def test_unwritable_path_raises(self, tmp_path):
        blocker = tmp_path / "not-a-directory"
        blocker.write_text("x")
        store = JsonlPackageStore(blocker / "packages.jsonl")
        with pytest.raises(PersistenceError):
            store.save({"id": "a"})

    def test_record_package_swallows_store_failure(self, tmp_path):
        blocker = tmp_path / "not-a-directory"
        blocker.write_text("x")
        store = JsonlPackageStore(blocker / "packages.jsonl")
        assert record_package(_verdict(), PACKAGE, store) is False


class TestEmbedder:
    def test_offline_returns_none(self):
        assert OpenAIEmbedder(Settings()).embed("summary") is None

    def test_returns_vector(self):
        def create(model, input):
            assert model == "text-embedding-3-small"
            return SimpleNamespace(data=[SimpleNamespace(embedding=(0.25, 0.75))])

        assert OpenAIEmbedder(Settings(), client=_embedding_client(create)).embed("summary") == [0.25, 0.75]

    def test_api_error_raises(self):
        def create(model, input):
            raise OpenAIError("quota")

        with pytest.raises(PersistenceError):
            OpenAIEmbedder(Settings(), client=_embedding_client(create)).embed("summary")


# ═══════════════════════════════════════════════════════════════════════
# SETTINGS
# ═══════════════════════════════════════════════════════════════════════


class TestSettings:
    def test_defaults(self):
        settings = Settings.from_env({})
        assert settings.online is False
        assert settings.extraction_concurrency == 5
        assert settings.comparator_timeout == 15.0
        assert settings.store_path is None
        assert settings.log_level == "INFO"

    def test_overrides(self):
        settings = Settings.from_env(
            {
                "OPENAI_API_KEY": "sk-test",
                "LCV_EXTRACTION_CONCURRENCY": "8",
                "LCV_COMPARATOR_TIMEOUT": "2.5",
                "LCV_STORE_PATH": "/var/lib/lcv/packages.jsonl",
                "LCV_LOG_LEVEL": "debug",
            }
        )
        assert settings.online is True
        assert settings.extraction_concurrency == 8
        assert settings.comparator_timeout == 2.5
        assert settings.store_path == "/var/lib/lcv/packages.jsonl"
        assert settings.log_level == "DEBUG"

    def test_empty_key_is_offline(self):
        assert Settings.from_env({"OPENAI_API_KEY": ""}).online is False

    @pytest.mark.parametrize(
        "name,value",
        [
            ("LCV_EXTRACTION_CONCURRENCY", "many"),
            ("LCV_COMPARATOR_CONCURRENCY", "0"),
            ("LCV_EXTRACTION_TIMEOUT", "-1"),
            ("LCV_COMPARATOR_TIMEOUT", "soon"),
        ],
    )
    def test_invalid_values(self, name, value):
        with pytest.raises(ConfigurationError) as exc:
            Settings.from_env({name: value})
        assert exc.value.details == {"name": name}

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("LCV_COMPARATOR_CONCURRENCY", "2")
        assert Settings.from_env().comparator_concurrency == 2
