"""
CLI entry point tests: offline sample run and package files.
"""

from __future__ import annotations

import json
from unittest.mock import patch

import main
import pytest

from lc_package_validator.models import DocumentType


class TestLoadPackage:
    def test_reads_camel_case_json(self, tmp_path):
        path = tmp_path / "package.json"
        path.write_text(
            json.dumps(
                {
                    "documents": [{"type": "bill_of_lading", "text": "BILL OF LADING"}],
                    "clientIdentifier": "ops@acme-petroleum.example",
                    "channel": "whatsapp",
                }
            ),
            encoding="utf-8",
        )
        package = main.load_package(str(path))
        assert package.documents[0].type == DocumentType.BILL_OF_LADING
        assert package.channel.value == "whatsapp"


class TestMain:
    def test_sample_package_runs_offline(self, capsys):
        # No API key: every document falls back to WAIT
        with patch("sys.argv", ["main.py"]), pytest.raises(SystemExit) as exc:
            main.main()
        assert exc.value.code == 1
        out = capsys.readouterr().out
        assert "LC PACKAGE VALIDATION REPORT" in out
        assert "Payment mode: lc" in out

    def test_print_verdict_exit_codes(self, make_pipeline, make_package, clean_payloads, capsys):
        pipeline = make_pipeline(clean_payloads)
        go = pipeline.run(make_package(DocumentType.LETTER_OF_CREDIT, DocumentType.BILL_OF_LADING))
        assert main.print_verdict(go) == 0

        clean_payloads[DocumentType.BILL_OF_LADING]["portOfDischarge"] = "Dubai, UAE"
        wait = make_pipeline(clean_payloads).run(
            make_package(DocumentType.LETTER_OF_CREDIT, DocumentType.BILL_OF_LADING)
        )
        assert main.print_verdict(wait) == 1
        assert "[MAJOR] portOfDischarge" in capsys.readouterr().out
