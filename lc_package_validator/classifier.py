"""
Keyword document classifier for uploads that arrive without a declared type.

Deliberately crude: the first keyword group found in the lower-cased text
wins. Anything it cannot place is returned as None and the caller decides
what to do with it.
"""

from __future__ import annotations

from typing import Optional

from .models import DocumentType

# Priority order matters: an LC quotes "bill of lading" and "invoice" in its
# document requirements, so it has to be recognised first.
KEYWORD_RULES: list[tuple[DocumentType, tuple[str, ...]]] = [
    (DocumentType.LETTER_OF_CREDIT, ("letter of credit", "l/c")),
    (DocumentType.BILL_OF_LADING, ("bill of lading", "b/l")),
    (DocumentType.COMMERCIAL_INVOICE, ("invoice",)),
    (DocumentType.PACKING_LIST, ("packing",)),
    (DocumentType.CERTIFICATE_OF_ORIGIN, ("origin",)),
]


def classify_document(text: str) -> Optional[DocumentType]:
    """Guess the document type from its text, or None if no keyword matches."""
    lowered = text.lower()
    for document_type, keywords in KEYWORD_RULES:
        if any(keyword in lowered for keyword in keywords):
            return document_type
    return None
