"""
LC Package Validator - cross-document checks for trade-finance presentations.

Architecture: Extraction (LLM) + Deterministic dates -> Cross-reference rules -> Verdict
Philosophy:  Let the model read the documents. Let only code compare them.
"""

__version__ = "1.0.0"
