"""
LC Package Validator - FastAPI Server
=====================================

RESTful API for validating trade-finance document packages.

Endpoints:
    POST /validate          Validate a package given as JSON
    POST /validate/files    Upload text files; types are guessed by keyword
    GET  /health            Health check / readiness probe

Run:
    uvicorn api:app --reload              # Dev (http://localhost:8000)
    uvicorn api:app --host 0.0.0.0        # Production

Docs:
    http://localhost:8000/docs             # Swagger UI (auto-generated)
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Form, HTTPException, UploadFile
from pydantic import BaseModel

from lc_package_validator import __version__
from lc_package_validator.classifier import classify_document
from lc_package_validator.config import Settings
from lc_package_validator.models import Channel, DocumentInput, PackageInput, PackageVerdict
from lc_package_validator.pipeline import PackageValidationPipeline

load_dotenv()

MAX_UPLOAD_BYTES = 1_048_576  # per file
MIN_DOCUMENT_CHARS = 10


# ─── Application Lifespan (pre-warm pipeline) ───────────────────────

_pipeline: PackageValidationPipeline | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Read settings and build the pipeline (and its API clients) on startup."""
    global _pipeline  # noqa: PLW0603
    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    _pipeline = PackageValidationPipeline(settings=settings)
    yield
    _pipeline = None


# ─── FastAPI App ─────────────────────────────────────────────────────

app = FastAPI(
    title="LC Package Validator API",
    description=(
        "Cross-document validation for letter-of-credit presentations. "
        "LLM field extraction, deterministic date parsing, code-based "
        "cross-reference rules and a GO / WAIT / NO_GO verdict."
    ),
    version=__version__,
    lifespan=lifespan,
)


class HealthResponse(BaseModel):
    status: str
    version: str
    extraction: str  # "online" or "offline"
    persistence: bool


# ─── Helpers ─────────────────────────────────────────────────────────


def _get_pipeline() -> PackageValidationPipeline:
    if _pipeline is None:
        raise HTTPException(status_code=503, detail="Pipeline not initialised")
    return _pipeline


async def _read_document(file: UploadFile) -> DocumentInput:
    """Decode one upload and classify it by keyword."""
    name = file.filename or "upload"
    if file.size and file.size > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail=f"{name}: file too large (max 1 MB)")

    content = await file.read()
    if len(content) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail=f"{name}: file too large (max 1 MB)")
    try:
        text = content.decode("utf-8")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail=f"{name}: file must be UTF-8 encoded text")

    if len(text.strip()) < MIN_DOCUMENT_CHARS:
        raise HTTPException(status_code=422, detail=f"{name}: content too short to be a document")

    document_type = classify_document(text)
    if document_type is None:
        raise HTTPException(
            status_code=422,
            detail=f"{name}: could not determine the document type",
        )
    return DocumentInput(type=document_type, text=text)


# ─── Endpoints ───────────────────────────────────────────────────────


@app.post(
    "/validate",
    summary="Validate a document package",
    tags=["Validation"],
    responses={503: {"description": "Pipeline not yet initialised"}},
)
async def validate_package(package: PackageInput) -> PackageVerdict:
    """Run the full validation pipeline on a package of typed documents.

    Returns:
    - **overallVerdict**: `GO`, `WAIT` or `NO_GO`
    - **crossReferenceIssues**: every discrepancy found between documents
    - **recommendation**: the triggering issues, in one sentence
    - **paymentMode**: `lc` if a letter of credit was supplied, else `no_lc`
    """
    pipeline = _get_pipeline()
    return await asyncio.to_thread(pipeline.run, package)


@app.post(
    "/validate/files",
    summary="Validate a package uploaded as text files",
    tags=["Validation"],
    responses={
        413: {"description": "A file is too large (max 1 MB each)"},
        400: {"description": "A file is not valid UTF-8 text"},
        422: {"description": "A file is too short or its type is unrecognised"},
        503: {"description": "Pipeline not yet initialised"},
    },
)
async def validate_package_files(
    files: list[UploadFile],
    client_identifier: str = Form(..., alias="clientIdentifier"),
    channel: Channel = Form(Channel.EMAIL),
) -> PackageVerdict:
    """Upload one `.txt` file per document. Each file's type is guessed from
    keywords (letter of credit, bill of lading, invoice, packing list,
    certificate of origin)."""
    documents = [await _read_document(f) for f in files]
    package = PackageInput(
        documents=documents,
        client_identifier=client_identifier,
        channel=channel,
    )
    pipeline = _get_pipeline()
    return await asyncio.to_thread(pipeline.run, package)


@app.get(
    "/health",
    summary="Health check",
    tags=["System"],
    responses={503: {"description": "Pipeline not yet initialised"}},
)
def health_check() -> HealthResponse:
    """Returns service status and configuration info."""
    pipeline = _get_pipeline()
    return HealthResponse(
        status="healthy",
        version=__version__,
        extraction="online" if pipeline.settings.online else "offline",
        persistence=pipeline.store is not None,
    )
