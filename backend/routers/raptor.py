"""
RAPTOR Router - text/file processing into summary trees

Endpoints:
    POST /api/raptor/process       JSON {text, chunkSize?, maxLevels?}
    POST /api/raptor/process-file  multipart: file, chunkSize, maxLevels
    GET  /api/raptor/health        service liveness
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import APIRouter, File, Form, UploadFile
from pydantic import BaseModel, Field

from config import get_config
from errors import InvalidInputError
from logging_config import log_request
from tools.raptor import RaptorTreeBuilder

logger = logging.getLogger(__name__)

router = APIRouter()

SERVICE_NAME = "RAPTOR Text Processing Service"
SERVICE_VERSION = "1.0.0"

# Request bounds
MIN_CHUNK_SIZE = 100
MAX_CHUNK_SIZE = 10000
MIN_LEVELS = 1
MAX_LEVELS = 10

ALLOWED_EXTENSIONS = {".txt", ".md"}


class ProcessRequest(BaseModel):
    text: str
    chunk_size: Optional[int] = Field(default=None, alias="chunkSize")
    max_levels: Optional[int] = Field(default=None, alias="maxLevels")

    model_config = {"populate_by_name": True}


class ProcessResponse(BaseModel):
    message: str
    result: Optional[Dict[str, Any]] = None


_builder: Optional[RaptorTreeBuilder] = None


def get_tree_builder() -> RaptorTreeBuilder:
    """Shared builder; keeps the fitted-model cache warm across requests."""
    global _builder
    if _builder is None:
        _builder = RaptorTreeBuilder()
    return _builder


# =============================================================================
# Validation
# =============================================================================


def validate_text(text: Optional[str], max_length: int) -> str:
    if text is None or not text.strip():
        raise InvalidInputError("Text cannot be empty", parameter="text", error_type="empty")
    if len(text) > max_length:
        raise InvalidInputError(
            f"Text too long. Maximum allowed: {max_length} characters",
            parameter="text",
            expected=f"<= {max_length}",
            received=str(len(text)),
            error_type="range",
        )
    return text


def validate_bounds(chunk_size: int, max_levels: int) -> None:
    if not MIN_CHUNK_SIZE <= chunk_size <= MAX_CHUNK_SIZE:
        raise InvalidInputError(
            f"Chunk size must be between {MIN_CHUNK_SIZE} and {MAX_CHUNK_SIZE}",
            parameter="chunkSize",
            received=str(chunk_size),
            error_type="range",
        )
    if not MIN_LEVELS <= max_levels <= MAX_LEVELS:
        raise InvalidInputError(
            f"Max levels must be between {MIN_LEVELS} and {MAX_LEVELS}",
            parameter="maxLevels",
            received=str(max_levels),
            error_type="range",
        )


def validate_upload(filename: Optional[str], content_type: Optional[str], size: int, max_size_mb: int) -> None:
    if size == 0:
        raise InvalidInputError("File cannot be empty", parameter="file", error_type="empty")

    if size > max_size_mb * 1024 * 1024:
        raise InvalidInputError(
            f"File too large. Maximum allowed: {max_size_mb}MB",
            parameter="file",
            received=f"{size} bytes",
            error_type="range",
        )

    ext = Path(filename or "").suffix.lower()
    is_text_mime = bool(content_type) and content_type.startswith("text/")
    if ext not in ALLOWED_EXTENSIONS and not is_text_mime:
        raise InvalidInputError(
            "Only text files are supported",
            parameter="file",
            expected=".txt, .md or text/*",
            received=content_type or ext or "unknown",
            error_type="format",
        )


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/process", response_model=ProcessResponse)
def process_text(request: ProcessRequest):
    """Build a summary tree from raw text."""
    config = get_config()
    chunk_size = request.chunk_size if request.chunk_size is not None else config.default_chunk_size
    max_levels = request.max_levels if request.max_levels is not None else config.default_max_levels

    text = validate_text(request.text, config.max_text_length)
    validate_bounds(chunk_size, max_levels)
    log_request(logger, "process", chars=len(text), chunk_size=chunk_size, max_levels=max_levels)

    tree = get_tree_builder().process_text(text, chunk_size, max_levels)
    return ProcessResponse(message="Success", result=tree.to_dict())


@router.post("/process-file", response_model=ProcessResponse)
async def process_file(
    file: UploadFile = File(...),
    chunk_size: Optional[int] = Form(default=None, alias="chunkSize"),
    max_levels: Optional[int] = Form(default=None, alias="maxLevels"),
):
    """Build a summary tree from an uploaded UTF-8 text file."""
    config = get_config()
    chunk_size = chunk_size if chunk_size is not None else config.default_chunk_size
    max_levels = max_levels if max_levels is not None else config.default_max_levels
    validate_bounds(chunk_size, max_levels)

    content = await file.read()
    validate_upload(file.filename, file.content_type, len(content), config.max_file_size_mb)

    try:
        text = content.decode("utf-8")
    except UnicodeDecodeError as e:
        raise InvalidInputError(
            "File is not valid UTF-8 text", details=str(e), parameter="file", error_type="format"
        ) from e

    text = validate_text(text, config.max_text_length)
    log_request(
        logger,
        "process-file",
        file=file.filename,
        bytes=len(content),
        chunk_size=chunk_size,
        max_levels=max_levels,
    )

    builder = get_tree_builder()
    tree = await asyncio.to_thread(builder.process_text, text, chunk_size, max_levels)
    logger.info(f"Processed {file.filename} into {tree.depth} levels")
    return ProcessResponse(message="Success", result=tree.to_dict())


@router.get("/health")
async def health():
    """Service liveness (does not probe the LLM server)."""
    return {"status": "healthy", "service": SERVICE_NAME, "version": SERVICE_VERSION}
