"""
FastAPI server exposing the extraction pipeline.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import os
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import FileResponse
from starlette.datastructures import UploadFile

from ..core import (
    EmptyRequestError,
    ExtractionOrchestrator,
    LLMConfig,
    OCRConfig,
    PipelineConfig,
)
from ..models import Document
from ..utils.report_generator import ReportGenerator

logger = logging.getLogger(__name__)

OUTPUT_DIR = Path(os.getenv("SE_OUTPUT_DIR", "output")).resolve()
DEFAULT_FILENAME = "upload.pdf"

app = FastAPI(title="Statement Extractor", version="0.1.0")


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except ValueError:
        return default


def _load_pipeline_config() -> PipelineConfig:
    ocr_key = os.getenv("OCR_API_KEY") or os.getenv("MISTRAL_API_KEY")
    llm_key = os.getenv("LLM_API_KEY") or ocr_key

    ocr_config = OCRConfig(
        api_key=ocr_key or None,
        endpoint=os.getenv("OCR_ENDPOINT", OCRConfig.endpoint),
        model=os.getenv("OCR_MODEL", OCRConfig.model),
        timeout=_env_float("OCR_TIMEOUT", OCRConfig.timeout),
    )
    llm_config = LLMConfig(
        api_key=llm_key or None,
        base_url=os.getenv("LLM_BASE_URL", LLMConfig.base_url),
        model=os.getenv("LLM_MODEL", LLMConfig.model),
        timeout=_env_float("LLM_TIMEOUT", LLMConfig.timeout),
    )

    try:
        anchor = Decimal(os.getenv("SE_ANCHOR_BALANCE", "5000.00"))
    except InvalidOperation:
        anchor = Decimal("5000.00")

    return PipelineConfig(ocr_config=ocr_config, llm_config=llm_config, anchor_balance=anchor)


def get_orchestrator() -> ExtractionOrchestrator:
    return ExtractionOrchestrator(_load_pipeline_config())


def decode_base64_document(data: str) -> bytes:
    """Decode base64 file data, tolerating a data-URL prefix"""
    if data.startswith("data:") and "," in data:
        data = data.split(",", 1)[1]
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise HTTPException(status_code=400, detail=f"fileData is not valid base64: {e}") from e


async def read_document(request: Request) -> Tuple[bytes, str]:
    """
    Pull document bytes from a raw body, a multipart upload or a JSON envelope

    Raises:
        EmptyRequestError: no document bytes were sent
    """
    content_type = request.headers.get("content-type", "").lower()
    filename = request.headers.get("x-file-name") or DEFAULT_FILENAME

    if content_type.startswith("multipart/form-data"):
        form = await request.form()
        upload = form.get("file")
        if not isinstance(upload, UploadFile):
            raise EmptyRequestError("No file provided")
        content = await upload.read()
        filename = upload.filename or filename

    elif content_type.startswith("application/json"):
        try:
            envelope: Dict[str, Any] = json.loads(await request.body() or b"{}")
        except json.JSONDecodeError as e:
            raise HTTPException(status_code=400, detail=f"Invalid JSON body: {e.msg}") from e
        if not isinstance(envelope, dict):
            raise HTTPException(status_code=400, detail="JSON body must be an object")
        data = envelope.get("fileData") or envelope.get("file_data") or ""
        if not isinstance(data, str):
            raise HTTPException(status_code=400, detail="fileData must be a base64 string")
        content = decode_base64_document(data) if data else b""
        filename = envelope.get("fileName") or envelope.get("file_name") or filename

    else:
        content = await request.body()

    if not content:
        raise EmptyRequestError("Empty request body")

    return content, str(filename)


def _relative_outputs(paths: Dict[str, str]) -> Dict[str, str]:
    cleaned: Dict[str, str] = {}
    for key, path_str in paths.items():
        resolved = Path(path_str).resolve()
        try:
            cleaned[key] = str(resolved.relative_to(OUTPUT_DIR))
        except ValueError:
            cleaned[key] = resolved.name
    return cleaned


@app.get("/api/health")
async def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.post("/api/process")
async def process_document(
    request: Request,
    save_outputs: bool = False,
    orchestrator: ExtractionOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    try:
        content, filename = await read_document(request)
    except EmptyRequestError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    logger.info(f"Processing {filename} ({len(content)} bytes)")
    result = await orchestrator.extract(Document(content=content, filename=filename))

    output_files: Optional[Dict[str, str]] = None
    if save_outputs:
        report_gen = ReportGenerator(str(OUTPUT_DIR))
        output_files = _relative_outputs({
            'csv': report_gen.generate_csv(result),
            'json': report_gen.generate_json(result),
        })
        logger.info("\n" + report_gen.generate_summary_report(result))

    return {
        "success": True,
        "excel_data": result.to_dict(),
        "sheets": ReportGenerator.build_sheets(result),
        "output_files": output_files,
    }


@app.get("/api/outputs/{filename:path}")
async def get_output(filename: str) -> FileResponse:
    candidate = (OUTPUT_DIR / filename).resolve()
    if OUTPUT_DIR not in candidate.parents:
        raise HTTPException(status_code=404, detail="Invalid output path")

    if not candidate.exists() or not candidate.is_file():
        raise HTTPException(status_code=404, detail="Output file not found")

    return FileResponse(candidate)
