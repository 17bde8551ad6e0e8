"""
Analysis orchestrator - coordinates contract type detection and full analysis.

Detect flow:  extract -> classification prompt -> LLM -> normalized type.
Analyze flow: extract -> tier prompt -> LLM -> decode -> validate -> narrow
              -> record ready for persistence.
"""
import json
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from analyzer.errors import ExtractionError, ValidationError
from analyzer.models import (
    LANGUAGE,
    SCHEMA_VERSION,
    TIER_FREE,
    TIER_PREMIUM,
    narrow_analysis,
)
from analyzer.services.json_decoder import DecodeResult, decode_analysis, strip_code_fences
from analyzer.services.llm_client import chat_completion, get_model_name
from analyzer.services.prompts import build_analysis_prompt, build_classification_prompt
from analyzer.services.text_extractor import extract_text

logger = logging.getLogger(__name__)

UNKNOWN_TYPE = "Unknown"

_TYPE_KEYS = ("contract_type", "contractType", "type")


def normalize_contract_type(raw: Any) -> str:
    """
    Reduce a model-produced (or client-echoed) contract type to a bare string.

    Handles JSON-wrapped answers such as {"contract_type": "Lease"} or "\"Lease\"",
    and plain strings with stray surrounding quotes.
    """
    if raw is None:
        return UNKNOWN_TYPE

    text = strip_code_fences(str(raw))

    try:
        parsed = json.loads(text)
    except ValueError:
        cleaned = text
        if cleaned[:1] in ('"', "'"):
            cleaned = cleaned[1:]
        if cleaned[-1:] in ('"', "'"):
            cleaned = cleaned[:-1]
        return cleaned.strip() or UNKNOWN_TYPE

    if isinstance(parsed, dict):
        for key in _TYPE_KEYS:
            if parsed.get(key):
                return str(parsed[key]).strip()
        for value in parsed.values():
            if value:
                return str(value).strip()
        return UNKNOWN_TYPE

    if isinstance(parsed, list):
        items = [str(item).strip() for item in parsed if item is not None]
        return ", ".join(item for item in items if item) or UNKNOWN_TYPE

    if parsed is None:
        return UNKNOWN_TYPE
    return str(parsed).strip() or UNKNOWN_TYPE


def detect_contract_type(upload_value: Any) -> str:
    """
    Classify an uploaded contract.

    Args:
        upload_value: PDF bytes (or their structured clone) from the blob store.

    Returns:
        Bare contract type string.

    Raises:
        ExtractionError: If the PDF cannot be read; no LLM call is made.
        GenerationError: If the LLM call fails.
    """
    contract_text = extract_text(upload_value)

    raw_type = chat_completion(build_classification_prompt(contract_text))
    detected = normalize_contract_type(raw_type.strip())

    logger.info(f"Detected contract type: {detected}")
    return detected


def _validate_decoded(result: DecodeResult) -> None:
    """
    Refuse to persist results that lack the core fields.

    Strict results must carry summary, risks and opportunities; salvaged
    results must have found at least one of their anchors.
    """
    if result.degraded:
        if not result.recovered:
            raise ValidationError("Analysis output contained no recoverable fields")
        return

    data = result.data
    missing = [
        key for key in ("summary", "risks", "opportunities")
        if not data.get(key) and not isinstance(data.get(key), list)
    ]
    if missing:
        raise ValidationError(f"Analysis output missing required fields: {missing}")


def analyze_contract(
    upload_value: Any,
    contract_type: str,
    owner_id: str,
    is_premium: bool
) -> Dict[str, Any]:
    """
    Run the full tiered analysis of an uploaded contract.

    Args:
        upload_value: PDF bytes (or their structured clone) from the blob store.
        contract_type: Confirmed contract type.
        owner_id: Id of the uploading user.
        is_premium: Subscription flag resolved by the caller.

    Returns:
        Complete analysis record, not yet persisted.

    Raises:
        ExtractionError: If the PDF cannot be read; no LLM call is made.
        GenerationError: If the LLM call fails.
        ValidationError: If the decoded output lacks the core fields.
    """
    start_time = time.time()
    tier = TIER_PREMIUM if is_premium else TIER_FREE
    contract_type = normalize_contract_type(contract_type)

    contract_text = extract_text(upload_value)
    logger.info(
        f"Starting contract analysis: tier={tier}, type={contract_type}, "
        f"{len(contract_text)} chars"
    )

    raw_output = chat_completion(build_analysis_prompt(contract_text, contract_type, tier))

    decoded = decode_analysis(raw_output)
    _validate_decoded(decoded)

    analysis = narrow_analysis(decoded.data, tier)

    record = {
        "id": uuid.uuid4().hex,
        "userId": owner_id,
        "createdAt": datetime.now(timezone.utc).isoformat(),
        "version": SCHEMA_VERSION,
        "tier": tier,
        "contractText": contract_text,
        "contractType": contract_type,
        **analysis,
        "language": LANGUAGE,
        "aiModel": get_model_name(),
        "expirationDate": None,
    }

    duration = time.time() - start_time
    logger.info(
        f"Analysis complete: id={record['id']}, risks={len(record['risks'])}, "
        f"opportunities={len(record['opportunities'])}, score={record['overallScore']}, "
        f"degraded={decoded.degraded}, duration={duration:.2f}s"
    )
    return record


def run_detect(blob_store, owner_id: str, file_bytes: bytes) -> Dict[str, str]:
    """
    Detect phase: park the upload in the blob store and classify it.

    The blob stays in the store so the analyze phase can reuse it by key.

    Returns:
        {"detectedType": ..., "uploadKey": ...}
    """
    upload_key = blob_store.put_upload(owner_id, file_bytes)
    try:
        detected = detect_contract_type(blob_store.get_upload(owner_id, upload_key))
    except Exception:
        blob_store.drop_upload(upload_key)
        raise
    return {"detectedType": detected, "uploadKey": upload_key}


def run_analyze(
    blob_store,
    store,
    owner_id: str,
    contract_type: str,
    is_premium: bool,
    file_bytes: Optional[bytes] = None,
    upload_key: Optional[str] = None
) -> Dict[str, Any]:
    """
    Analyze phase: resolve the upload, analyze it and persist the record.

    Either `file_bytes` (a fresh upload) or `upload_key` (the blob parked by
    the detect phase) must be given. The upload blob is dropped once the
    record has been persisted. On failure a fresh upload is dropped too, while
    a detect-phase blob is kept for a retry with the same key.

    Raises:
        ExtractionError: If the upload blob is missing, foreign or expired.
    """
    if file_bytes is not None:
        upload_key = blob_store.put_upload(owner_id, file_bytes)
    elif not upload_key:
        raise ExtractionError("File not found")

    upload_value = blob_store.get_upload(owner_id, upload_key)
    if upload_value is None:
        raise ExtractionError(f"Upload {upload_key} not found or expired")

    try:
        record = analyze_contract(upload_value, contract_type, owner_id, is_premium)
        store.create(record)
    except Exception:
        # A fresh upload's key never reaches the caller, so it cannot be retried
        if file_bytes is not None:
            blob_store.drop_upload(upload_key)
        raise

    blob_store.drop_upload(upload_key)
    return record
