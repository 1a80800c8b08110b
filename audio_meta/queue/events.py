"""Validation of object-created notifications.

Two notification shapes are accepted:

* S3 event notifications: ``{"Records": [{"eventName": "ObjectCreated:Put",
  "s3": {"bucket": {"name": ...}, "object": {"key": ...}}}]}``. Keys are
  URL-encoded (spaces as ``+``) and are decoded here.
* R2 event notifications delivered through a queue: ``{"action":
  "PutObject", "bucket": ..., "object": {"key": ...}}``. Keys arrive
  verbatim.
"""

from __future__ import annotations

import logging
from typing import Any

from audio_meta.meta.paths import SourceObject, decode_key

logger = logging.getLogger(__name__)

R2_CREATE_ACTIONS = frozenset({"PutObject", "CopyObject", "CompleteMultipartUpload"})


def _require_str(value: Any, path: str) -> str:
    if not value or not isinstance(value, str):
        raise ValueError(f"Missing or invalid '{path}' in notification")
    return value


def _require_dict(value: Any, path: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ValueError(f"Missing or invalid '{path}' in notification")
    return value


def _from_s3_record(record: Any, index: int) -> tuple[str, str, bool]:
    path = f"Records[{index}]"
    record = _require_dict(record, path)
    s3 = _require_dict(record.get("s3"), f"{path}.s3")
    bucket = _require_dict(s3.get("bucket"), f"{path}.s3.bucket")
    obj = _require_dict(s3.get("object"), f"{path}.s3.object")
    name = _require_str(bucket.get("name"), f"{path}.s3.bucket.name")
    key = _require_str(obj.get("key"), f"{path}.s3.object.key")
    event_name = record.get("eventName", "ObjectCreated:")
    is_create = isinstance(event_name, str) and event_name.startswith("ObjectCreated:")
    return name, decode_key(key), is_create


def _from_r2_body(body: dict[str, Any]) -> tuple[str, str, bool]:
    name = _require_str(body.get("bucket"), "bucket")
    obj = _require_dict(body.get("object"), "object")
    key = _require_str(obj.get("key"), "object.key")
    action = body.get("action", "PutObject")
    return name, key, action in R2_CREATE_ACTIONS


def parse_notification(
    body: Any, generated_folder: str = "generated"
) -> list[SourceObject]:
    """Turn a notification into the source objects it reports as created.

    Non-create events and objects inside a generated folder are skipped,
    so the pipeline's own outputs never re-trigger it.

    Args:
        body: Decoded notification payload.
        generated_folder: Name of the generated artifacts folder.

    Returns:
        SourceObjects to process, in notification order.

    Raises:
        ValueError: If the payload does not match a known notification shape.
    """
    body = _require_dict(body, "<root>")
    if "Records" in body:
        records = body["Records"]
        if not isinstance(records, list):
            raise ValueError("Missing or invalid 'Records' in notification")
        parsed = [_from_s3_record(record, i) for i, record in enumerate(records)]
    elif "object" in body:
        parsed = [_from_r2_body(body)]
    else:
        raise ValueError("Unrecognized notification shape")

    sources: list[SourceObject] = []
    for bucket, key, is_create in parsed:
        if not is_create:
            logger.info("Skipping non-create event for %s", key)
            continue
        source = SourceObject(bucket=bucket, key=key, generated_folder=generated_folder)
        if source.is_generated():
            logger.debug("Skipping generated artifact %s", key)
            continue
        sources.append(source)
    return sources
