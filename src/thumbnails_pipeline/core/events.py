"""Turn Lambda trigger payloads into notifications."""

import json
import urllib.parse
from typing import Any, Dict, Iterable, List, Optional

from .logging_config import get_logger
from .models import Notification

logger = get_logger("thumbnails-pipeline.events")


def _load_json(text: Optional[str], source: str) -> Optional[Dict[str, Any]]:
    try:
        payload = json.loads(text or "{}")
    except ValueError as e:
        logger.warning(f"Dropping {source} message with invalid JSON: {e}")
        return None
    if not isinstance(payload, dict):
        logger.warning(f"Dropping {source} message that is not a JSON object")
        return None
    return payload


def _s3_records(event: Dict[str, Any]) -> Iterable[Dict[str, Any]]:
    # SNS envelope delivered through SQS (S3 -> SNS -> SQS)
    if "Records" not in event and event.get("Type") == "Notification":
        message = _load_json(event.get("Message"), "SNS")
        if message is not None:
            yield from _s3_records(message)
        return

    for record in event.get("Records") or []:
        if not isinstance(record, dict):
            logger.warning(f"Dropping record that is not an object: {record!r}")
            continue

        if record.get("eventSource") == "aws:sqs":
            body = _load_json(record.get("body"), "SQS")
            if body is not None:
                yield from _s3_records(body)
        elif "Sns" in record:
            message = _load_json((record["Sns"] or {}).get("Message"), "SNS")
            if message is not None:
                yield from _s3_records(message)
        else:
            yield record


def parse_notifications(event: Dict[str, Any]) -> List[Notification]:
    """
    Extract one Notification per S3 object-created record.

    Records may arrive directly, wrapped in SQS messages or SNS notifications,
    or as SNS envelopes inside SQS messages. Keys are URL-decoded. Other S3
    events (removals, s3:TestEvent) are ignored; malformed records are
    dropped with a warning so the rest of the batch still runs.
    """
    notifications = []

    for record in _s3_records(event):
        event_name = record.get("eventName") or ""
        if event_name and not event_name.startswith("ObjectCreated"):
            logger.debug(f"Ignoring {event_name} event")
            continue

        s3_info = record.get("s3") or {}
        bucket = (s3_info.get("bucket") or {}).get("name") or ""
        key = urllib.parse.unquote_plus((s3_info.get("object") or {}).get("key") or "")
        if not bucket or not key:
            logger.warning(f"Dropping record without bucket or key: {record}")
            continue

        notifications.append(
            Notification(bucket=bucket, key=key, region=record.get("awsRegion") or "")
        )

    return notifications
