import json
import uuid
from pathlib import PurePath
from typing import Any, Dict

from .errors import ValidationError


def gen_job_id() -> str:
    return str(uuid.uuid4())


def file_extension(filename: str) -> str:
    """'Photo.JPG' -> 'jpg'. Raises ValidationError when there is no suffix."""
    suffix = PurePath(filename or "").suffix
    ext = suffix.lstrip(".").lower()
    if not ext:
        raise ValidationError(f"Could not determine file extension for {filename!r}.")
    return ext


def parse_ticket_fields(fields: Any) -> Dict[str, Any]:
    """
    Leonardo returns the presigned POST fields as a JSON-encoded string.
    Accept an already-decoded dict too.
    """
    if not fields:
        return {}
    if isinstance(fields, dict):
        return fields
    try:
        parsed = json.loads(fields)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Upload ticket fields are not valid JSON: {fields!r}") from e
    if not isinstance(parsed, dict):
        raise ValidationError(f"Upload ticket fields must be an object, got {type(parsed).__name__}")
    return parsed
