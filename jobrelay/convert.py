"""Encoding of job payloads into request bodies."""

import base64
import binascii
import json
from typing import Any, Mapping, Optional
from xml.sax.saxutils import escape

from .errors import SerializationError
from .models import ContentType, Job


def map_to_xml(mapping: Mapping[str, Any]) -> str:
    """Render a mapping as a sequence of XML elements, one per key.

    Lists repeat the element for each item; ``None`` renders as an empty
    element.
    """
    parts = []
    for key, value in mapping.items():
        parts.append(_element(key, value))
    return "".join(parts)


def _element(key: str, value: Any) -> str:
    if isinstance(value, Mapping):
        return f"<{key}>{map_to_xml(value)}</{key}>"
    if isinstance(value, (list, tuple)):
        return "".join(_element(key, item) for item in value)
    if value is None:
        return f"<{key}></{key}>"
    if isinstance(value, bool):
        return f"<{key}>{str(value).lower()}</{key}>"
    if isinstance(value, (str, int, float)):
        return f"<{key}>{escape(str(value))}</{key}>"
    raise SerializationError(f"cannot encode {type(value).__name__} under <{key}> as XML")


def resolve_content_type(job: Job, default: Optional[ContentType] = None) -> ContentType:
    return job.content_type or default or ContentType.JSON


def encode_payload(job: Job, content_type: ContentType) -> bytes:
    """Encode ``job.data`` for the given content type.

    Strings carry base64-encoded bytes and are sent decoded; mappings and
    lists are serialized.
    """
    data = job.data
    if isinstance(data, str):
        try:
            return base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise SerializationError(f"job {job.uid}: payload is not valid base64: {e}") from e

    if content_type == ContentType.XML:
        if not isinstance(data, Mapping):
            raise SerializationError(f"job {job.uid}: XML payload must be an object, got {type(data).__name__}")
        return map_to_xml(data).encode("utf-8")

    try:
        return json.dumps(data).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise SerializationError(f"job {job.uid}: {e}") from e
