"""
Encoding utilities for x402 protocol headers
"""

import base64
import binascii
import json
from typing import Any, TypeVar

T = TypeVar("T")


def encode_base64(data: str | bytes) -> str:
    """Encode data to base64"""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return base64.b64encode(data).decode("utf-8")


def decode_base64(data: str) -> str:
    """Decode base64 to string"""
    return base64.b64decode(data, validate=True).decode("utf-8")


def encode_header_value(payload: Any) -> str:
    """Encode a model (or plain dict) to base64 JSON for an HTTP header.

    Models are dumped in their canonical form so the same logical value always
    yields the same header bytes.
    """
    if hasattr(payload, "canonical_json"):
        json_str = payload.canonical_json()
    elif hasattr(payload, "model_dump"):
        json_str = json.dumps(
            payload.model_dump(mode="json", by_alias=True, exclude_none=True),
            sort_keys=True,
            separators=(",", ":"),
        )
    else:
        json_str = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return encode_base64(json_str)


def decode_header_value(encoded: str, model_class: type[T] | None = None) -> T | dict[str, Any]:
    """Decode base64 JSON from an HTTP header.

    Raises:
        ValueError: If the value is not base64 encoded JSON
    """
    try:
        json_str = decode_base64(encoded)
        data = json.loads(json_str)
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ValueError(f"Malformed header value: {e}") from e
    if model_class is not None:
        return model_class(**data)
    return data

