"""JSON encoding of step outputs."""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Type, TypeVar

from pydantic import ConfigDict, PydanticSchemaGenerationError, TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError

from .exceptions import OutputCodecError

T = TypeVar("T")

# inf and nan are written as JSON constants so they survive replay
_ENCODER = TypeAdapter(Any, config=ConfigDict(ser_json_inf_nan="constants"))


@lru_cache(maxsize=256)
def _adapter(result_type: Any) -> TypeAdapter:
    return TypeAdapter(result_type)


def encode_output(value: Any) -> str:
    """Serialize a step's return value to JSON text.

    Builtins, dataclasses and pydantic models are supported; the runtime
    type of ``value`` drives serialization.
    """
    try:
        return _ENCODER.dump_json(value).decode("utf-8")
    except PydanticSerializationError as e:
        raise OutputCodecError(
            f"Cannot encode step output of type '{type(value).__name__}': {e}"
        ) from e


def decode_output(text: str, result_type: Type[T] | Any = Any) -> T:
    """Rebuild a step output from JSON text as ``result_type``."""
    try:
        return _adapter(result_type).validate_json(text)
    except (ValidationError, PydanticSchemaGenerationError, TypeError) as e:
        raise OutputCodecError(
            f"Cannot decode step output as '{getattr(result_type, '__name__', result_type)}': {e}"
        ) from e
