"""Field-by-field validation of the model-assisted detector's JSON reply.

The upstream reply is an untyped payload.  ``parse_model_response()`` never
raises; it returns either ``ParsedEntities`` (every item validated) or
``ParseFailure`` (with a reason that is safe to log: it never quotes the
payload).

Accepted shape::

    {"entities": [{"type": "NAME", "value": "Jane Doe", "confidence": 0.9}]}

Rules
-----
- The first ``{`` to the last ``}`` of the reply is taken as the JSON object,
  so chatter around the object is tolerated.
- ``type`` (or ``kind``) outside the closed vocabulary maps to OTHER.
- ``value`` must be a string; blank values are skipped since they cannot be
  located in the text.
- ``confidence`` must be a number; it is clamped to [0, 1].
- Anything else (no object, invalid JSON, missing ``entities`` list, an item
  that is not an object, missing value or confidence) is a ParseFailure.
"""
from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass
from typing import Union

from qtiguard.pii.entities import PIIKind

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


@dataclass(frozen=True)
class ModelEntity:
    kind: PIIKind
    value: str
    confidence: float


@dataclass(frozen=True)
class ParsedEntities:
    entities: tuple[ModelEntity, ...]


@dataclass(frozen=True)
class ParseFailure:
    reason: str


ParseOutcome = Union[ParsedEntities, ParseFailure]


def _coerce_confidence(raw: object) -> float | None:
    # bool is an int subclass; "true" is not a confidence
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return None
    value = float(raw)
    if math.isnan(value):
        return None
    return min(1.0, max(0.0, value))


def parse_model_response(raw: str) -> ParseOutcome:
    """Validate *raw* model output and return a tagged outcome."""
    if not isinstance(raw, str):
        return ParseFailure("response is not text")

    match = _JSON_OBJECT.search(raw)
    if match is None:
        return ParseFailure("no JSON object in response")

    try:
        payload = json.loads(match.group(0))
    except ValueError:
        return ParseFailure("response JSON is malformed")

    if not isinstance(payload, dict):
        return ParseFailure("response JSON is not an object")

    items = payload.get("entities")
    if not isinstance(items, list):
        return ParseFailure("response has no 'entities' list")

    entities: list[ModelEntity] = []
    for position, item in enumerate(items):
        if not isinstance(item, dict):
            return ParseFailure(f"entity #{position} is not an object")

        value = item.get("value")
        if not isinstance(value, str):
            return ParseFailure(f"entity #{position} has no string 'value'")
        if not value.strip():
            continue

        confidence = _coerce_confidence(item.get("confidence"))
        if confidence is None:
            return ParseFailure(f"entity #{position} has no numeric 'confidence'")

        kind = PIIKind.coerce(item.get("type", item.get("kind")))
        entities.append(ModelEntity(kind=kind, value=value, confidence=confidence))

    return ParsedEntities(entities=tuple(entities))
