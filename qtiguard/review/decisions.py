"""Human accept/reject decisions over detected entities.

Every entity queued by the scanner gets a decision keyed by
``"<row_index>-<field>:<entity_index>"``; all decisions start as
redact=True.  ``commit()`` replays the decisions as a boolean mask over each
field's entity set and runs the shared reconciler splice, producing the final
redacted text per field.

Lifecycle:

    OPEN ──toggle / set_decision──▶ OPEN ──commit──▶ COMMITTED

A committed session rejects further changes.
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from qtiguard.pii.entities import DetectionResult
from qtiguard.pii.reconciler import redact
from qtiguard.questions.population import MappedRow
from qtiguard.review.scanner import ReviewItem


def entity_key(item: ReviewItem, entity_index: int) -> str:
    return f"{item.key}:{entity_index}"


def split_field_key(key: str) -> tuple[int, str]:
    """Parse ``"<row_index>-<field>"`` back into its parts."""
    row_part, sep, field_name = key.partition("-")
    if not sep or not row_part.isdigit() or not field_name:
        raise ValueError(f"Malformed field key {key!r}")
    return int(row_part), field_name


@dataclass(frozen=True)
class ReviewStats:
    total: int
    accepted: int
    rejected: int


class ReviewSession:
    """Decisions for one batch of queued review items."""

    def __init__(self, items: Sequence[ReviewItem]) -> None:
        self.items: list[ReviewItem] = list(items)
        self._decisions: dict[str, bool] = {
            entity_key(item, index): True
            for item in self.items
            for index in range(len(item.result.entities))
        }
        self._committed = False

    # -- decisions ------------------------------------------------------------

    @property
    def committed(self) -> bool:
        return self._committed

    @property
    def decisions(self) -> dict[str, bool]:
        return dict(self._decisions)

    def _check_open(self, key: str) -> None:
        if self._committed:
            raise ValueError("Review session already committed")
        if key not in self._decisions:
            raise KeyError(f"Unknown entity key {key!r}")

    def set_decision(self, key: str, redact_entity: bool) -> None:
        self._check_open(key)
        self._decisions[key] = bool(redact_entity)

    def toggle(self, key: str) -> bool:
        """Flip the decision for *key* and return the new value."""
        self._check_open(key)
        self._decisions[key] = not self._decisions[key]
        return self._decisions[key]

    def apply(self, decisions: Mapping[str, bool]) -> None:
        """Apply several decisions at once; all keys are checked first."""
        for key in decisions:
            self._check_open(key)
        for key, value in decisions.items():
            self._decisions[key] = bool(value)

    def stats(self) -> ReviewStats:
        total = len(self._decisions)
        accepted = sum(1 for v in self._decisions.values() if v)
        return ReviewStats(total=total, accepted=accepted, rejected=total - accepted)

    # -- redaction ------------------------------------------------------------

    def _mask(self, item: ReviewItem) -> list[bool]:
        return [
            self._decisions[entity_key(item, index)]
            for index in range(len(item.result.entities))
        ]

    def preview(self, item_index: int) -> DetectionResult:
        """Redaction of one item under the current decisions."""
        item = self.items[item_index]
        return redact(item.text, item.result.entities, self._mask(item))

    def commit(self) -> dict[str, str]:
        """Freeze the decisions and return field key → final redacted text."""
        results = {item.key: self.preview(i).redacted_text for i, item in enumerate(self.items)}
        self._committed = True
        return results


def overrides_by_row(committed: Mapping[str, str]) -> dict[int, dict[str, str]]:
    """Group committed field texts by row index for question population."""
    grouped: dict[int, dict[str, str]] = {}
    for key, text in committed.items():
        row_index, field_name = split_field_key(key)
        grouped.setdefault(row_index, {})[field_name] = text
    return grouped


def apply_redactions(
    rows: Sequence[MappedRow],
    committed: Mapping[str, str],
) -> list[MappedRow]:
    """Return copies of *rows* with the committed field texts substituted."""
    grouped = overrides_by_row(committed)
    return [row.with_overrides(grouped.get(index, {})) for index, row in enumerate(rows)]
