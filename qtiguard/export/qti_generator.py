"""Assemble a QTI 2.1 content package (zip) from a list of Questions.

Generation is all-or-nothing: every item document is rendered in memory
first, the manifest is built once all item identifiers are known, and only
then is the archive written.  Any failure while rendering an item raises
PackageGenerationError and no partial archive is returned.
"""
from __future__ import annotations

import io
import logging
import zipfile
from collections.abc import Sequence
from uuid import uuid4

from qtiguard.export.artifact import ExportArtifact, slugify
from qtiguard.export.qti_builder import (
    DEFAULT_TITLE_MAX_CHARS,
    build_assessment_item,
    build_manifest,
    item_filename,
    item_identifier,
    resolve_correct_choice,
    serialize,
)
from qtiguard.questions.model import Question

logger = logging.getLogger(__name__)

MANIFEST_NAME = "imsmanifest.xml"
ZIP_MEDIA_TYPE = "application/zip"


class PackageGenerationError(RuntimeError):
    """Raised when any item of a package cannot be rendered."""


class QtiGenerator:
    """Render Questions into a single importable QTI package.

    Usage::

        package = QtiGenerator().generate(questions, title="Biology midterm")
        Path(package.filename).write_bytes(package.content)
    """

    def __init__(self, title_max_chars: int = DEFAULT_TITLE_MAX_CHARS) -> None:
        self.title_max_chars = title_max_chars

    def render_items(self, questions: Sequence[Question]) -> dict[str, bytes]:
        """Return item identifier → serialized item document, in input order."""
        documents: dict[str, bytes] = {}
        for position, question in enumerate(questions):
            item_id = item_identifier(question)
            if item_id in documents:
                raise PackageGenerationError(
                    f"Duplicate item identifier at position {position}"
                )
            try:
                root = build_assessment_item(
                    question, item_id, title_max_chars=self.title_max_chars
                )
                documents[item_id] = serialize(root)
            except Exception as exc:
                raise PackageGenerationError(
                    f"Failed to render item at position {position}: {type(exc).__name__}"
                ) from exc

            if resolve_correct_choice(question) is None:
                logger.warning(
                    "Item at position %d has no resolvable correct response", position
                )
        return documents

    def generate(
        self,
        questions: Sequence[Question],
        *,
        title: str | None = None,
        package_id: str | None = None,
    ) -> ExportArtifact:
        documents = self.render_items(questions)
        manifest = serialize(build_manifest(package_id or str(uuid4()), list(documents)))

        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            archive.writestr(MANIFEST_NAME, manifest)
            for item_id, document in documents.items():
                archive.writestr(item_filename(item_id), document)

        logger.info("QTI package generated: items=%d", len(documents))
        return ExportArtifact(
            content=buffer.getvalue(),
            media_type=ZIP_MEDIA_TYPE,
            filename=f"qti-export-{slugify(title)}.zip",
        )
