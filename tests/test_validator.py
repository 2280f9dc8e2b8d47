"""Tests for the QTI document validator.

Covers:
- Generate → validate round trip (item and package)
- Item checks: legacy/unknown roots, identifier, title, responseDeclaration,
  correctResponse, itemBody, choiceInteraction without choices or prompt
- Namespace-agnostic tag matching, unsupported interactions ignored
- Parse errors reported as a single entry, never raised
- Archive checks: missing manifest, bad manifest root, aggregated item
  errors, nested manifest markers skipped, unreadable archives and entries
"""
from __future__ import annotations

import io
import struct
import zipfile

import pytest

from qtiguard.export.qti_builder import build_assessment_item, serialize
from qtiguard.export.qti_generator import QtiGenerator
from qtiguard.questions.model import AnswerChoice, Question
from qtiguard.validation.validator import (
    ValidationReport,
    validate_archive,
    validate_document,
    validate_item,
    validate_manifest,
)

ITEM_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<assessmentItem xmlns="http://www.imsglobal.org/xsd/imsqti_v2p1" {attrs}>
  {response}
  <itemBody>
    {interaction}
  </itemBody>
</assessmentItem>
"""

RESPONSE = """<responseDeclaration identifier="RESPONSE" cardinality="single" baseType="identifier">
    <correctResponse><value>CHOICE_0</value></correctResponse>
  </responseDeclaration>"""

INTERACTION = """<choiceInteraction responseIdentifier="RESPONSE" maxChoices="1">
      <prompt>Pick one</prompt>
      <simpleChoice identifier="CHOICE_0">Yes</simpleChoice>
    </choiceInteraction>"""


def _item_xml(
    attrs: str = 'identifier="i1" title="Item one"',
    response: str = RESPONSE,
    interaction: str = INTERACTION,
) -> str:
    return ITEM_TEMPLATE.format(attrs=attrs, response=response, interaction=interaction)


def _question(question_id: str = "q1") -> Question:
    return Question(
        prompt_text="What is the capital of France?",
        answer_choices=(AnswerChoice("A", "Paris", True), AnswerChoice("B", "Berlin")),
        question_id=question_id,
    )


def _zip(entries: dict[str, bytes | str]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, content in entries.items():
            archive.writestr(name, content)
    return buffer.getvalue()


def _patch_first_entry(data: bytes, *, method: int | None = None, flags: int | None = None) -> bytes:
    """Rewrite the first entry's local and central headers in place."""
    buf = bytearray(data)
    central = buf.find(b"PK\x01\x02")
    if method is not None:
        struct.pack_into("<H", buf, 8, method)
        struct.pack_into("<H", buf, central + 10, method)
    if flags is not None:
        struct.pack_into("<H", buf, 6, flags)
        struct.pack_into("<H", buf, central + 8, flags)
    return bytes(buf)


# ---------------------------------------------------------------------------
# Round trip
# ---------------------------------------------------------------------------


class TestRoundTrip:
    def test_generated_item_is_valid(self) -> None:
        document = serialize(build_assessment_item(_question(), "question-q1"))
        report = validate_item(document)

        assert report.valid is True
        assert report.errors == []
        assert report.warnings == []
        assert report.info.item_count == 1
        assert report.info.detected_kinds == ["multiple_choice"]

    def test_generated_package_is_valid(self) -> None:
        package = QtiGenerator().generate([_question("a"), _question("b")])
        report = validate_archive(package.content)

        assert report.valid is True
        assert report.warnings == []
        assert report.info.item_count == 2
        assert report.info.has_metadata is True

    def test_item_with_explanation_is_valid(self) -> None:
        q = Question(
            prompt_text="2 + 2?",
            answer_choices=(AnswerChoice("A", "4", True), AnswerChoice("B", "5")),
            explanation="Basic arithmetic.",
            question_id="q2",
        )
        assert validate_item(serialize(build_assessment_item(q, "question-q2"))).valid


# ---------------------------------------------------------------------------
# Item checks
# ---------------------------------------------------------------------------


class TestItemChecks:
    def test_well_formed_handwritten_item(self) -> None:
        report = validate_item(_item_xml())
        assert report.valid, report.errors

    def test_legacy_root_is_wrong_format_version(self) -> None:
        report = validate_item('<questestinterop><item ident="1"/></questestinterop>')
        assert report.valid is False
        assert len(report.errors) == 1
        assert "wrong format version" in report.errors[0]
        assert "XML parsing error" not in report.errors[0]

    def test_unknown_root(self) -> None:
        report = validate_item("<quiz/>")
        assert report.valid is False
        assert "unknown format" in report.errors[0]

    def test_manifest_root_skipped(self) -> None:
        report = validate_item('<manifest xmlns="http://www.imsglobal.org/xsd/imscp_v1p1"/>')
        assert report.valid is True
        assert report.info.item_count == 0

    def test_missing_identifier(self) -> None:
        report = validate_item(_item_xml(attrs='title="t"'))
        assert report.valid is False
        assert any("identifier" in e for e in report.errors)

    def test_missing_title_is_warning(self) -> None:
        report = validate_item(_item_xml(attrs='identifier="i1"'))
        assert report.valid is True
        assert any("title" in w for w in report.warnings)

    def test_missing_response_declaration(self) -> None:
        report = validate_item(_item_xml(response=""))
        assert report.valid is False
        assert any("responseDeclaration" in e for e in report.errors)

    def test_missing_correct_response_is_warning(self) -> None:
        response = '<responseDeclaration identifier="RESPONSE" cardinality="single"/>'
        report = validate_item(_item_xml(response=response))
        assert report.valid is True
        assert any("scoring might be impossible" in w for w in report.warnings)

    def test_empty_correct_value_is_warning(self) -> None:
        response = RESPONSE.replace("CHOICE_0", "")
        report = validate_item(_item_xml(response=response))
        assert report.valid is True
        assert any("correctResponse" in w for w in report.warnings)

    def test_missing_item_body(self) -> None:
        document = '<assessmentItem identifier="i" title="t">' + RESPONSE + "</assessmentItem>"
        report = validate_item(document)
        assert report.valid is False
        assert any("itemBody" in e for e in report.errors)

    def test_choice_interaction_without_choices(self) -> None:
        interaction = '<choiceInteraction responseIdentifier="RESPONSE"><prompt>p</prompt></choiceInteraction>'
        report = validate_item(_item_xml(interaction=interaction))
        assert report.valid is False
        assert any("simpleChoice" in e for e in report.errors)

    def test_choice_interaction_without_prompt_is_warning(self) -> None:
        interaction = (
            '<choiceInteraction responseIdentifier="RESPONSE">'
            '<simpleChoice identifier="CHOICE_0">a</simpleChoice></choiceInteraction>'
        )
        report = validate_item(_item_xml(interaction=interaction))
        assert report.valid is True
        assert any("prompt" in w for w in report.warnings)

    def test_unsupported_interaction_ignored(self) -> None:
        interaction = '<sliderInteraction responseIdentifier="RESPONSE" lowerBound="0" upperBound="10"/>'
        report = validate_item(_item_xml(interaction=interaction))
        assert report.valid is True
        assert report.warnings == []
        assert report.info.detected_kinds == []

    def test_essay_interaction_detected(self) -> None:
        interaction = '<extendedTextInteraction responseIdentifier="RESPONSE"/>'
        report = validate_item(_item_xml(interaction=interaction))
        assert report.info.detected_kinds == ["essay"]

    def test_prefixed_namespace_matched_by_local_name(self) -> None:
        document = _item_xml().replace(
            'xmlns="http://www.imsglobal.org/xsd/imsqti_v2p1"',
            'xmlns:qti="http://www.imsglobal.org/xsd/imsqti_v2p1"',
        )
        document = document.replace("<", "<qti:").replace("<qti:/", "</qti:").replace("<qti:?", "<?")
        report = validate_item(document)
        assert report.valid, report.errors

    @pytest.mark.parametrize("document", ["<assessmentItem", "", "plain text", b"\xff\xfe"])
    def test_unparseable_is_single_error(self, document) -> None:
        report = validate_item(document)
        assert report.valid is False
        assert len(report.errors) == 1
        assert report.errors[0].startswith("XML parsing error")

    def test_external_entities_not_resolved(self) -> None:
        document = (
            '<?xml version="1.0"?>'
            '<!DOCTYPE assessmentItem [<!ENTITY xxe SYSTEM "file:///etc/passwd">]>'
            '<assessmentItem identifier="i" title="&xxe;">' + RESPONSE
            + "<itemBody>" + INTERACTION + "</itemBody></assessmentItem>"
        )
        report = validate_item(document)
        assert isinstance(report, ValidationReport)
        assert "root:" not in " ".join(report.errors + report.warnings)


# ---------------------------------------------------------------------------
# Manifest
# ---------------------------------------------------------------------------


class TestManifestChecks:
    def test_metadata_detected(self) -> None:
        report = validate_manifest("<manifest><metadata/></manifest>")
        assert report.valid
        assert report.info.has_metadata

    def test_wrong_root(self) -> None:
        assert validate_manifest("<package/>").valid is False


# ---------------------------------------------------------------------------
# Archives
# ---------------------------------------------------------------------------


class TestArchiveChecks:
    def test_no_manifest_two_items_is_valid(self) -> None:
        data = _zip({
            "question-a.xml": serialize(build_assessment_item(_question("a"), "question-a")),
            "question-b.xml": serialize(build_assessment_item(_question("b"), "question-b")),
        })
        report = validate_archive(data)

        assert report.valid is True
        assert report.info.item_count == 2
        assert "No imsmanifest.xml found in root" in report.warnings
        assert report.info.has_metadata is False

    def test_item_errors_aggregated_with_entry_name(self) -> None:
        data = _zip({
            "imsmanifest.xml": "<manifest><metadata/></manifest>",
            "good.xml": _item_xml(),
            "bad.xml": "<questestinterop/>",
        })
        report = validate_archive(data)

        assert report.valid is False
        assert report.info.item_count == 1
        assert any(e.startswith("[bad.xml]") and "wrong format version" in e for e in report.errors)

    def test_bad_manifest_root_is_error(self) -> None:
        data = _zip({"imsmanifest.xml": "<notmanifest/>", "good.xml": _item_xml()})
        report = validate_archive(data)
        assert report.valid is False
        assert any("imsmanifest.xml" in e for e in report.errors)

    def test_nested_manifest_marker_skipped(self) -> None:
        data = _zip({
            "imsmanifest.xml": "<manifest/>",
            "sub/imsmanifest.xml": "<manifest><resources/></manifest>",
            "good.xml": _item_xml(),
        })
        report = validate_archive(data)
        assert report.valid is True
        assert report.info.item_count == 1

    def test_non_xml_entries_ignored(self) -> None:
        data = _zip({"good.xml": _item_xml(), "images/logo.png": b"\x89PNG"})
        assert validate_archive(data).valid is True

    @pytest.mark.parametrize("patch", [{"method": 99}, {"flags": 0x1}])
    def test_unreadable_entry_is_reported_not_raised(self, patch) -> None:
        data = _patch_first_entry(
            _zip({"q.xml": _item_xml(), "good.xml": _item_xml()}),
            **patch,
        )
        report = validate_archive(data)

        assert report.valid is False
        assert any(e.startswith("[q.xml] Archive entry unreadable") for e in report.errors)
        assert report.info.item_count == 1

    def test_unreadable_archive_is_single_error(self) -> None:
        report = validate_archive(b"definitely not a zip")
        assert report.valid is False
        assert len(report.errors) == 1
        assert report.errors[0].startswith("Archive parsing error")


def test_validate_document_dispatches_on_content() -> None:
    package = QtiGenerator().generate([_question()])
    assert validate_document(package.content).info.item_count == 1
    assert validate_document(_item_xml().encode()).info.item_count == 1
