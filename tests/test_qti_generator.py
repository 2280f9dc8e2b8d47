"""Tests for QTI item/manifest building and package generation.

Covers:
- Correct-response resolution: flagged choice, text fallback, label
  fallback, unresolved (empty value, not an error)
- Item document structure, title truncation, choice order, escaping
- Explanation rendered as modalFeedback
- Manifest structure and package layout
- All-or-nothing generation (PackageGenerationError, duplicate ids)
"""
from __future__ import annotations

import io
import zipfile

import pytest
from lxml import etree

from qtiguard.export.qti_builder import (
    IMSCP_NS,
    QTI_NS,
    build_assessment_item,
    build_manifest,
    resolve_correct_choice,
    serialize,
)
from qtiguard.export.qti_generator import MANIFEST_NAME, PackageGenerationError, QtiGenerator
from qtiguard.questions.model import AnswerChoice, Question, QuestionKind

NS = {"q": QTI_NS, "cp": IMSCP_NS}


def _question(**kwargs) -> Question:
    defaults = dict(
        prompt_text="What is the capital of France?",
        answer_choices=(
            AnswerChoice("A", "Paris", is_correct=True),
            AnswerChoice("B", "Berlin"),
        ),
        correct_answer="Paris",
        question_id="q1",
    )
    defaults.update(kwargs)
    return Question(**defaults)


def _item(question: Question, **kwargs) -> etree._Element:
    return etree.fromstring(serialize(build_assessment_item(question, "question-q1", **kwargs)))


def _correct_value(root: etree._Element) -> str:
    return root.findtext("q:responseDeclaration/q:correctResponse/q:value", namespaces=NS)


def _unzip(content: bytes) -> dict[str, bytes]:
    with zipfile.ZipFile(io.BytesIO(content)) as archive:
        return {name: archive.read(name) for name in archive.namelist()}


# ---------------------------------------------------------------------------
# Correct response
# ---------------------------------------------------------------------------


class TestCorrectResponse:
    def test_flagged_choice(self) -> None:
        root = _item(_question())
        assert _correct_value(root) == "CHOICE_0"

    def test_flag_beats_correct_answer(self) -> None:
        q = _question(
            answer_choices=(AnswerChoice("A", "Paris"), AnswerChoice("B", "Berlin", True)),
            correct_answer="Paris",
        )
        assert resolve_correct_choice(q) == 1

    def test_text_match_fallback(self) -> None:
        q = _question(
            answer_choices=(AnswerChoice("A", "4"), AnswerChoice("B", "5")),
            correct_answer="4",
        )
        assert _correct_value(_item(q)) == "CHOICE_0"

    def test_label_match_fallback(self) -> None:
        q = _question(
            answer_choices=(AnswerChoice("A", "Paris"), AnswerChoice("B", "Berlin")),
            correct_answer="b",
        )
        assert resolve_correct_choice(q) == 1

    def test_text_checked_before_label(self) -> None:
        q = _question(
            answer_choices=(AnswerChoice("A", "B"), AnswerChoice("B", "A")),
            correct_answer="A",
        )
        assert resolve_correct_choice(q) == 1

    def test_unresolved_is_empty_not_error(self) -> None:
        q = _question(
            answer_choices=(AnswerChoice("A", "Paris"), AnswerChoice("B", "Berlin")),
            correct_answer="Madrid",
        )
        assert resolve_correct_choice(q) is None
        assert (_correct_value(_item(q)) or "") == ""


# ---------------------------------------------------------------------------
# Item document
# ---------------------------------------------------------------------------


class TestItemDocument:
    def test_root_attributes(self) -> None:
        root = _item(_question())
        assert etree.QName(root).localname == "assessmentItem"
        assert root.nsmap[None] == QTI_NS
        assert root.get("identifier") == "question-q1"
        assert root.get("adaptive") == "false"
        assert root.get("timeDependent") == "false"

    def test_title_truncated(self) -> None:
        root = _item(_question(prompt_text="x" * 80))
        assert root.get("title") == "x" * 50

    def test_title_strips_before_truncating(self) -> None:
        root = _item(_question(prompt_text="\n   " + "y" * 60), title_max_chars=5)
        assert root.get("title") == "yyyyy"

    def test_title_limit_configurable(self) -> None:
        root = _item(_question(), title_max_chars=10)
        assert root.get("title") == "What is th"

    def test_choices_in_order(self) -> None:
        q = _question(answer_choices=tuple(
            AnswerChoice(label, text) for label, text in zip("ABCD", ["w", "x", "y", "z"])
        ))
        root = _item(q)
        choices = root.findall(".//q:simpleChoice", namespaces=NS)
        assert [c.get("identifier") for c in choices] == ["CHOICE_0", "CHOICE_1", "CHOICE_2", "CHOICE_3"]
        assert [c.text for c in choices] == ["w", "x", "y", "z"]

    def test_interaction_and_prompt(self) -> None:
        root = _item(_question())
        interaction = root.find("q:itemBody/q:choiceInteraction", namespaces=NS)
        assert interaction.get("responseIdentifier") == "RESPONSE"
        assert interaction.get("maxChoices") == "1"
        assert interaction.get("shuffle") == "true"
        assert interaction.findtext("q:prompt", namespaces=NS) == "What is the capital of France?"

    def test_true_false_not_shuffled(self) -> None:
        q = _question(question_kind=QuestionKind.TRUE_FALSE)
        interaction = _item(q).find(".//q:choiceInteraction", namespaces=NS)
        assert interaction.get("shuffle") == "false"

    def test_response_processing_template(self) -> None:
        rp = _item(_question()).find("q:responseProcessing", namespaces=NS)
        assert rp.get("template").endswith("/rptemplates/match_correct")

    def test_special_characters_escaped(self) -> None:
        q = _question(
            prompt_text='Is 3 < 5 & "5" > 4?',
            answer_choices=(AnswerChoice("A", "<b>yes</b>", True), AnswerChoice("B", "no")),
        )
        raw = serialize(build_assessment_item(q, "question-q1"))
        assert b"3 &lt; 5 &amp;" in raw
        assert b"<b>" not in raw

        root = etree.fromstring(raw)
        assert root.findtext(".//q:prompt", namespaces=NS) == 'Is 3 < 5 & "5" > 4?'
        assert root.find(".//q:simpleChoice", namespaces=NS).text == "<b>yes</b>"

    def test_quotes_in_title_attribute(self) -> None:
        prompt = "Who said \"it's fine\"?"
        raw = serialize(build_assessment_item(_question(prompt_text=prompt), "question-q1"))
        assert b"&quot;" in raw
        assert etree.fromstring(raw).get("title") == prompt

    def test_explanation_as_modal_feedback(self) -> None:
        root = _item(_question(explanation="Paris has been the capital since 987."))
        feedback = root.find("q:modalFeedback", namespaces=NS)
        assert feedback.text == "Paris has been the capital since 987."
        outcomes = [o.get("identifier") for o in root.findall("q:outcomeDeclaration", namespaces=NS)]
        assert outcomes == ["SCORE", "FEEDBACK"]

    def test_no_feedback_without_explanation(self) -> None:
        assert _item(_question()).find("q:modalFeedback", namespaces=NS) is None


# ---------------------------------------------------------------------------
# Manifest
# ---------------------------------------------------------------------------


class TestManifest:
    def test_structure(self) -> None:
        root = etree.fromstring(serialize(build_manifest("pkg", ["question-a", "question-b"])))
        assert root.get("identifier") == "MANIFEST-QTIGUARD-pkg"
        assert root.findtext("cp:metadata/cp:schema", namespaces=NS) == "IMS Content"
        assert root.findtext("cp:metadata/cp:schemaversion", namespaces=NS) == "1.1"

        resources = root.findall("cp:resources/cp:resource", namespaces=NS)
        assert [r.get("href") for r in resources] == ["question-a.xml", "question-b.xml"]
        assert all(r.get("type") == "imsqti_item_xmlv2p1" for r in resources)
        assert resources[0].find("cp:file", namespaces=NS).get("href") == "question-a.xml"


# ---------------------------------------------------------------------------
# Package generation
# ---------------------------------------------------------------------------


class TestQtiGenerator:
    def test_package_layout(self) -> None:
        questions = [_question(question_id="one"), _question(question_id="two")]
        package = QtiGenerator().generate(questions, title="Geo Quiz")

        assert package.media_type == "application/zip"
        assert package.filename == "qti-export-geo_quiz.zip"
        entries = _unzip(package.content)
        assert sorted(entries) == [MANIFEST_NAME, "question-one.xml", "question-two.xml"]

    def test_default_filename(self) -> None:
        assert QtiGenerator().generate([_question()]).filename == "qti-export-questions.zip"

    def test_item_identifiers_follow_question_ids(self) -> None:
        package = QtiGenerator().generate([_question(question_id="abc")])
        root = etree.fromstring(_unzip(package.content)["question-abc.xml"])
        assert root.get("identifier") == "question-abc"

    def test_manifest_lists_every_item_in_order(self) -> None:
        questions = [_question(question_id=str(i)) for i in range(3)]
        package = QtiGenerator().generate(questions, package_id="fixed")
        manifest = etree.fromstring(_unzip(package.content)[MANIFEST_NAME])
        hrefs = [r.get("href") for r in manifest.findall(".//cp:resource", namespaces=NS)]
        assert hrefs == ["question-0.xml", "question-1.xml", "question-2.xml"]
        assert manifest.get("identifier") == "MANIFEST-QTIGUARD-fixed"

    def test_unrenderable_item_aborts_package(self) -> None:
        questions = [_question(question_id="ok"), _question(question_id="bad", prompt_text="bad \x01 text")]
        with pytest.raises(PackageGenerationError, match="position 1") as excinfo:
            QtiGenerator().generate(questions)
        assert isinstance(excinfo.value.__cause__, ValueError)

    def test_duplicate_ids_rejected(self) -> None:
        with pytest.raises(PackageGenerationError, match="Duplicate"):
            QtiGenerator().generate([_question(question_id="x"), _question(question_id="x")])

    def test_unresolved_correct_response_still_generates(self) -> None:
        q = _question(
            answer_choices=(AnswerChoice("A", "Paris"), AnswerChoice("B", "Berlin")),
            correct_answer=None,
        )
        package = QtiGenerator().generate([q])
        assert "question-q1.xml" in _unzip(package.content)
