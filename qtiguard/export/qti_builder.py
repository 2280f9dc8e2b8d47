"""QTI 2.1 document builders: assessment items and the IMS content manifest.

Documents are built as lxml element trees and serialised in one place
(``serialize()``), so every piece of user text reaches the output through the
serializer's escaping.  No string templates.  lxml escapes ``&``, ``<`` and
``>`` in text, and quotes in attribute values; it leaves ``'`` and ``"`` literal
in element text, where they need no escaping, so the output is equivalent
to escaping all five metacharacters.

Only the subset needed for single-response choice items is produced:
``responseDeclaration`` + ``outcomeDeclaration`` + one ``choiceInteraction``
+ the ``match_correct`` response-processing template, plus an optional
``modalFeedback`` carrying the explanation.
"""
from __future__ import annotations

from collections.abc import Sequence

from lxml import etree

from qtiguard.questions.model import Question, QuestionKind

QTI_NS = "http://www.imsglobal.org/xsd/imsqti_v2p1"
IMSCP_NS = "http://www.imsglobal.org/xsd/imscp_v1p1"
IMSMD_NS = "http://www.imsglobal.org/xsd/imsmd_v1p2"
XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"

QTI_SCHEMA_LOCATION = f"{QTI_NS} http://www.imsglobal.org/xsd/imsqti_v2p1.xsd"
MANIFEST_SCHEMA_LOCATION = (
    f"{IMSCP_NS} http://www.imsglobal.org/xsd/imscp_v1p1.xsd "
    f"{IMSMD_NS} http://www.imsglobal.org/xsd/imsmd_v1p2p4.xsd "
    f"{QTI_SCHEMA_LOCATION}"
)
MATCH_CORRECT_TEMPLATE = f"{QTI_NS}/rptemplates/match_correct"

ITEM_RESOURCE_TYPE = "imsqti_item_xmlv2p1"
RESPONSE_ID = "RESPONSE"
FEEDBACK_ID = "FEEDBACK"
DEFAULT_TITLE_MAX_CHARS = 50


def _qti(tag: str) -> str:
    return f"{{{QTI_NS}}}{tag}"


def _cp(tag: str) -> str:
    return f"{{{IMSCP_NS}}}{tag}"


def choice_identifier(index: int) -> str:
    return f"CHOICE_{index}"


def item_identifier(question: Question) -> str:
    return f"question-{question.question_id}"


def item_filename(item_id: str) -> str:
    return f"{item_id}.xml"


# ---------------------------------------------------------------------------
# Correct-response resolution
# ---------------------------------------------------------------------------


def resolve_correct_choice(question: Question) -> int | None:
    """Index of the correct choice, or None when it cannot be resolved.

    Resolution order:
    1. the first choice flagged ``is_correct``;
    2. ``correct_answer`` equal to a choice's literal text, then to a choice's
       label (labels compared case-insensitively), first match wins;
    3. None: the item is still emitted, with an empty correct response.
    """
    flagged = question.flagged_correct
    if flagged:
        return flagged[0]

    answer = question.correct_answer
    if answer is None or answer == "":
        return None
    for index, choice in enumerate(question.answer_choices):
        if choice.text == answer:
            return index
    for index, choice in enumerate(question.answer_choices):
        if choice.label and choice.label.lower() == answer.strip().lower():
            return index
    return None


def make_title(prompt_text: str, max_chars: int = DEFAULT_TITLE_MAX_CHARS) -> str:
    """Short human-readable item title: the first *max_chars* of the prompt.

    Surrounding whitespace is stripped before truncating, so an indented
    prompt still yields *max_chars* of visible text.
    """
    return prompt_text.strip()[:max_chars]


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def build_assessment_item(
    question: Question,
    item_id: str,
    *,
    title_max_chars: int = DEFAULT_TITLE_MAX_CHARS,
) -> etree._Element:
    """Return the ``assessmentItem`` element tree for *question*."""
    correct_index = resolve_correct_choice(question)
    correct_value = choice_identifier(correct_index) if correct_index is not None else ""

    root = etree.Element(_qti("assessmentItem"), nsmap={None: QTI_NS, "xsi": XSI_NS})
    root.set(f"{{{XSI_NS}}}schemaLocation", QTI_SCHEMA_LOCATION)
    root.set("identifier", item_id)
    root.set("title", make_title(question.prompt_text, title_max_chars))
    root.set("adaptive", "false")
    root.set("timeDependent", "false")

    response = etree.SubElement(
        root,
        _qti("responseDeclaration"),
        identifier=RESPONSE_ID,
        cardinality="single",
        baseType="identifier",
    )
    correct = etree.SubElement(response, _qti("correctResponse"))
    etree.SubElement(correct, _qti("value")).text = correct_value

    outcome = etree.SubElement(
        root,
        _qti("outcomeDeclaration"),
        identifier="SCORE",
        cardinality="single",
        baseType="float",
    )
    default = etree.SubElement(outcome, _qti("defaultValue"))
    etree.SubElement(default, _qti("value")).text = "0"

    if question.explanation:
        etree.SubElement(
            root,
            _qti("outcomeDeclaration"),
            identifier=FEEDBACK_ID,
            cardinality="single",
            baseType="identifier",
        )

    body = etree.SubElement(root, _qti("itemBody"))
    interaction = etree.SubElement(
        body,
        _qti("choiceInteraction"),
        responseIdentifier=RESPONSE_ID,
        # True/False choices keep their authored order
        shuffle="false" if question.question_kind is QuestionKind.TRUE_FALSE else "true",
        maxChoices="1",
    )
    etree.SubElement(interaction, _qti("prompt")).text = question.prompt_text
    for index, choice in enumerate(question.answer_choices):
        element = etree.SubElement(
            interaction,
            _qti("simpleChoice"),
            identifier=choice_identifier(index),
        )
        element.text = choice.text

    etree.SubElement(root, _qti("responseProcessing"), template=MATCH_CORRECT_TEMPLATE)

    if question.explanation:
        # showHide="hide": shown unless FEEDBACK equals EXPLANATION, which
        # match_correct never sets, so the rationale is always displayed.
        feedback = etree.SubElement(
            root,
            _qti("modalFeedback"),
            outcomeIdentifier=FEEDBACK_ID,
            identifier="EXPLANATION",
            showHide="hide",
        )
        feedback.text = question.explanation
    return root


def build_manifest(package_id: str, item_ids: Sequence[str]) -> etree._Element:
    """Return the ``manifest`` element tree listing every item document."""
    root = etree.Element(
        _cp("manifest"),
        nsmap={None: IMSCP_NS, "imsmd": IMSMD_NS, "imsqti": QTI_NS, "xsi": XSI_NS},
    )
    root.set(f"{{{XSI_NS}}}schemaLocation", MANIFEST_SCHEMA_LOCATION)
    root.set("identifier", f"MANIFEST-QTIGUARD-{package_id}")

    metadata = etree.SubElement(root, _cp("metadata"))
    etree.SubElement(metadata, _cp("schema")).text = "IMS Content"
    etree.SubElement(metadata, _cp("schemaversion")).text = "1.1"

    etree.SubElement(root, _cp("organizations"))
    resources = etree.SubElement(root, _cp("resources"))
    for item_id in item_ids:
        href = item_filename(item_id)
        resource = etree.SubElement(
            resources,
            _cp("resource"),
            identifier=f"RES-{item_id}",
            type=ITEM_RESOURCE_TYPE,
            href=href,
        )
        etree.SubElement(resource, _cp("file"), href=href)
    return root


def serialize(root: etree._Element) -> bytes:
    """UTF-8 bytes with an XML declaration."""
    return etree.tostring(root, xml_declaration=True, encoding="UTF-8", pretty_print=True)
