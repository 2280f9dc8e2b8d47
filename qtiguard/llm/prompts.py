"""Prompt templates for LLM-assisted PII detection.

Templates use Python ``.format()`` placeholders and instruct the model to
answer with a single JSON object.  Unlike the log pipeline, these prompts
necessarily carry the raw field text: locating PII is the whole point of the
call.  The text is never logged.
"""
from __future__ import annotations

from qtiguard.pii.entities import PIIKind

SYSTEM_PROMPT = (
    "You are a PII (Personally Identifiable Information) detection system "
    "for assessment content.  You ONLY output valid JSON.  No prose, no "
    "markdown fences, no commentary."
)

#: Closed vocabulary offered to the model, in prompt order.
MODEL_KIND_VOCABULARY: tuple[str, ...] = (
    PIIKind.NAME.value,
    PIIKind.ADDRESS.value,
    PIIKind.EMAIL.value,
    PIIKind.PHONE.value,
    PIIKind.SSN.value,
    PIIKind.CREDIT_CARD.value,
    PIIKind.IP_ADDRESS.value,
    PIIKind.OTHER.value,
)

DETECT_PII = (
    "Analyze the following text and identify all PII entities.\n"
    "Focus on context-dependent PII that pattern matching might miss, such as:\n"
    "- Names of people\n"
    "- Physical addresses\n"
    "- Medical conditions or health data\n"
    "- Job titles specific enough to identify a person\n"
    "- Organization names when the context implies privacy\n"
    "\n"
    "Do NOT flag generic terms.  Only flag specific entities.  Copy each "
    "value exactly as it appears in the text.\n"
    "\n"
    "Respond with a JSON object of this shape:\n"
    "{{\n"
    "  \"entities\": [\n"
    "    {{\"type\": one of {vocabulary}, "
    "\"value\": \"exact string found in text\", "
    "\"confidence\": 0.0 to 1.0}}\n"
    "  ]\n"
    "}}\n"
    "\n"
    "Text to analyze:\n"
    "\"\"\"\n"
    "{text}\n"
    "\"\"\"\n"
    "\n"
    "Respond ONLY with valid JSON.  No additional text."
)


def build_detect_prompt(text: str) -> str:
    """Fill the DETECT_PII template for *text*."""
    vocabulary = " | ".join(f'"{kind}"' for kind in MODEL_KIND_VOCABULARY)
    return DETECT_PII.format(vocabulary=vocabulary, text=text)


PROMPT_TEMPLATES: dict[str, str] = {
    "detect_pii": DETECT_PII,
}
