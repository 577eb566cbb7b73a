"""
config/prompts.py
──────────────────────────────────────────────────────────────────────────────
All LLM prompt strings in one place.

Why centralise prompts?
  • Easy to diff and review prompt changes in version control
  • Swap or tune a prompt without touching service logic
  • Single source for the response schema sent to the model

To change the classification prompt: edit CLASSIFY_SYSTEM_BASE below.
To change the output contract: change CLASSIFICATION_RESPONSE_SCHEMA and
domain/models.py LLMClassification together.
"""
from __future__ import annotations

from occupancy_translator.domain.models import Feedback, TrainingExample

# ── Response schema (Gemini responseSchema / OpenAPI subset) ───────────────────
CLASSIFICATION_RESPONSE_SCHEMA: dict = {
    "type": "object",
    "properties": {
        "suggested_occupancies": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "occupancy": {"type": "string"},
                    "reason": {"type": "string"},
                    "confidence": {
                        "type": "string",
                        "enum": ["high", "medium", "low"],
                    },
                },
                "required": ["occupancy", "reason"],
            },
        },
        "overall_reasoning": {"type": "string"},
    },
    "required": ["suggested_occupancies", "overall_reasoning"],
}

# ── Classification system prompt ───────────────────────────────────────────────
CLASSIFY_SYSTEM_BASE = """\
You are an Occupancy Translator for an insurance platform. Your job is to \
analyse business descriptions (written in English, Hindi or Hinglish) and \
match them to exact occupancy codes from a master list.

CRITICAL RULES:
1. You MUST NOT suggest any occupancy that is not an exact match from the \
provided master list.
2. If you cannot find a confident match, return an empty array for \
suggested_occupancies. Never guess.
3. Always provide reasoning linking each suggestion to specific phrases in \
the description.
4. Understand English, Hindi and Hinglish input.
5. LEARN from the recent corrections below and do not repeat those mistakes.
6. Training examples are GUIDANCE ONLY. They show reasoning patterns, not \
fixed input-output rules.
7. Adapt the reasoning to business types that are not in the training data.
8. Respond with JSON in the exact format given at the end.

FLEXIBILITY SAFEGUARDS:
- Prioritise understanding the BUSINESS ACTIVITY over keyword matching.
- If no training example is relevant, use general business knowledge and the \
master list.
- Never reject a description only because it is absent from the training data.
- Several valid suggestions are better than one forced answer.

Master Occupancy List:
{master_list}

TRAINING EXAMPLES (reference patterns, not rigid rules):
{examples_block}

RECENT CORRECTIONS (learn from these mistakes):
{corrections_block}

Response format (JSON only):
{{
  "suggested_occupancies": [
    {{
      "occupancy": "exact match from master list",
      "reason": "explanation linking to specific phrases",
      "confidence": "high|medium|low"
    }}
  ],
  "overall_reasoning": "summary of your thought process"
}}"""

NO_EXAMPLES_TEXT = "No relevant training examples found."
NO_CORRECTIONS_TEXT = "No recent corrections available."

EXAMPLE_BLOCK_TEMPLATE = """\
SIMILAR INPUT: "{description}"
REFERENCE MATCH: "{occupancy}"
NOTE: {reason}
USE AS: a pattern recognition guide only. Apply similar reasoning to the \
current description and match the underlying business activity to the most \
appropriate occupancy from the master list; do not copy this match."""

CORRECTION_BLOCK_TEMPLATE = """\
WRONG: "{wrong}" -> CORRECT: "{correct}"
Reason: {reason}"""

# ── User message template ──────────────────────────────────────────────────────
CLASSIFY_USER_TEMPLATE = """\
Analyse this business description and suggest appropriate occupancy codes:

"{description}"

Remember: only suggest exact matches from the master list. If uncertain, \
return an empty suggested_occupancies array.\
"""

# ── Flexibility guard additions (appended verbatim to the system prompt) ───────
FLEXIBILITY_HEADER = "\n\nFLEXIBILITY REMINDERS:"

FLEXIBILITY_NOVEL_LINES = (
    "- This appears to be a NOVEL business type not well represented in the training examples",
    "- Use general business-domain reasoning and knowledge",
    "- Focus on the CORE BUSINESS ACTIVITY and map it to the appropriate occupancy codes",
    "- Do not be constrained by the lack of similar training examples",
)

FLEXIBILITY_KNOWN_LINES = (
    "- Training examples are available: use them as REASONING GUIDES, not exact templates",
    "- ADAPT the logic patterns to this specific business description",
    "- Consider what makes this business different from the training examples",
)

FLEXIBILITY_COMMON_LINES = (
    "- Always explain the BUSINESS ACTIVITY being performed, not just keyword matches",
    "- Multiple valid suggestions are often better than one forced match",
    "- Stay strictly within the master occupancy list",
)

# ── Correction acknowledgment ──────────────────────────────────────────────────
CORRECTION_ACK_TEMPLATE = """\
Correction: my suggestion was wrong. For the business description \
"{description}", I suggested "{wrong}" but the correct occupancy should have \
been "{correct}".{reason_clause}

Please acknowledge this correction in a short, conversational tone and \
confirm that the feedback has been logged.\
"""

ACK_FALLBACK = (
    "Thank you for the correction. I have logged that for this type of "
    "description, the correct occupancy is noted. This feedback helps improve "
    "the system."
)
ACK_POSITIVE = "Feedback recorded successfully"
ACK_NEGATIVE_NO_CORRECTION = (
    "Feedback recorded. Add a correct occupancy next time so it can guide "
    "future suggestions."
)


def build_examples_block(examples: list[TrainingExample]) -> str:
    """Renders the retrieved training examples for the system prompt."""
    if not examples:
        return NO_EXAMPLES_TEXT
    return "\n\n".join(
        EXAMPLE_BLOCK_TEMPLATE.format(
            description=ex.business_description,
            occupancy=ex.correct_occupancy,
            reason=ex.reason,
        )
        for ex in examples
    )


def build_corrections_block(corrections: list[Feedback]) -> str:
    """Renders recent corrections; entries without a correction code are skipped."""
    lines = [
        CORRECTION_BLOCK_TEMPLATE.format(
            wrong=c.occupancy_code,
            correct=c.correction_code,
            reason=c.correction_reason or "No reason given",
        )
        for c in corrections
        if c.is_correction
    ]
    return "\n\n".join(lines) if lines else NO_CORRECTIONS_TEXT


def build_system_prompt(
    master_list: list[str],
    examples: list[TrainingExample],
    corrections: list[Feedback],
    flexibility_additions: str = "",
) -> str:
    """Assembles the classification system prompt.

    Args:
        master_list:           Every valid occupancy code, one per line.
        examples:              Annotated training examples from ExampleRetriever.
        corrections:           Recent negative feedback, most recent first.
        flexibility_additions: Text from build_prompt_additions(), appended verbatim.

    Returns:
        Complete system prompt string ready to send to the LLM.
    """
    base = CLASSIFY_SYSTEM_BASE.format(
        master_list="\n".join(master_list),
        examples_block=build_examples_block(examples),
        corrections_block=build_corrections_block(corrections),
    )
    return base + flexibility_additions


def build_user_message(description: str) -> str:
    return CLASSIFY_USER_TEMPLATE.format(description=description)


def build_correction_prompt(
    description: str,
    wrong: str,
    correct: str,
    reason: str | None = None,
) -> str:
    """Prompt for the short conversational acknowledgment of a correction."""
    return CORRECTION_ACK_TEMPLATE.format(
        description=description,
        wrong=wrong,
        correct=correct,
        reason_clause=f" Reason: {reason}" if reason else "",
    )
