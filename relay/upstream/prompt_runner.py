"""PromptRunner: formats the system/user messages sent upstream."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


PLAIN_TEXT_SYSTEM_PROMPT = (
    "You are a strict grader. Return plain text only. "
    "Do NOT wrap output in Markdown or code fences. Do NOT output ``` blocks."
)

VERDICT_SYSTEM_PROMPT = """You are a supportive but rigorous teacher giving feedback on a learner's written response.
Return a single JSON object and nothing else. No Markdown, no code fences.
Keys:
- verdict: one of "meets", "partially_meets", "not_yet"
- feedback: two to four sentences addressed to the learner
"""

COACH_SYSTEM_PROMPT = """You are a learning coach reviewing a learner's written response against success criteria.
Return a single JSON object and nothing else. No Markdown, no code fences.
Keys:
- verdict: one of "meets", "partially_meets", "not_yet"
- summary: one or two sentences on the overall response
- criteria_feedback: array of short strings, one per criterion, in the order given
- next_step: one concrete action the learner should take next
"""

PROMPT_TEMPLATE = "{prompt}"

SUBMISSION_TEMPLATE = """Learning objective:
{learning_objective}

Success criteria:
{criteria}

Learner response:
{response_text}

Respond with JSON only.
"""


def format_criteria(criteria: List[str]) -> str:
    return "\n".join(f"{i}. {c}" for i, c in enumerate(criteria, start=1))


class PromptRunner:
    """
    Formats the two-message conversation for one relay request.

    Example:
        runner = PromptRunner(system_prompt=VERDICT_SYSTEM_PROMPT, template=SUBMISSION_TEMPLATE)
        messages = runner.build_messages({"response_text": "...", ...})
    """

    def __init__(self, system_prompt: str, template: Optional[str] = None):
        self.system_prompt = system_prompt
        self.template = template or PROMPT_TEMPLATE

    def _format_prompt(self, fields: Mapping[str, Any]) -> str:
        values: Dict[str, Any] = dict(fields)
        if isinstance(values.get("criteria"), list):
            values["criteria"] = format_criteria(values["criteria"])
        return self.template.format(**values)

    def build_messages(self, fields: Mapping[str, Any]) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": self._format_prompt(fields)},
        ]
