"""Heuristic splitting of AI solution text into steps.

A step starts at a line beginning with ``Step <n>:`` or ``<n>.``; every
following line belongs to that step until the next such line. Markup such as
LaTeX passes through untouched.
"""

import re
from uuid import uuid4

from .models import SolutionStep

STEP_MARKER = re.compile(r"^(Step\s*\d+:|\d+\.\s*)", re.IGNORECASE)


def _new_step(index: int, text: str) -> SolutionStep:
    return SolutionStep(id=f"step-{index}-{uuid4().hex}", text=text)


def strip_marker(line: str) -> str:
    """Remove a leading step marker from a line."""
    return STEP_MARKER.sub("", line, count=1).strip()


def parse_solution_steps(solution_text: str) -> list[SolutionStep]:
    """Split raw solution text into ordered steps.

    Args:
        solution_text: Full text returned by the AI service

    Returns:
        Steps in input order. Empty for blank input; a single step holding
        the whole trimmed text when no step could be formed.
    """
    if not solution_text or not solution_text.strip():
        return []

    lines = [line.strip() for line in solution_text.split("\n")]
    lines = [line for line in lines if line]

    texts: list[str] = []
    current: list[str] = []
    for line in lines:
        if STEP_MARKER.match(line):
            if current:
                texts.append("\n".join(current).strip())
            first = strip_marker(line)
            current = [first] if first else []
        else:
            current.append(line)

    if current:
        texts.append("\n".join(current).strip())

    texts = [text for text in texts if text]
    if not texts:
        return [_new_step(0, solution_text.strip())]

    return [_new_step(i, text) for i, text in enumerate(texts)]
