"""AI collaborator for solving problems and explaining steps.

Every failure (provider exception, empty response) is caught here and
returned as a structured result; nothing propagates to the caller.
"""

import logging

from ..llm import ChatMessage, LLMProvider
from ..prompts import get_system_prompt, render_prompt
from .models import ExplanationResult, SolutionResult, SolveRequest

logger = logging.getLogger(__name__)

SOLUTION_ERROR = "Failed to generate solution. Please try again."
EXPLANATION_ERROR = "Failed to explain step. Please try again."


class MathTutor:
    """Generates step-by-step solutions and per-step explanations.

    Hidden design decisions:
    - Prompt wording and LaTeX formatting instructions
    - Which LLM provider answers
    - Conversion of provider failures into user-facing messages
    """

    def __init__(self, llm: LLMProvider, temperature: float = 0.2):
        self._llm = llm
        self._temperature = temperature

    async def _complete(self, prompt: str) -> str:
        response = await self._llm.chat_completion(
            [ChatMessage.system(get_system_prompt()), ChatMessage.user(prompt)],
            temperature=self._temperature,
        )
        if response.is_empty:
            raise ValueError(f"{response.model} returned an empty response")
        return response.content.strip()

    async def generate_solution(self, request: SolveRequest) -> SolutionResult:
        """Ask the AI service for a step-by-step solution."""
        context_lines = []
        if request.topic:
            context_lines.append(f"Topic: {request.topic}")
        if request.skill_level:
            context_lines.append(f"Skill level: {request.skill_level}")
        context = "".join(f"{line}\n" for line in context_lines)

        try:
            prompt = render_prompt("solution", problem=request.problem, context=context)
            solution = await self._complete(prompt)
        except Exception:
            logger.exception("Error generating solution")
            return SolutionResult(error=SOLUTION_ERROR)

        return SolutionResult(solution=solution)

    async def explain_step(
        self,
        problem: str,
        solution: str,
        step_number: int
    ) -> ExplanationResult:
        """Ask the AI service to explain one step of a solution.

        Args:
            problem: The original problem text
            solution: The complete solution text, as context
            step_number: 1-indexed step to explain
        """
        try:
            prompt = render_prompt(
                "explain_step",
                problem=problem,
                solution=solution,
                step_number=step_number,
            )
            explanation = await self._complete(prompt)
        except Exception:
            logger.exception("Error explaining step %d", step_number)
            return ExplanationResult(error=EXPLANATION_ERROR)

        return ExplanationResult(explanation=explanation)
