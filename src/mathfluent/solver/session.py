"""Per-view solver state: the current problem, its steps and explanations."""

import logging

from ..config import DIRECT_ANSWER_THRESHOLD
from ..notifications import Notifier, notify
from .models import ExplanationResult, SolutionResult, SolutionStep, SolveRequest
from .parser import parse_solution_steps
from .tutor import EXPLANATION_ERROR, SOLUTION_ERROR, MathTutor

logger = logging.getLogger(__name__)

NO_SOLUTION_ERROR = "An unexpected error occurred, or the AI did not return a solution."
CANNOT_EXPLAIN_ERROR = "Missing problem or solution information to generate an explanation."


class SolverSession:
    """Holds one solver view's state across submissions.

    Submitting a new problem replaces every step. Each step fetches its
    explanation independently, with its own loading and error state.
    """

    def __init__(self, tutor: MathTutor, notifier: Notifier | None = None):
        self._tutor = tutor
        self._notifier = notifier
        self.problem: str = ""
        self.solution_text: str = ""
        self.steps: list[SolutionStep] = []
        self.error: str | None = None
        self.is_loading: bool = False

    @property
    def is_direct_answer(self) -> bool:
        """True when the AI answered with one long block instead of steps."""
        return len(self.steps) == 1 and len(self.steps[0].text) > DIRECT_ANSWER_THRESHOLD

    async def submit(self, request: SolveRequest) -> SolutionResult:
        """Request a solution for a new problem and parse it into steps."""
        self.is_loading = True
        self.error = None
        self.steps = []
        self.problem = request.problem
        self.solution_text = ""

        notify(self._notifier, "Processing Your Request", "The AI is working on your math problem...")

        try:
            result = await self._tutor.generate_solution(request)
        except Exception:
            logger.exception("Solution request raised")
            result = SolutionResult(error=SOLUTION_ERROR)
        finally:
            self.is_loading = False

        if not result.ok:
            self.error = result.error
            notify(self._notifier, "Solution Generation Error", result.error, destructive=True)
            return result

        if not result.solution:
            self.error = NO_SOLUTION_ERROR
            notify(self._notifier, "Error", NO_SOLUTION_ERROR, destructive=True)
            return SolutionResult(error=NO_SOLUTION_ERROR)

        self.solution_text = result.solution
        self.steps = parse_solution_steps(result.solution)
        logger.debug("Parsed %d steps", len(self.steps))
        notify(self._notifier, "Solution Generated!", "Your step-by-step solution is ready below.")
        return result

    async def explain_step(self, index: int) -> ExplanationResult:
        """Fetch the explanation for ``steps[index]`` (0-based).

        The step is put in its loading state before the request and receives
        either the explanation or an error afterwards. Nothing is retried.
        """
        if not self.problem or not self.solution_text or not 0 <= index < len(self.steps):
            notify(self._notifier, "Cannot Explain Step", CANNOT_EXPLAIN_ERROR, destructive=True)
            return ExplanationResult(error=CANNOT_EXPLAIN_ERROR)

        step = self.steps[index]
        step.start_loading()
        notify(self._notifier, "Fetching Explanation", f"AI is explaining step {index + 1}...")

        try:
            result = await self._tutor.explain_step(self.problem, self.solution_text, index + 1)
        except Exception:
            logger.exception("Explanation request for step %d raised", index + 1)
            result = ExplanationResult(error=EXPLANATION_ERROR)

        step.finish(result.explanation, result.error)

        if result.ok:
            notify(self._notifier, "Explanation Ready", f"Explanation for step {index + 1} is available.")
        else:
            notify(self._notifier, "Explanation Error", result.error, destructive=True)
        return result
