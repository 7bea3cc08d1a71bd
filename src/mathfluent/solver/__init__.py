"""Math solver: AI solutions parsed into steps with on-demand explanations."""

from .models import ExplanationResult, SolutionResult, SolutionStep, SolveRequest
from .parser import STEP_MARKER, parse_solution_steps
from .session import SolverSession
from .tutor import MathTutor

__all__ = [
    "ExplanationResult",
    "MathTutor",
    "STEP_MARKER",
    "SolutionResult",
    "SolutionStep",
    "SolveRequest",
    "SolverSession",
    "parse_solution_steps",
]
