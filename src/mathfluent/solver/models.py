"""Data models for the math solver."""

from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class SolveRequest(BaseModel):
    """A problem submitted for a step-by-step solution."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    problem: str = Field(
        min_length=1,
        description="The math problem, as plain text or LaTeX"
    )
    topic: str | None = Field(default=None, description="Math topic, e.g. Algebra")
    skill_level: str | None = Field(default=None, description="e.g. beginner, advanced")

    @field_validator("topic", "skill_level")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        """Treat blank optional fields as absent."""
        return v or None


class SolutionStep(BaseModel):
    """One step of a parsed solution, with its on-demand explanation state."""

    id: str = Field(default_factory=lambda: f"step-{uuid4().hex}")
    text: str = Field(description="Step text; may embed LaTeX")
    explanation: str | None = None
    is_loading_explanation: bool = False
    explanation_error: str | None = None

    def start_loading(self) -> None:
        """Enter the loading state, clearing any prior outcome."""
        self.is_loading_explanation = True
        self.explanation = None
        self.explanation_error = None

    def finish(self, explanation: str | None, error: str | None) -> None:
        """Leave the loading state with the fetch outcome."""
        self.is_loading_explanation = False
        self.explanation = explanation
        self.explanation_error = error


class _Outcome(BaseModel):
    """Result-or-error value; exactly one side is set."""

    model_config = ConfigDict(frozen=True)

    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class SolutionResult(_Outcome):
    """Outcome of a solution request."""

    solution: str | None = None

    @model_validator(mode="after")
    def exactly_one(self) -> "SolutionResult":
        if (self.solution is None) == (self.error is None):
            raise ValueError("exactly one of solution or error must be set")
        return self


class ExplanationResult(_Outcome):
    """Outcome of a step explanation request."""

    explanation: str | None = None

    @model_validator(mode="after")
    def exactly_one(self) -> "ExplanationResult":
        if (self.explanation is None) == (self.error is None):
            raise ValueError("exactly one of explanation or error must be set")
        return self
