"""Unit tests for the solver: models, tutor and session."""
import pytest
from pydantic import ValidationError

from mathfluent.llm import ChatMessage, LLMResponse
from mathfluent.notifications import NotificationVariant
from mathfluent.prompts import get_system_prompt, render_prompt
from mathfluent.solver import (
    ExplanationResult,
    MathTutor,
    SolutionResult,
    SolveRequest,
    SolverSession,
)
from mathfluent.solver.session import CANNOT_EXPLAIN_ERROR, NO_SOLUTION_ERROR
from mathfluent.solver.tutor import EXPLANATION_ERROR, SOLUTION_ERROR


class TestSolveRequest:
    """Tests for SolveRequest model."""

    def test_strips_problem(self):
        """Test that surrounding whitespace is removed."""
        assert SolveRequest(problem="  2x + 3 = 7 \n").problem == "2x + 3 = 7"

    def test_blank_problem_rejected(self):
        """Test that a whitespace-only problem fails validation."""
        with pytest.raises(ValidationError):
            SolveRequest(problem="   ")

    def test_blank_optional_fields_become_none(self):
        """Test that blank topic and skill level count as absent."""
        request = SolveRequest(problem="x", topic=" ", skill_level="")

        assert request.topic is None
        assert request.skill_level is None


class TestResults:
    """Tests for solution and explanation results."""

    def test_exactly_one_field_set(self):
        """Test that a result carries a value or an error, not both or neither."""
        with pytest.raises(ValidationError):
            SolutionResult()
        with pytest.raises(ValidationError):
            ExplanationResult(explanation="a", error="b")

    def test_ok(self):
        """Test the ok flag."""
        assert SolutionResult(solution="x").ok
        assert not ExplanationResult(error="boom").ok


class TestPrompts:
    """Tests for prompt templates."""

    def test_solution_prompt_contains_problem(self):
        """Test that the problem and context are substituted."""
        prompt = render_prompt("solution", problem=r"\int x\,dx", context="Topic: Calculus\n")

        assert r"\int x\,dx" in prompt
        assert "Topic: Calculus" in prompt

    def test_explain_prompt_contains_step_number(self):
        """Test the explanation prompt placeholders."""
        prompt = render_prompt("explain_step", problem="p", solution="s", step_number=3)

        assert "3" in prompt

    def test_missing_value_raises(self):
        """Test that an unfilled placeholder is an error."""
        with pytest.raises(KeyError):
            render_prompt("solution", problem="p")


class TestMathTutor:
    """Tests for MathTutor."""

    @pytest.mark.asyncio
    async def test_generate_solution(self, make_llm, sample_solution):
        """Test that the AI text is returned as the solution."""
        llm = make_llm(sample_solution + "\n\n")
        tutor = MathTutor(llm)

        result = await tutor.generate_solution(SolveRequest(problem="2x + 3 = 7", topic="Algebra"))

        assert result.solution == sample_solution
        assert result.error is None

        messages = llm.chat_completion.call_args.args[0]
        assert messages[0] == ChatMessage.system(get_system_prompt())
        assert messages[1].role == "user"
        assert "2x + 3 = 7" in messages[1].content
        assert "Topic: Algebra" in messages[1].content

    @pytest.mark.asyncio
    async def test_skill_level_in_prompt(self, make_llm):
        """Test that the skill level reaches the prompt."""
        llm = make_llm("Step 1: ok")
        await MathTutor(llm).generate_solution(SolveRequest(problem="1+1", skill_level="Beginner"))

        assert "Skill level: Beginner" in llm.chat_completion.call_args.args[0][1].content

    @pytest.mark.asyncio
    async def test_provider_error_becomes_result(self, make_llm):
        """Test that provider exceptions are converted to the fixed message."""
        llm = make_llm()
        llm.chat_completion.side_effect = RuntimeError("quota exceeded")

        result = await MathTutor(llm).generate_solution(SolveRequest(problem="x"))

        assert result.error == SOLUTION_ERROR
        assert result.solution is None

    @pytest.mark.asyncio
    async def test_empty_response_is_error(self, make_llm):
        """Test that an empty AI response is a failure."""
        result = await MathTutor(make_llm("   ")).generate_solution(SolveRequest(problem="x"))

        assert result.error == SOLUTION_ERROR

    @pytest.mark.asyncio
    async def test_explain_step(self, make_llm):
        """Test that problem, solution and 1-based step number are sent."""
        llm = make_llm("Because we subtract 3.")

        result = await MathTutor(llm).explain_step("2x + 3 = 7", "Step 1: a\nStep 2: b", 2)

        assert result.explanation == "Because we subtract 3."
        prompt = llm.chat_completion.call_args.args[0][1].content
        assert "2x + 3 = 7" in prompt
        assert "Step 1: a\nStep 2: b" in prompt

    @pytest.mark.asyncio
    async def test_explain_step_error(self, make_llm):
        """Test that explanation failures are converted to the fixed message."""
        llm = make_llm()
        llm.chat_completion.side_effect = ConnectionError()

        result = await MathTutor(llm).explain_step("p", "s", 1)

        assert result.error == EXPLANATION_ERROR


class TestSolverSession:
    """Tests for SolverSession."""

    @pytest.mark.asyncio
    async def test_submit_parses_steps(self, make_llm, sample_solution, notifier):
        """Test a successful submission."""
        session = SolverSession(MathTutor(make_llm(sample_solution)), notifier)

        result = await session.submit(SolveRequest(problem="2x + 3 = 7"))

        assert result.ok
        assert session.problem == "2x + 3 = 7"
        assert session.solution_text == sample_solution
        assert len(session.steps) == 3
        assert session.error is None
        assert session.is_loading is False
        assert notifier.titles == ["Processing Your Request", "Solution Generated!"]

    @pytest.mark.asyncio
    async def test_submit_failure(self, make_llm, notifier):
        """Test that a failed request sets the error and no steps."""
        llm = make_llm()
        llm.chat_completion.side_effect = RuntimeError("down")
        session = SolverSession(MathTutor(llm), notifier)

        await session.submit(SolveRequest(problem="x"))

        assert session.error == SOLUTION_ERROR
        assert session.steps == []
        assert session.is_loading is False
        assert notifier.notifications[-1].title == "Solution Generation Error"
        assert notifier.notifications[-1].variant == NotificationVariant.DESTRUCTIVE

    @pytest.mark.asyncio
    async def test_submit_tutor_raising(self, make_llm, notifier):
        """Test that an unexpected tutor exception still yields an error state."""

        class BrokenTutor:
            async def generate_solution(self, request):
                raise RuntimeError("bug")

        session = SolverSession(BrokenTutor(), notifier)  # type: ignore[arg-type]

        result = await session.submit(SolveRequest(problem="x"))

        assert result.error == SOLUTION_ERROR
        assert session.is_loading is False

    @pytest.mark.asyncio
    async def test_submit_empty_solution(self, make_llm, notifier):
        """Test that a tutor returning an empty solution is reported."""

        class EmptyTutor:
            async def generate_solution(self, request):
                return SolutionResult(solution="")

        session = SolverSession(EmptyTutor(), notifier)  # type: ignore[arg-type]

        result = await session.submit(SolveRequest(problem="x"))

        assert result.error == NO_SOLUTION_ERROR
        assert session.error == NO_SOLUTION_ERROR

    @pytest.mark.asyncio
    async def test_resubmit_replaces_steps(self, make_llm):
        """Test that a new submission discards the previous steps."""
        session = SolverSession(MathTutor(make_llm("Step 1: a\nStep 2: b", "Step 1: c")))

        await session.submit(SolveRequest(problem="first"))
        await session.submit(SolveRequest(problem="second"))

        assert [s.text for s in session.steps] == ["c"]
        assert session.problem == "second"

    @pytest.mark.asyncio
    async def test_direct_answer(self, make_llm):
        """Test that one long unstructured block is a direct answer."""
        session = SolverSession(MathTutor(make_llm("x" * 201)))
        await session.submit(SolveRequest(problem="p"))
        assert session.is_direct_answer

        session = SolverSession(MathTutor(make_llm("x" * 200)))
        await session.submit(SolveRequest(problem="p"))
        assert not session.is_direct_answer

    @pytest.mark.asyncio
    async def test_explain_step(self, make_llm, notifier):
        """Test that only the requested step receives the explanation."""
        llm = make_llm("Step 1: a\nStep 2: b", "Why b holds")
        session = SolverSession(MathTutor(llm), notifier)
        await session.submit(SolveRequest(problem="p"))
        notifier.drain()

        result = await session.explain_step(1)

        assert result.explanation == "Why b holds"
        assert session.steps[1].explanation == "Why b holds"
        assert session.steps[1].is_loading_explanation is False
        assert session.steps[0].explanation is None
        assert notifier.titles == ["Fetching Explanation", "Explanation Ready"]
        assert "2" in llm.chat_completion.call_args.args[0][1].content

    @pytest.mark.asyncio
    async def test_explain_step_error_is_per_step(self, make_llm, notifier):
        """Test that a failed explanation marks only that step."""
        llm = make_llm("Step 1: a\nStep 2: b", "Why a holds")
        session = SolverSession(MathTutor(llm), notifier)
        await session.submit(SolveRequest(problem="p"))
        await session.explain_step(0)

        llm.chat_completion.side_effect = RuntimeError("down")
        await session.explain_step(1)

        assert session.steps[0].explanation == "Why a holds"
        assert session.steps[1].explanation_error == EXPLANATION_ERROR
        assert session.steps[1].explanation is None
        assert notifier.titles[-1] == "Explanation Error"

    @pytest.mark.asyncio
    async def test_retry_clears_previous_error(self, make_llm):
        """Test that re-requesting an explanation resets the step's error."""
        llm = make_llm("Step 1: a")
        session = SolverSession(MathTutor(llm))
        await session.submit(SolveRequest(problem="p"))

        llm.chat_completion.side_effect = RuntimeError("down")
        await session.explain_step(0)
        assert session.steps[0].explanation_error == EXPLANATION_ERROR

        llm.chat_completion.side_effect = None
        llm.chat_completion.return_value = LLMResponse(content="Now it works", model="test-model")
        await session.explain_step(0)

        assert session.steps[0].explanation == "Now it works"
        assert session.steps[0].explanation_error is None

    @pytest.mark.asyncio
    async def test_explain_without_solution(self, make_llm, notifier):
        """Test that explaining before any solution is refused."""
        llm = make_llm()
        session = SolverSession(MathTutor(llm), notifier)

        result = await session.explain_step(0)

        assert result.error == CANNOT_EXPLAIN_ERROR
        assert notifier.titles == ["Cannot Explain Step"]
        llm.chat_completion.assert_not_called()

    @pytest.mark.asyncio
    async def test_explain_out_of_range(self, make_llm):
        """Test that an index outside the steps is refused."""
        session = SolverSession(MathTutor(make_llm("Step 1: a")))
        await session.submit(SolveRequest(problem="p"))

        assert (await session.explain_step(5)).error == CANNOT_EXPLAIN_ERROR
        assert (await session.explain_step(-1)).error == CANNOT_EXPLAIN_ERROR

