"""Tests for the build / solve / refine / re-solve run."""

from __future__ import annotations

import pytest

from dietsolver.exceptions import SOLVER_FAILURE, PreconditionError, SolverError
from dietsolver.export.writers import ListWriter
from dietsolver.optimizer.backends.highs import HighsModel, HighsSession
from dietsolver.optimizer.models import Comparator, SolveStatus
from dietsolver.optimizer.orchestrator import (
    Refinement,
    RunState,
    SolveOrchestrator,
    dairy_refinement,
)


class CountingModel(HighsModel):
    """HiGHS model that counts how often it is released."""

    def __init__(self, name, releases):
        super().__init__(name)
        self.releases = releases

    def _release(self):
        self.releases["model"] += 1
        super()._release()


class FailingModel(CountingModel):
    """Model whose solver fails on every optimize call."""

    def optimize(self):
        raise SolverError(SOLVER_FAILURE, "license seat unavailable")


class CountingSession(HighsSession):
    """HiGHS session that records model and session releases."""

    def __init__(self, model_class=CountingModel):
        super().__init__()
        self.model_class = model_class
        self.releases = {"model": 0, "session": 0}

    def _new_model(self, name):
        return self.model_class(name, self.releases)

    def _release(self):
        self.releases["session"] += 1


class BrokenCloseSession(CountingSession):
    """Session whose release fails after counting."""

    def _release(self):
        super()._release()
        raise SolverError(SOLVER_FAILURE, "environment already freed")


def parse_section(lines, header):
    """Map name -> amount for the lines following a report header."""
    start = lines.index(header) + 1
    section = {}
    for line in lines[start:]:
        if line.startswith("\n") or line == "No solution":
            break
        name, amount = line.rsplit(" ", 1)
        section[name] = float(amount)
    return section


class TestDietRun:
    """End-to-end run on the built-in dataset."""

    @pytest.fixture
    def run(self, writer):
        orchestrator = SolveOrchestrator(writer)
        outcomes = orchestrator.run()
        return orchestrator, outcomes, writer.lines

    def test_first_solve_is_optimal(self, run):
        _, outcomes, lines = run

        assert outcomes[0].status is SolveStatus.OPTIMAL
        assert outcomes[0].objective_value == pytest.approx(11.8288611111111, rel=1e-9)
        assert lines[0].startswith("\nCost: ")
        assert float(lines[0].split(": ")[1]) == pytest.approx(11.8288611111111, rel=1e-9)

    def test_first_solve_purchases(self, run):
        _, _, lines = run

        buy = parse_section(lines, "\nBuy:")
        assert list(buy) == ["hamburger", "milk", "ice cream"]
        assert buy["hamburger"] == pytest.approx(0.604513888888889, rel=1e-6)
        assert buy["milk"] == pytest.approx(6.97013888888889, rel=1e-6)
        assert buy["ice cream"] == pytest.approx(2.59131944444444, rel=1e-6)

    def test_first_solve_nutrition(self, run, problem):
        _, _, lines = run

        buy = parse_section(lines, "\nBuy:")
        nutrition = parse_section(lines, "\nNutrition:")
        assert list(nutrition) == ["calories", "protein", "fat", "sodium"]

        for i, category in enumerate(problem.categories):
            total = sum(
                problem.nutrient_amount(problem.food_index(name), i) * amount
                for name, amount in buy.items()
            )
            assert nutrition[category.name] == pytest.approx(total, abs=1e-6)
            assert category.min_bound - 1e-6 <= total <= category.max_bound + 1e-6

        assert nutrition["calories"] == pytest.approx(1800)
        assert nutrition["protein"] == pytest.approx(91)
        assert nutrition["fat"] == pytest.approx(59.0559027777778, rel=1e-6)
        assert nutrition["sodium"] == pytest.approx(1779)

    def test_output_order(self, run):
        _, _, lines = run

        assert lines[1] == "\nBuy:"
        assert lines[5] == "\nNutrition:"
        assert lines[10] == "\nAdding constraint: at most 6 servings of dairy"
        assert lines[11] == "No solution"
        assert len(lines) == 12

    def test_dairy_limit_makes_model_infeasible(self, run):
        orchestrator, outcomes, _ = run

        assert len(outcomes) == 2
        assert not outcomes[1].is_optimal
        assert outcomes[1].objective_value is None
        assert orchestrator.state is RunState.DISPOSED
        assert orchestrator.model.disposed
        assert orchestrator.session.closed


class TestResourceRelease:
    """Model and session are released exactly once per run."""

    def test_release_after_no_solution(self, writer):
        session = CountingSession()
        SolveOrchestrator(writer, sessions=lambda: session).run()

        assert "No solution" in writer.lines
        assert session.releases == {"model": 1, "session": 1}

    def test_release_when_solver_fails(self, writer):
        session = CountingSession(model_class=FailingModel)
        orchestrator = SolveOrchestrator(writer, sessions=lambda: session)

        with pytest.raises(SolverError) as exc:
            orchestrator.run()

        assert exc.value.code == SOLVER_FAILURE
        assert session.releases == {"model": 1, "session": 1}
        assert orchestrator.state is RunState.DISPOSED
        assert writer.lines == []

    def test_release_when_session_cannot_open(self, writer):
        def no_license():
            raise SolverError(10009, "no license")

        orchestrator = SolveOrchestrator(writer, sessions=no_license)
        with pytest.raises(SolverError):
            orchestrator.run()
        assert orchestrator.state is RunState.DISPOSED

    def test_release_failure_keeps_original_error(self, writer, caplog):
        """The solve failure is raised; the failed close is only logged."""
        session = BrokenCloseSession(model_class=FailingModel)
        orchestrator = SolveOrchestrator(writer, sessions=lambda: session)

        with pytest.raises(SolverError) as exc:
            orchestrator.run()

        assert exc.value.message == "license seat unavailable"
        assert "Failed to release solver resources" in caplog.text
        assert session.releases == {"model": 1, "session": 1}
        assert orchestrator.state is RunState.DISPOSED

    def test_release_failure_after_clean_run(self, writer):
        session = BrokenCloseSession()
        orchestrator = SolveOrchestrator(writer, sessions=lambda: session)

        with pytest.raises(SolverError, match="environment already freed"):
            orchestrator.run()

        assert "No solution" in writer.lines
        assert orchestrator.state is RunState.DISPOSED

    def test_release_is_idempotent(self, writer):
        session = CountingSession()
        orchestrator = SolveOrchestrator(writer, sessions=lambda: session)
        orchestrator.run()
        orchestrator.release()

        assert session.releases == {"model": 1, "session": 1}


class TestRefinements:
    """Tests for the generalized refinement sequence."""

    def test_no_refinements_solves_once(self, small_problem, writer):
        outcomes = SolveOrchestrator(writer, problem=small_problem, refinements=[]).run()

        assert len(outcomes) == 1
        assert outcomes[0].objective_value == pytest.approx(4.0)
        assert writer.lines[0] == "\nCost: 4"

    def test_refinements_apply_in_order(self, small_problem, writer):
        def cap_bread(builder, model):
            model.add_constraint(builder.buy["bread"], Comparator.LESS_EQUAL, 4.0, "cap_bread")

        def no_milk(builder, model):
            model.add_constraint(builder.buy["milk"], Comparator.EQUAL, 0.0, "no_milk")

        refinements = [
            Refinement("\nAdding constraint: at most 4 loaves", cap_bread),
            Refinement("\nAdding constraint: no milk", no_milk),
        ]
        orchestrator = SolveOrchestrator(writer, problem=small_problem, refinements=refinements)
        outcomes = orchestrator.run()

        assert [o.is_optimal for o in outcomes] == [True, True, True]
        assert outcomes[0].objective_value < outcomes[1].objective_value
        assert outcomes[1].objective_value <= outcomes[2].objective_value
        announcements = [line for line in writer.lines if line.startswith("\nAdding")]
        assert announcements == [r.announcement for r in refinements]

    def test_dairy_refinement_announcement(self):
        assert dairy_refinement().announcement == (
            "\nAdding constraint: at most 6 servings of dairy"
        )
        assert "at most 10 servings" in dairy_refinement(10).announcement

    def test_looser_dairy_limit_stays_feasible(self, writer):
        outcomes = SolveOrchestrator(
            writer, refinements=[dairy_refinement(limit=20.0)]
        ).run()

        assert outcomes[1].is_optimal
        assert outcomes[1].objective_value == pytest.approx(outcomes[0].objective_value)


class TestStateMachine:
    """Steps must run in scripted order."""

    def test_cannot_run_twice(self):
        orchestrator = SolveOrchestrator(ListWriter())
        orchestrator.run()

        with pytest.raises(PreconditionError):
            orchestrator.run()

    def test_cannot_refine_before_solving(self):
        orchestrator = SolveOrchestrator(ListWriter())
        orchestrator.build_model()
        try:
            with pytest.raises(PreconditionError):
                orchestrator.apply_refinement(dairy_refinement())
            assert orchestrator.state is RunState.MODEL_BUILT
        finally:
            orchestrator.release()

    def test_step_by_step(self):
        writer = ListWriter()
        orchestrator = SolveOrchestrator(writer)
        try:
            orchestrator.build_model()
            assert orchestrator.model.constraint_names == [
                "calories",
                "protein",
                "fat",
                "sodium",
            ]
            assert orchestrator.solve_and_report().is_optimal
            orchestrator.apply_refinement(dairy_refinement())
            assert orchestrator.state is RunState.CONSTRAINT_ADDED
            assert orchestrator.model.constraint_names[-1] == "limit_dairy"
            assert not orchestrator.solve_and_report().is_optimal
        finally:
            orchestrator.release()
        assert orchestrator.state is RunState.DISPOSED
