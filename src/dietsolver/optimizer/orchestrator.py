"""Drive one build / solve / refine / re-solve run of the diet LP.

The orchestrator owns the solver session and model for the whole run and
releases both exactly once, whether the run completes or a step raises.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence

from dietsolver.data.problem import ProblemData, default_problem
from dietsolver.exceptions import PreconditionError
from dietsolver.export.writers import OutputWriter, format_number
from dietsolver.optimizer.backends import SessionFactory, session_factory
from dietsolver.optimizer.backends.base import LpModel, LpSession
from dietsolver.optimizer.builder import DAIRY_LIMIT, LpModelBuilder
from dietsolver.optimizer.models import Sense, SolveOutcome, SolveStatus

logger = logging.getLogger(__name__)


class RunState(Enum):
    """Lifecycle of an orchestrated run."""

    UNINITIALIZED = "uninitialized"
    MODEL_BUILT = "model_built"
    SOLVED = "solved"
    CONSTRAINT_ADDED = "constraint_added"
    DISPOSED = "disposed"


@dataclass(frozen=True)
class Refinement:
    """Constraints applied to the model between two solves."""

    announcement: str
    apply: Callable[[LpModelBuilder, LpModel], None]


def dairy_refinement(limit: float = DAIRY_LIMIT) -> Refinement:
    """The scripted refinement: at most ``limit`` servings of dairy."""
    return Refinement(
        announcement=f"\nAdding constraint: at most {limit:g} servings of dairy",
        apply=lambda builder, model: builder.add_extra_constraint(model, limit=limit),
    )


class SolveOrchestrator:
    """Build the diet model, solve it, refine it and solve again.

    With the default arguments a run writes, in order: the first solution,
    the dairy announcement, and the second solution.
    """

    def __init__(
        self,
        writer: OutputWriter,
        problem: Optional[ProblemData] = None,
        sessions: Optional[SessionFactory] = None,
        refinements: Optional[Sequence[Refinement]] = None,
        model_name: str = "diet",
    ):
        """Initialize the orchestrator.

        Args:
            writer: Line sink for the report
            problem: Diet data; the built-in dataset if None
            sessions: Callable opening a solver session; HiGHS if None
            refinements: Applied one at a time, each followed by a re-solve;
                the dairy limit if None
            model_name: Name given to the solver model
        """
        self.writer = writer
        self.problem = problem if problem is not None else default_problem()
        self.sessions = sessions if sessions is not None else session_factory("highs")
        self.refinements = (
            list(refinements) if refinements is not None else [dairy_refinement()]
        )
        self.model_name = model_name

        self.builder = LpModelBuilder(self.problem)
        self.state = RunState.UNINITIALIZED
        self.session: Optional[LpSession] = None
        self.model: Optional[LpModel] = None

    def _expect(self, *states: RunState) -> None:
        if self.state not in states:
            raise PreconditionError(
                f"Invalid step in state '{self.state.value}', expected one of "
                f"{[s.value for s in states]}"
            )

    def run(self) -> list[SolveOutcome]:
        """Execute the full script and return one outcome per solve.

        Raises:
            SolverError: If the solver session fails; resources are still
                released before the error propagates. A failure while
                releasing after an earlier error is logged, and the earlier
                error is the one raised.
        """
        self._expect(RunState.UNINITIALIZED)
        outcomes = []
        try:
            self.build_model()
            outcomes.append(self.solve_and_report())
            for refinement in self.refinements:
                self.apply_refinement(refinement)
                outcomes.append(self.solve_and_report())
        except BaseException:
            try:
                self.release()
            except Exception:
                logger.exception("Failed to release solver resources")
            raise
        self.release()
        return outcomes

    def build_model(self) -> None:
        """Open the session and create the fully constrained model."""
        self._expect(RunState.UNINITIALIZED)
        self.session = self.sessions()
        self.model = self.session.create_model(self.model_name)

        self.builder.setup_decision_variables(self.model)
        self.model.set_objective(self.builder.objective_expression(), Sense.MINIMIZE)
        # Pending variables must be integrated before constraints use them
        self.model.update()
        self.builder.add_nutrition_constraints(self.model)

        self.state = RunState.MODEL_BUILT
        logger.info(
            "Built model '%s': %d categories, %d foods",
            self.model_name,
            self.problem.num_categories,
            self.problem.num_food_types,
        )

    def solve_and_report(self) -> SolveOutcome:
        """Optimize the model and write the solution or "No solution"."""
        self._expect(RunState.MODEL_BUILT, RunState.CONSTRAINT_ADDED)
        status = self.model.optimize()
        self.state = RunState.SOLVED

        if status is not SolveStatus.OPTIMAL:
            self.writer.write_line("No solution")
            return SolveOutcome(status=status)

        objective = self.model.objective_value
        self.writer.write_line(f"\nCost: {format_number(objective)}")
        self.builder.write_results(self.writer)
        return SolveOutcome(status=status, objective_value=objective)

    def apply_refinement(self, refinement: Refinement) -> None:
        """Announce and add the refinement's constraints."""
        self._expect(RunState.SOLVED)
        self.writer.write_line(refinement.announcement)
        refinement.apply(self.builder, self.model)
        self.state = RunState.CONSTRAINT_ADDED
        logger.info("Applied refinement: %s", refinement.announcement.strip())

    def release(self) -> None:
        """Dispose the model and close the session. Safe to call repeatedly."""
        if self.state is RunState.DISPOSED:
            return
        try:
            if self.model is not None:
                self.model.dispose()
        finally:
            try:
                if self.session is not None:
                    self.session.close()
            finally:
                self.state = RunState.DISPOSED
