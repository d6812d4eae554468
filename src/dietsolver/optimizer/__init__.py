"""Model construction and incremental re-solve of the diet LP."""

from dietsolver.optimizer.builder import LpModelBuilder
from dietsolver.optimizer.models import (
    Comparator,
    DecisionVariableSpec,
    Sense,
    SolveOutcome,
    SolveStatus,
    make_continuous_variable,
)
from dietsolver.optimizer.orchestrator import (
    Refinement,
    RunState,
    SolveOrchestrator,
    dairy_refinement,
)
from dietsolver.optimizer.variables import REPORT_EPSILON, VariableGroup

__all__ = [
    "Comparator",
    "DecisionVariableSpec",
    "LpModelBuilder",
    "REPORT_EPSILON",
    "Refinement",
    "RunState",
    "Sense",
    "SolveOrchestrator",
    "SolveOutcome",
    "SolveStatus",
    "VariableGroup",
    "dairy_refinement",
    "make_continuous_variable",
]
