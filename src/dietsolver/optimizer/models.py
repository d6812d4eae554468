"""Value objects and enums shared by the optimizer."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from dietsolver.optimizer.backends.base import LpModel, Variable

INFINITY = math.inf


class SolveStatus(Enum):
    """Terminal status of a solve call."""

    OPTIMAL = "optimal"
    INFEASIBLE = "infeasible"
    UNBOUNDED = "unbounded"
    OTHER = "other"


class Sense(Enum):
    """Objective sense."""

    MINIMIZE = "minimize"
    MAXIMIZE = "maximize"


class Comparator(Enum):
    """Relation between the two sides of a linear constraint."""

    LESS_EQUAL = "<="
    GREATER_EQUAL = ">="
    EQUAL = "=="


@dataclass(frozen=True)
class DecisionVariableSpec:
    """Description of one continuous decision variable.

    Holds no solver resources; a model handle is only created when the
    spec is registered with ``add_to``.
    """

    lower_bound: float
    upper_bound: float
    objective_coefficient: float
    name: str

    def add_to(self, model: "LpModel") -> "Variable":
        """Register this variable on ``model`` and return its handle."""
        return model.add_variable(
            self.lower_bound,
            self.upper_bound,
            self.objective_coefficient,
            self.name,
        )


def make_continuous_variable(
    lower_bound: float,
    upper_bound: float,
    objective_coefficient: float,
    name: str,
) -> DecisionVariableSpec:
    """Create a continuous variable spec.

    Inputs are stored verbatim. ``upper_bound`` may be ``INFINITY``. Bound
    ordering is checked by the solver back-end, not here.
    """
    return DecisionVariableSpec(
        lower_bound=lower_bound,
        upper_bound=upper_bound,
        objective_coefficient=objective_coefficient,
        name=name,
    )


@dataclass
class SolveOutcome:
    """Result of one optimize call as seen by the orchestrator."""

    status: SolveStatus
    objective_value: Optional[float] = None

    @property
    def is_optimal(self) -> bool:
        return self.status is SolveStatus.OPTIMAL
