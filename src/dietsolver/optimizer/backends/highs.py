"""Open-source back-end: scipy.optimize.linprog with the HiGHS solver.

scipy's linprog is stateless, so the model keeps variables and constraint
rows in Python and assembles the matrices on every ``optimize`` call:

    min  c'x
    s.t. A_ub @ x <= b_ub   (<= rows, and >= rows negated)
         A_eq @ x == b_eq
         lb <= x <= ub
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Optional

import numpy as np
from scipy.optimize import linprog

from dietsolver.exceptions import (
    DUPLICATE_NAME,
    INVALID_ARGUMENT,
    SOLVER_FAILURE,
    PreconditionError,
    SolverError,
)
from dietsolver.optimizer.backends.base import (
    LinearExpression,
    LpModel,
    LpSession,
    Operand,
    Variable,
)
from dietsolver.optimizer.models import Comparator, Sense, SolveStatus

logger = logging.getLogger(__name__)

# scipy.optimize.OptimizeResult.status -> SolveStatus
_STATUS_MAP = {
    0: SolveStatus.OPTIMAL,
    2: SolveStatus.INFEASIBLE,
    3: SolveStatus.UNBOUNDED,
}


@dataclass
class _Row:
    """One constraint row, coefficients keyed by variable index."""

    name: str
    coefficients: dict[int, float]
    comparator: Comparator
    rhs: float


class HighsModel(LpModel):
    """LP model solved with ``linprog(method="highs")``."""

    def __init__(self, name: str, presolve: bool = True):
        super().__init__(name)
        self._presolve = presolve
        self._variables: list[Variable] = []
        self._lower: list[float] = []
        self._upper: list[float] = []
        self._objective: list[float] = []
        self._objective_constant = 0.0
        self._sense = Sense.MINIMIZE
        self._n_integrated = 0
        self._rows: list[_Row] = []
        self._row_names: set[str] = set()

        self._status: Optional[SolveStatus] = None
        self._x: Optional[np.ndarray] = None
        self._objective_value: Optional[float] = None

    def _invalidate(self) -> None:
        self._status = None
        self._x = None
        self._objective_value = None

    def add_variable(
        self,
        lower_bound: float,
        upper_bound: float,
        objective_coefficient: float,
        name: str,
    ) -> Variable:
        self._check_open()
        lb, ub = float(lower_bound), float(upper_bound)
        if math.isnan(lb) or math.isnan(ub) or lb > ub or lb == math.inf or ub == -math.inf:
            raise SolverError(
                INVALID_ARGUMENT,
                f"Invalid bounds [{lower_bound}, {upper_bound}] for variable '{name}'",
            )

        variable = Variable(index=len(self._variables), name=name, owner=self)
        self._variables.append(variable)
        self._lower.append(lb)
        self._upper.append(ub)
        self._objective.append(float(objective_coefficient))
        self._invalidate()
        return variable

    def update(self) -> None:
        self._check_open()
        pending = len(self._variables) - self._n_integrated
        if pending:
            logger.debug("Model '%s': integrating %d variables", self.name, pending)
        self._n_integrated = len(self._variables)

    def _check_integrated(self, variable: Variable) -> None:
        self._check_owned(variable)
        if variable.index >= self._n_integrated:
            raise PreconditionError(
                f"Variable '{variable.name}' is pending; call update() before "
                "using it in a constraint"
            )

    def add_constraint(
        self,
        expression: Operand,
        comparator: Comparator,
        rhs: Operand,
        name: str,
    ) -> None:
        self._check_open()
        if name in self._row_names:
            raise SolverError(
                DUPLICATE_NAME,
                f"Constraint '{name}' already exists in model '{self.name}'",
            )

        coefficients, bound = self._normalize_constraint(expression, rhs)
        for var in coefficients:
            self._check_integrated(var)

        self._rows.append(
            _Row(
                name=name,
                coefficients={var.index: coef for var, coef in coefficients.items()},
                comparator=comparator,
                rhs=bound,
            )
        )
        self._row_names.add(name)
        self._invalidate()

    def set_objective(self, expression: Operand, sense: Sense) -> None:
        self._check_open()
        expr = LinearExpression.coerce(expression)
        objective = [0.0] * len(self._variables)
        for var, coef in expr.coefficients().items():
            self._check_owned(var)
            objective[var.index] = coef

        self._objective = objective
        self._objective_constant = expr.constant
        self._sense = sense
        self._invalidate()

    def _build_matrices(self) -> dict:
        n_vars = len(self._variables)
        A_ub_rows, b_ub_rows = [], []
        A_eq_rows, b_eq_rows = [], []

        for row in self._rows:
            vec = np.zeros(n_vars)
            for idx, coef in row.coefficients.items():
                vec[idx] = coef

            if row.comparator is Comparator.EQUAL:
                A_eq_rows.append(vec)
                b_eq_rows.append(row.rhs)
            elif row.comparator is Comparator.LESS_EQUAL:
                A_ub_rows.append(vec)
                b_ub_rows.append(row.rhs)
            else:
                # Ax >= b  =>  -Ax <= -b
                A_ub_rows.append(-vec)
                b_ub_rows.append(-row.rhs)

        bounds = [
            (
                None if lb == -math.inf else lb,
                None if ub == math.inf else ub,
            )
            for lb, ub in zip(self._lower, self._upper)
        ]

        return {
            "A_ub": np.array(A_ub_rows) if A_ub_rows else None,
            "b_ub": np.array(b_ub_rows) if b_ub_rows else None,
            "A_eq": np.array(A_eq_rows) if A_eq_rows else None,
            "b_eq": np.array(b_eq_rows) if b_eq_rows else None,
            "bounds": bounds,
        }

    def _solve_empty(self) -> SolveStatus:
        # Without variables every row reduces to 0 <comparator> rhs.
        for row in self._rows:
            if row.comparator is Comparator.EQUAL and row.rhs != 0.0:
                return SolveStatus.INFEASIBLE
            if row.comparator is Comparator.LESS_EQUAL and row.rhs < 0.0:
                return SolveStatus.INFEASIBLE
            if row.comparator is Comparator.GREATER_EQUAL and row.rhs > 0.0:
                return SolveStatus.INFEASIBLE
        self._x = np.zeros(0)
        self._objective_value = self._objective_constant
        return SolveStatus.OPTIMAL

    def optimize(self) -> SolveStatus:
        self._check_open()
        self.update()
        self._invalidate()

        if not self._variables:
            self._status = self._solve_empty()
            return self._status

        sign = 1.0 if self._sense is Sense.MINIMIZE else -1.0
        costs = sign * np.array(self._objective)
        matrices = self._build_matrices()

        start_time = time.time()
        try:
            result = linprog(
                c=costs,
                method="highs",
                options={"presolve": self._presolve},
                **matrices,
            )
        except ValueError as e:
            raise SolverError(SOLVER_FAILURE, str(e)) from e
        elapsed = time.time() - start_time

        self._status = _STATUS_MAP.get(result.status, SolveStatus.OTHER)
        if self._status is SolveStatus.OPTIMAL:
            self._x = np.asarray(result.x, dtype=float)
            self._objective_value = sign * float(result.fun) + self._objective_constant

        logger.info(
            "Model '%s': %s after %.3fs (%d vars, %d constraints): %s",
            self.name,
            self._status.value,
            elapsed,
            len(self._variables),
            len(self._rows),
            result.message,
        )
        return self._status

    @property
    def status(self) -> Optional[SolveStatus]:
        return self._status

    def _require_solution(self) -> np.ndarray:
        if self._x is None:
            raise SolverError(
                SOLVER_FAILURE,
                f"No solution available for model '{self.name}'",
            )
        return self._x

    def value(self, variable: Variable) -> float:
        self._check_owned(variable)
        return float(self._require_solution()[variable.index])

    @property
    def objective_value(self) -> float:
        self._require_solution()
        return float(self._objective_value)

    def get_bounds(self, variable: Variable) -> tuple[float, float]:
        self._check_owned(variable)
        return self._lower[variable.index], self._upper[variable.index]

    def get_objective_coefficient(self, variable: Variable) -> float:
        self._check_owned(variable)
        return self._objective[variable.index]

    @property
    def constraint_names(self) -> list[str]:
        return [row.name for row in self._rows]

    def _release(self) -> None:
        self._rows.clear()
        self._invalidate()


class HighsSession(LpSession):
    """Session for the HiGHS back-end. Holds no native resources."""

    def __init__(self, presolve: bool = True):
        super().__init__()
        self._presolve = presolve
        logger.debug("Opened HiGHS session (presolve=%s)", presolve)

    def _new_model(self, name: str) -> HighsModel:
        return HighsModel(name, presolve=self._presolve)

    def _release(self) -> None:
        pass
