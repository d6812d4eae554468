"""Commercial back-end adapting gurobipy.

Requires the optional ``gurobi`` extra and a valid Gurobi license.
``GurobiError`` is converted to ``SolverError`` carrying Gurobi's error
number and message.
"""

from __future__ import annotations

import logging
import math
from contextlib import contextmanager
from typing import Any, Generator, Optional

from dietsolver.exceptions import (
    BACKEND_UNAVAILABLE,
    DUPLICATE_NAME,
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


def _import_gurobipy():
    try:
        import gurobipy
    except ImportError as e:
        raise SolverError(
            BACKEND_UNAVAILABLE,
            "gurobipy is not installed; install dietsolver[gurobi]",
        ) from e
    return gurobipy


@contextmanager
def _translate_errors(gp) -> Generator[None, None, None]:
    """Re-raise GurobiError as SolverError."""
    try:
        yield
    except gp.GurobiError as e:
        raise SolverError(e.errno, str(e.message)) from e


class GurobiModel(LpModel):
    """LP model backed by a ``gurobipy.Model``."""

    def __init__(self, name: str, env: Any, gp: Any):
        super().__init__(name)
        self._gp = gp
        GRB = gp.GRB
        self._sense_map = {
            Comparator.LESS_EQUAL: GRB.LESS_EQUAL,
            Comparator.GREATER_EQUAL: GRB.GREATER_EQUAL,
            Comparator.EQUAL: GRB.EQUAL,
        }
        self._status_map = {
            GRB.OPTIMAL: SolveStatus.OPTIMAL,
            GRB.INFEASIBLE: SolveStatus.INFEASIBLE,
            GRB.UNBOUNDED: SolveStatus.UNBOUNDED,
        }
        with _translate_errors(gp):
            self._model = gp.Model(name, env=env)
        self._grb_vars: list[Any] = []
        self._n_integrated = 0
        self._constraint_names: list[str] = []
        self._status: Optional[SolveStatus] = None

    def _to_grb_bound(self, value: float) -> float:
        if value == math.inf:
            return self._gp.GRB.INFINITY
        if value == -math.inf:
            return -self._gp.GRB.INFINITY
        return float(value)

    def _from_grb_bound(self, value: float) -> float:
        if value >= self._gp.GRB.INFINITY:
            return math.inf
        if value <= -self._gp.GRB.INFINITY:
            return -math.inf
        return float(value)

    def _to_lin_expr(self, coefficients: dict[Variable, float], constant: float = 0.0):
        coefs = list(coefficients.values())
        grb_vars = [self._grb_vars[var.index] for var in coefficients]
        return self._gp.LinExpr(coefs, grb_vars) + constant

    def add_variable(
        self,
        lower_bound: float,
        upper_bound: float,
        objective_coefficient: float,
        name: str,
    ) -> Variable:
        self._check_open()
        with _translate_errors(self._gp):
            grb_var = self._model.addVar(
                lb=self._to_grb_bound(lower_bound),
                ub=self._to_grb_bound(upper_bound),
                obj=float(objective_coefficient),
                vtype=self._gp.GRB.CONTINUOUS,
                name=name,
            )
        variable = Variable(index=len(self._grb_vars), name=name, owner=self)
        self._grb_vars.append(grb_var)
        self._status = None
        return variable

    def update(self) -> None:
        self._check_open()
        with _translate_errors(self._gp):
            self._integrate()

    def _integrate(self) -> None:
        self._model.update()
        self._n_integrated = len(self._grb_vars)

    def add_constraint(
        self,
        expression: Operand,
        comparator: Comparator,
        rhs: Operand,
        name: str,
    ) -> None:
        self._check_open()
        if name in self._constraint_names:
            raise SolverError(
                DUPLICATE_NAME,
                f"Constraint '{name}' already exists in model '{self.name}'",
            )
        coefficients, bound = self._normalize_constraint(expression, rhs)
        for var in coefficients:
            if var.index >= self._n_integrated:
                raise PreconditionError(
                    f"Variable '{var.name}' is pending; call update() before "
                    "using it in a constraint"
                )
        with _translate_errors(self._gp):
            self._model.addLConstr(
                self._to_lin_expr(coefficients),
                self._sense_map[comparator],
                bound,
                name,
            )
        self._constraint_names.append(name)
        self._status = None

    def set_objective(self, expression: Operand, sense: Sense) -> None:
        self._check_open()
        expr = LinearExpression.coerce(expression)
        coefficients = expr.coefficients()
        for var in coefficients:
            self._check_owned(var)
        grb_sense = (
            self._gp.GRB.MINIMIZE if sense is Sense.MINIMIZE else self._gp.GRB.MAXIMIZE
        )
        with _translate_errors(self._gp):
            self._model.setObjective(
                self._to_lin_expr(coefficients, expr.constant), grb_sense
            )
        self._status = None

    def optimize(self) -> SolveStatus:
        self._check_open()
        with _translate_errors(self._gp):
            self._model.optimize()
            self._n_integrated = len(self._grb_vars)
            grb_status = self._model.Status
        self._status = self._status_map.get(grb_status, SolveStatus.OTHER)
        logger.info(
            "Model '%s': %s (gurobi status %d)", self.name, self._status.value, grb_status
        )
        return self._status

    @property
    def status(self) -> Optional[SolveStatus]:
        return self._status

    def value(self, variable: Variable) -> float:
        self._check_owned(variable)
        with _translate_errors(self._gp):
            return float(self._grb_vars[variable.index].X)

    @property
    def objective_value(self) -> float:
        with _translate_errors(self._gp):
            return float(self._model.ObjVal)

    def get_bounds(self, variable: Variable) -> tuple[float, float]:
        self._check_owned(variable)
        grb_var = self._grb_vars[variable.index]
        with _translate_errors(self._gp):
            self._integrate()
            return self._from_grb_bound(grb_var.LB), self._from_grb_bound(grb_var.UB)

    def get_objective_coefficient(self, variable: Variable) -> float:
        self._check_owned(variable)
        with _translate_errors(self._gp):
            self._integrate()
            return float(self._grb_vars[variable.index].Obj)

    @property
    def constraint_names(self) -> list[str]:
        return list(self._constraint_names)

    def _release(self) -> None:
        with _translate_errors(self._gp):
            self._model.dispose()


class GurobiSession(LpSession):
    """Session owning one ``gurobipy.Env`` (and its license seat)."""

    def __init__(self, params: Optional[dict[str, Any]] = None, output: bool = False):
        super().__init__()
        self._gp = _import_gurobipy()
        with _translate_errors(self._gp):
            self._env = self._gp.Env(empty=True)
            self._env.setParam("OutputFlag", 1 if output else 0)
            for key, value in (params or {}).items():
                self._env.setParam(key, value)
            self._env.start()
        logger.debug("Opened Gurobi session")

    def _new_model(self, name: str) -> GurobiModel:
        return GurobiModel(name, self._env, self._gp)

    def _release(self) -> None:
        with _translate_errors(self._gp):
            self._env.dispose()
