"""Capability interface every LP solver back-end implements.

The orchestrator and the model builder only ever talk to ``LpSession``,
``LpModel``, ``Variable`` and ``LinearExpression``. A back-end adapts one
concrete library (scipy/HiGHS, gurobipy, ...) to this surface.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from numbers import Real
from typing import Iterable, Optional, Union

from dietsolver.exceptions import NOT_IN_MODEL, PreconditionError, SolverError
from dietsolver.optimizer.models import Comparator, Sense, SolveStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Variable:
    """Handle to a variable registered on one model.

    Handles compare by identity. Arithmetic on handles builds
    ``LinearExpression`` objects.
    """

    index: int
    name: str
    owner: object = field(repr=False)

    def __add__(self, other):
        return LinearExpression([(self, 1.0)]) + other

    __radd__ = __add__

    def __sub__(self, other):
        return LinearExpression([(self, 1.0)]) - other

    def __rsub__(self, other):
        return LinearExpression([(self, -1.0)]) + other

    def __mul__(self, other):
        if not isinstance(other, Real):
            return NotImplemented
        return LinearExpression([(self, float(other))])

    __rmul__ = __mul__

    def __neg__(self):
        return LinearExpression([(self, -1.0)])


Operand = Union["LinearExpression", Variable, float, int]


class LinearExpression:
    """Sum of coefficient * variable terms plus a constant."""

    def __init__(
        self,
        terms: Optional[Iterable[tuple[Variable, float]]] = None,
        constant: float = 0.0,
    ):
        self.terms: list[tuple[Variable, float]] = list(terms or [])
        self.constant = float(constant)

    @classmethod
    def sum(cls, operands: Iterable[Operand]) -> "LinearExpression":
        """Add up variables, expressions and numbers into one expression."""
        expr = cls()
        for operand in operands:
            expr += operand
        return expr

    @classmethod
    def coerce(cls, operand: Operand) -> "LinearExpression":
        return cls() + operand

    def _add_in_place(self, other: Operand, scale: float = 1.0) -> bool:
        if isinstance(other, LinearExpression):
            self.terms.extend((var, scale * coef) for var, coef in other.terms)
            self.constant += scale * other.constant
        elif isinstance(other, Variable):
            self.terms.append((other, scale))
        elif isinstance(other, Real):
            self.constant += scale * float(other)
        else:
            return False
        return True

    def __add__(self, other):
        result = LinearExpression(self.terms, self.constant)
        if not result._add_in_place(other):
            return NotImplemented
        return result

    __radd__ = __add__

    def __iadd__(self, other):
        if not self._add_in_place(other):
            return NotImplemented
        return self

    def __sub__(self, other):
        result = LinearExpression(self.terms, self.constant)
        if not result._add_in_place(other, scale=-1.0):
            return NotImplemented
        return result

    def __rsub__(self, other):
        return (-self) + other

    def __mul__(self, other):
        if not isinstance(other, Real):
            return NotImplemented
        scale = float(other)
        return LinearExpression(
            [(var, scale * coef) for var, coef in self.terms],
            scale * self.constant,
        )

    __rmul__ = __mul__

    def __neg__(self):
        return self * -1.0

    def coefficients(self) -> dict[Variable, float]:
        """Merge repeated variables, keeping first-seen order."""
        merged: dict[Variable, float] = {}
        for var, coef in self.terms:
            merged[var] = merged.get(var, 0.0) + coef
        return merged

    def __repr__(self) -> str:
        parts = [f"{coef:g}*{var.name}" for var, coef in self.terms]
        if self.constant or not parts:
            parts.append(f"{self.constant:g}")
        return " + ".join(parts)


class LpModel(ABC):
    """A linear program owned by a solver session.

    Variables, constraints and the objective are added incrementally;
    ``optimize`` may be called any number of times and always solves the
    model as it currently stands.
    """

    def __init__(self, name: str):
        self._name = name
        self._disposed = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def disposed(self) -> bool:
        return self._disposed

    # -- abstract surface -------------------------------------------------

    @abstractmethod
    def add_variable(
        self,
        lower_bound: float,
        upper_bound: float,
        objective_coefficient: float,
        name: str,
    ) -> Variable:
        """Register a continuous variable and return its handle."""

    @abstractmethod
    def update(self) -> None:
        """Integrate pending variable registrations into the model."""

    @abstractmethod
    def add_constraint(
        self,
        expression: Operand,
        comparator: Comparator,
        rhs: Operand,
        name: str,
    ) -> None:
        """Append ``expression <comparator> rhs`` under ``name``."""

    @abstractmethod
    def set_objective(self, expression: Operand, sense: Sense) -> None:
        """Replace the objective with ``expression`` in the given sense."""

    @abstractmethod
    def optimize(self) -> SolveStatus:
        """Solve the model in its current state."""

    @property
    @abstractmethod
    def status(self) -> Optional[SolveStatus]:
        """Status of the last solve, None if not solved since last change."""

    @abstractmethod
    def value(self, variable: Variable) -> float:
        """Solved value of a variable."""

    @property
    @abstractmethod
    def objective_value(self) -> float:
        """Solved objective value."""

    @abstractmethod
    def get_bounds(self, variable: Variable) -> tuple[float, float]:
        """Registered (lower, upper) bounds, with math.inf for unbounded."""

    @abstractmethod
    def get_objective_coefficient(self, variable: Variable) -> float:
        """Current objective coefficient of a variable."""

    @property
    @abstractmethod
    def constraint_names(self) -> list[str]:
        """Names of all constraints in insertion order."""

    @abstractmethod
    def _release(self) -> None:
        """Free back-end resources held by the model."""

    # -- shared helpers ---------------------------------------------------

    def dispose(self) -> None:
        """Release the model. Further calls are no-ops."""
        if self._disposed:
            return
        self._release()
        self._disposed = True
        logger.debug("Disposed model '%s'", self._name)

    def _check_open(self) -> None:
        if self._disposed:
            raise PreconditionError(f"Model '{self._name}' has been disposed")

    def _check_owned(self, variable: Variable) -> None:
        if variable.owner is not self:
            raise SolverError(
                NOT_IN_MODEL,
                f"Variable '{variable.name}' does not belong to model '{self._name}'",
            )

    def _normalize_constraint(
        self, expression: Operand, rhs: Operand
    ) -> tuple[dict[Variable, float], float]:
        """Move everything with a variable to the left, constants to the right."""
        lhs = LinearExpression.coerce(expression)
        if isinstance(rhs, (Variable, LinearExpression)):
            lhs = lhs - rhs
            bound = 0.0
        else:
            bound = float(rhs)
        bound -= lhs.constant

        coefficients = lhs.coefficients()
        for var in coefficients:
            self._check_owned(var)
        return coefficients, bound

    def __enter__(self) -> "LpModel":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.dispose()


class LpSession(ABC):
    """A solver environment from which models are created.

    Closing the session disposes every model it created that is still open.
    """

    def __init__(self) -> None:
        self._closed = False
        self._models: list[LpModel] = []

    @property
    def closed(self) -> bool:
        return self._closed

    def create_model(self, name: str) -> LpModel:
        """Create an empty model bound to this session."""
        if self._closed:
            raise PreconditionError("Cannot create a model on a closed session")
        model = self._new_model(name)
        self._models.append(model)
        logger.debug("Created model '%s'", name)
        return model

    @abstractmethod
    def _new_model(self, name: str) -> LpModel:
        """Back-end specific model construction."""

    @abstractmethod
    def _release(self) -> None:
        """Free back-end resources held by the session."""

    def close(self) -> None:
        """Release the session. Further calls are no-ops."""
        if self._closed:
            return
        try:
            for model in self._models:
                model.dispose()
        finally:
            self._release()
            self._closed = True
            logger.debug("Closed %s", type(self).__name__)

    def __enter__(self) -> "LpSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
