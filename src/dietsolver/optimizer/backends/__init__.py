"""LP solver back-ends and the session factory."""

from __future__ import annotations

from typing import Any, Callable

from dietsolver.optimizer.backends.base import (
    LinearExpression,
    LpModel,
    LpSession,
    Variable,
)
from dietsolver.optimizer.backends.highs import HighsModel, HighsSession

BACKENDS = ("highs", "gurobi")

SessionFactory = Callable[[], LpSession]


def create_session(backend: str = "highs", **options: Any) -> LpSession:
    """Open a solver session for the named back-end.

    Args:
        backend: "highs" (scipy, always available) or "gurobi"
        **options: Passed to the session constructor

    Raises:
        ValueError: If the back-end name is unknown
        SolverError: If the back-end library is missing or fails to start
    """
    if backend == "highs":
        return HighsSession(**options)
    if backend == "gurobi":
        from dietsolver.optimizer.backends.gurobi import GurobiSession

        return GurobiSession(**options)
    raise ValueError(f"Unknown solver backend '{backend}'. Choose from: {', '.join(BACKENDS)}")


def session_factory(backend: str = "highs", **options: Any) -> SessionFactory:
    """Bind back-end options now, open the session later."""
    return lambda: create_session(backend, **options)


__all__ = [
    "BACKENDS",
    "HighsModel",
    "HighsSession",
    "LinearExpression",
    "LpModel",
    "LpSession",
    "SessionFactory",
    "Variable",
    "create_session",
    "session_factory",
]
