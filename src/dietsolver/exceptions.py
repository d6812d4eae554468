"""Exception hierarchy for dietsolver."""

from __future__ import annotations

# Error codes carried by SolverError

INVALID_ARGUMENT = 10003
SOLVER_FAILURE = 10005
BACKEND_UNAVAILABLE = 10009
NOT_IN_MODEL = 10017
DUPLICATE_NAME = 10020


class DietSolverError(Exception):
    """Base exception for dietsolver errors."""

    pass


class SolverError(DietSolverError):
    """Raised when the solver back-end or its session fails.

    Carries a numeric code and a message, independent of the exception
    hierarchy of the underlying library.
    """

    def __init__(self, code: int, message: str):
        super().__init__(f"Error code: {code}. {message}")
        self.code = code
        self.message = message


class PreconditionError(DietSolverError):
    """Raised when calling code violates a programming invariant.

    These indicate a defect in the caller, not bad input data, and are
    never retried.
    """

    pass


class UnknownFoodError(DietSolverError):
    """Raised when a constraint names a food the problem does not contain."""

    def __init__(self, food: str):
        super().__init__(f"Problem has no food named '{food}'")
        self.food = food
