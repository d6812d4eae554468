"""Reference data for the diet problem."""

from __future__ import annotations

from dietsolver.data.problem import (
    FoodType,
    NutritionCategory,
    ProblemData,
    default_problem,
    load_problem_from_yaml,
)

__all__ = [
    "FoodType",
    "NutritionCategory",
    "ProblemData",
    "default_problem",
    "load_problem_from_yaml",
]
