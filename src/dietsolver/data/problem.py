"""Static reference tables for the diet problem."""

from __future__ import annotations

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

import yaml

from dietsolver.exceptions import PreconditionError


@dataclass(frozen=True)
class NutritionCategory:
    """A nutrient with its allowed daily range."""

    name: str
    min_bound: float
    max_bound: float = math.inf


@dataclass(frozen=True)
class FoodType:
    """A food with its unit cost and nutrient content.

    ``nutrient_content[i]`` is the amount of ``categories[i]`` in one unit.
    """

    name: str
    unit_cost: float
    nutrient_content: tuple[float, ...]


class ProblemData:
    """Categories and foods of one diet problem.

    Raises:
        PreconditionError: If a food's nutrient vector does not match the
            number of categories, a unit cost is negative, or names are
            duplicated.
    """

    def __init__(
        self,
        categories: Sequence[NutritionCategory],
        food_types: Sequence[FoodType],
    ):
        self.categories = tuple(categories)
        self.food_types = tuple(food_types)
        self._check_shape()
        self._category_idx = {c.name: i for i, c in enumerate(self.categories)}
        self._food_idx = {f.name: i for i, f in enumerate(self.food_types)}

    def _check_shape(self) -> None:
        n_categories = len(self.categories)
        for food in self.food_types:
            if food.unit_cost < 0:
                raise PreconditionError(
                    f"Food '{food.name}' has negative unit cost {food.unit_cost}"
                )
            if len(food.nutrient_content) != n_categories:
                raise PreconditionError(
                    f"Food '{food.name}' has {len(food.nutrient_content)} "
                    f"nutrient values, expected {n_categories}"
                )

        for kind, names in (
            ("category", [c.name for c in self.categories]),
            ("food", [f.name for f in self.food_types]),
        ):
            if len(set(names)) != len(names):
                raise PreconditionError(f"Duplicate {kind} names: {names}")

    @property
    def num_categories(self) -> int:
        return len(self.categories)

    @property
    def num_food_types(self) -> int:
        return len(self.food_types)

    def category_index(self, name: str) -> int:
        """Return the index of a category by name (KeyError if unknown)."""
        return self._category_idx[name]

    def food_index(self, name: str) -> int:
        """Return the index of a food by name (KeyError if unknown)."""
        return self._food_idx[name]

    def nutrient_amount(self, food_index: int, category_index: int) -> float:
        return self.food_types[food_index].nutrient_content[category_index]


def default_problem() -> ProblemData:
    """Return the built-in fast-food dataset.

    Nutrition guidelines based on the USDA Dietary Guidelines for
    Americans, 2005.
    """
    categories = [
        NutritionCategory("calories", 1800, 2200),
        NutritionCategory("protein", 91, math.inf),
        NutritionCategory("fat", 0, 65),
        NutritionCategory("sodium", 0, 1779),
    ]

    foods = [
        # name, cost, (calories, protein, fat, sodium)
        FoodType("hamburger", 2.49, (410, 24, 26, 730)),
        FoodType("chicken", 2.89, (420, 32, 10, 1190)),
        FoodType("hot dog", 1.50, (560, 20, 32, 1800)),
        FoodType("fries", 1.89, (380, 4, 19, 270)),
        FoodType("macaroni", 2.09, (320, 12, 10, 930)),
        FoodType("pizza", 1.99, (320, 15, 12, 820)),
        FoodType("salad", 2.49, (320, 31, 12, 1230)),
        FoodType("milk", 0.89, (100, 8, 2.5, 125)),
        FoodType("ice cream", 1.59, (330, 8, 10, 180)),
    ]

    return ProblemData(categories, foods)


def load_problem_from_yaml(yaml_path: Path) -> ProblemData:
    """Parse a YAML problem file into ProblemData.

    Expected layout::

        categories:
          - {name: calories, min: 1800, max: 2200}
          - {name: protein, min: 91}          # no max -> unbounded
        foods:
          - name: milk
            cost: 0.89
            nutrients: {calories: 100, protein: 8}

    Args:
        yaml_path: Path to the YAML problem file

    Returns:
        ProblemData built from the file

    Raises:
        FileNotFoundError: If file doesn't exist
        KeyError: If a food lists a nutrient for an unknown category
        PreconditionError: If the file is not a mapping or the data is invalid
    """
    with open(yaml_path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise PreconditionError(
            f"Problem file must contain a mapping, got {type(data).__name__}"
        )

    categories = []
    for entry in data.get("categories", []):
        max_val = entry.get("max")
        categories.append(
            NutritionCategory(
                name=str(entry["name"]),
                min_bound=float(entry.get("min", 0.0)),
                max_bound=float(max_val) if max_val is not None else math.inf,
            )
        )

    category_idx = {c.name: i for i, c in enumerate(categories)}

    foods = []
    for entry in data.get("foods", []):
        content = [0.0] * len(categories)
        for nutrient_name, amount in (entry.get("nutrients") or {}).items():
            if nutrient_name not in category_idx:
                raise KeyError(
                    f"Food '{entry['name']}' references unknown category "
                    f"'{nutrient_name}'"
                )
            content[category_idx[nutrient_name]] = float(amount)

        foods.append(
            FoodType(
                name=str(entry["name"]),
                unit_cost=float(entry.get("cost", 0.0)),
                nutrient_content=tuple(content),
            )
        )

    return ProblemData(categories, foods)
