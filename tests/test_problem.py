"""Tests for the diet problem reference data."""

from __future__ import annotations

import math

import pytest

from dietsolver.data.problem import (
    FoodType,
    NutritionCategory,
    ProblemData,
    load_problem_from_yaml,
)
from dietsolver.exceptions import PreconditionError


class TestDefaultProblem:
    """Tests for the built-in dataset."""

    def test_categories(self, problem):
        """Four categories with the published bounds."""
        bounds = [(c.name, c.min_bound, c.max_bound) for c in problem.categories]
        assert bounds == [
            ("calories", 1800, 2200),
            ("protein", 91, math.inf),
            ("fat", 0, 65),
            ("sodium", 0, 1779),
        ]

    def test_foods_match_category_count(self, problem):
        """Every nutrient vector has one entry per category."""
        assert problem.num_food_types == 9
        for food in problem.food_types:
            assert len(food.nutrient_content) == problem.num_categories
            assert food.unit_cost >= 0

    def test_name_lookup(self, problem):
        assert problem.food_index("milk") == 7
        assert problem.food_index("ice cream") == 8
        assert problem.category_index("sodium") == 3
        assert problem.nutrient_amount(7, 2) == 2.5

    def test_unknown_name(self, problem):
        with pytest.raises(KeyError):
            problem.food_index("caviar")


class TestProblemInvariants:
    """Tests for shape checks at construction."""

    def test_mismatched_nutrient_vector(self):
        """A food with too few nutrient values is rejected."""
        categories = [NutritionCategory("calories", 0, 100), NutritionCategory("fat", 0, 10)]
        foods = [FoodType("apple", 0.3, (95,))]

        with pytest.raises(PreconditionError, match="apple"):
            ProblemData(categories, foods)

    def test_duplicate_food_names(self):
        categories = [NutritionCategory("calories", 0, 100)]
        foods = [FoodType("apple", 0.3, (95,)), FoodType("apple", 0.4, (90,))]

        with pytest.raises(PreconditionError, match="Duplicate food"):
            ProblemData(categories, foods)

    def test_negative_unit_cost(self):
        categories = [NutritionCategory("calories", 0, 10)]
        foods = [FoodType("coupon", -1.0, (1,))]

        with pytest.raises(PreconditionError, match="negative unit cost"):
            ProblemData(categories, foods)

    def test_zero_unit_cost_is_valid(self):
        data = ProblemData([NutritionCategory("calories", 0, 10)], [FoodType("water", 0.0, (0,))])
        assert data.food_types[0].unit_cost == 0.0

    def test_empty_problem_is_valid(self):
        data = ProblemData([], [])
        assert data.num_categories == 0
        assert data.num_food_types == 0


class TestLoadProblemFromYAML:
    """Tests for YAML problem loading."""

    def test_load_valid_problem(self, problem_yaml):
        data = load_problem_from_yaml(problem_yaml)

        assert [c.name for c in data.categories] == ["calories", "protein"]
        assert data.categories[1].max_bound == math.inf
        assert [f.name for f in data.food_types] == ["milk", "salad"]
        assert data.food_types[0].unit_cost == 0.89

    def test_missing_nutrient_defaults_to_zero(self, problem_yaml):
        data = load_problem_from_yaml(problem_yaml)

        salad = data.food_types[data.food_index("salad")]
        assert salad.nutrient_content == (320.0, 0.0)

    def test_unknown_category(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text(
            """
categories:
  - {name: calories, min: 0, max: 100}
foods:
  - {name: apple, cost: 0.3, nutrients: {vitamin_c: 8}}
"""
        )

        with pytest.raises(KeyError, match="vitamin_c"):
            load_problem_from_yaml(path)

    def test_negative_cost_in_file(self, tmp_path):
        path = tmp_path / "refund.yaml"
        path.write_text(
            """
categories:
  - {name: calories, min: 0, max: 100}
foods:
  - {name: apple, cost: -0.3, nutrients: {calories: 95}}
"""
        )

        with pytest.raises(PreconditionError, match="apple"):
            load_problem_from_yaml(path)

    @pytest.mark.parametrize("content", ["- calories\n- protein\n", "just a string\n"])
    def test_root_must_be_mapping(self, tmp_path, content):
        path = tmp_path / "list.yaml"
        path.write_text(content)

        with pytest.raises(PreconditionError, match="mapping"):
            load_problem_from_yaml(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_problem_from_yaml(tmp_path / "nope.yaml")
