"""Pytest fixtures for dietsolver tests."""

from __future__ import annotations

import math

import pytest

from dietsolver.data.problem import FoodType, NutritionCategory, ProblemData, default_problem
from dietsolver.export.writers import ListWriter
from dietsolver.optimizer.backends.highs import HighsSession


@pytest.fixture
def problem():
    """The built-in fast-food dataset."""
    return default_problem()


@pytest.fixture
def small_problem():
    """Two nutrients, three foods; the cheapest diet is 8 units of bread."""
    categories = [
        NutritionCategory("calories", 2000, 2500),
        NutritionCategory("protein", 50, math.inf),
    ]
    foods = [
        FoodType("bread", 0.50, (250, 8)),
        FoodType("steak", 6.00, (600, 60)),
        FoodType("milk", 0.80, (150, 8)),
    ]
    return ProblemData(categories, foods)


@pytest.fixture
def session():
    """An open HiGHS session, closed after the test."""
    s = HighsSession()
    yield s
    s.close()


@pytest.fixture
def model(session):
    """An empty model on the HiGHS session."""
    return session.create_model("test")


@pytest.fixture
def writer():
    """Collects report lines in memory."""
    return ListWriter()


@pytest.fixture
def problem_yaml(tmp_path):
    """A small YAML problem file."""
    path = tmp_path / "problem.yaml"
    path.write_text(
        """
categories:
  - {name: calories, min: 1800, max: 2200}
  - {name: protein, min: 91}
foods:
  - name: milk
    cost: 0.89
    nutrients: {calories: 100, protein: 8}
  - name: salad
    cost: 2.49
    nutrients: {calories: 320}
"""
    )
    return path
