"""Assemble the diet LP on a solver model."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from dietsolver.data.problem import ProblemData
from dietsolver.exceptions import PreconditionError, UnknownFoodError
from dietsolver.export.writers import OutputWriter
from dietsolver.optimizer.backends.base import LinearExpression, LpModel
from dietsolver.optimizer.models import (
    INFINITY,
    Comparator,
    DecisionVariableSpec,
    make_continuous_variable,
)
from dietsolver.optimizer.variables import VariableGroup

logger = logging.getLogger(__name__)

DAIRY_FOODS = ("milk", "ice cream")
DAIRY_LIMIT = 6.0
DAIRY_CONSTRAINT_NAME = "limit_dairy"


def nutrition_variable_specs(problem: ProblemData) -> list[DecisionVariableSpec]:
    """One total per category, bounded by the category range, zero cost."""
    return [
        make_continuous_variable(c.min_bound, c.max_bound, 0.0, c.name)
        for c in problem.categories
    ]


def buy_variable_specs(problem: ProblemData) -> list[DecisionVariableSpec]:
    """One non-negative quantity per food, costed at the food's unit cost."""
    return [
        make_continuous_variable(0.0, INFINITY, f.unit_cost, f.name)
        for f in problem.food_types
    ]


class LpModelBuilder:
    """Builds variables and constraints of the diet problem on a model.

    Steps must run in order: nutrition variables, buy variables, nutrition
    constraints, then any extra constraint.
    """

    def __init__(
        self,
        problem: ProblemData,
        limited_foods: Sequence[str] = DAIRY_FOODS,
        limit: float = DAIRY_LIMIT,
    ):
        """Initialize the builder.

        Args:
            problem: Categories and foods to model
            limited_foods: Foods whose summed quantity the extra constraint caps
            limit: Upper bound for the extra constraint
        """
        self.problem = problem
        self.limited_foods = tuple(limited_foods)
        self.limit = limit
        self.nutrition: Optional[VariableGroup] = None
        self.buy: Optional[VariableGroup] = None
        self._extra_added = False

    def setup_nutrition_variables(self, model: LpModel) -> VariableGroup:
        self.nutrition = VariableGroup.create(
            model, nutrition_variable_specs(self.problem), "Nutrition"
        )
        return self.nutrition

    def setup_buy_variables(self, model: LpModel) -> VariableGroup:
        self.buy = VariableGroup.create(
            model, buy_variable_specs(self.problem), "Buy"
        )
        return self.buy

    def setup_decision_variables(self, model: LpModel) -> None:
        self.setup_nutrition_variables(model)
        self.setup_buy_variables(model)
        logger.debug(
            "Registered %d nutrition and %d buy variables",
            len(self.nutrition),
            len(self.buy),
        )

    def _require_variables(self) -> tuple[VariableGroup, VariableGroup]:
        if self.nutrition is None or self.buy is None:
            raise PreconditionError(
                "Decision variables must be set up before adding constraints"
            )
        return self.nutrition, self.buy

    def objective_expression(self) -> LinearExpression:
        """Sum of objective coefficient * variable over both groups."""
        nutrition, buy = self._require_variables()
        expr = LinearExpression()
        for group in (nutrition, buy):
            for spec, handle in zip(group.specs, group):
                expr += spec.objective_coefficient * handle
        return expr

    def add_nutrition_constraints(self, model: LpModel) -> None:
        """Tie each nutrition total to the nutrients of the foods bought.

        For category i: sum_j content[j][i] * buy[j] == nutrition[i].
        """
        nutrition, buy = self._require_variables()
        for i, category in enumerate(self.problem.categories):
            total = LinearExpression.sum(
                self.problem.nutrient_amount(j, i) * buy.handle(j)
                for j in range(self.problem.num_food_types)
            )
            model.add_constraint(
                total, Comparator.EQUAL, nutrition.handle(i), category.name
            )

    def add_extra_constraint(
        self, model: LpModel, limit: Optional[float] = None
    ) -> None:
        """Cap the combined quantity of the limited foods at ``limit``.

        The builder's own limit is used when ``limit`` is None.

        Raises:
            PreconditionError: If variables are missing or the constraint
                was already added to this model
            UnknownFoodError: If a limited food is not part of the problem
        """
        _, buy = self._require_variables()
        if self._extra_added:
            raise PreconditionError(
                f"Constraint '{DAIRY_CONSTRAINT_NAME}' has already been added"
            )

        bound = self.limit if limit is None else limit
        missing = [name for name in self.limited_foods if name not in buy.names]
        if missing:
            raise UnknownFoodError(missing[0])
        expr = LinearExpression.sum(buy.by_name(name) for name in self.limited_foods)
        model.add_constraint(expr, Comparator.LESS_EQUAL, bound, DAIRY_CONSTRAINT_NAME)
        self._extra_added = True
        logger.debug(
            "Added %s: %s <= %g",
            DAIRY_CONSTRAINT_NAME,
            " + ".join(self.limited_foods),
            bound,
        )

    def write_results(self, writer: OutputWriter) -> None:
        """Report bought amounts, then nutrition totals."""
        nutrition, buy = self._require_variables()
        buy.report(writer)
        nutrition.report(writer)
