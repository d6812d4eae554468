"""Named, ordered groups of registered decision variables."""

from __future__ import annotations

from typing import Iterator, Sequence, Union

from dietsolver.export.writers import OutputWriter, format_number
from dietsolver.optimizer.backends.base import LpModel, Variable
from dietsolver.optimizer.models import DecisionVariableSpec

# Solved values at or below this are solver residue and are not reported.
REPORT_EPSILON = 0.0001


class VariableGroup:
    """Variables created from a sequence of specs, in spec order.

    ``specs[i]``, ``handle(i)`` and the i-th reported value always refer to
    the same variable.
    """

    def __init__(
        self,
        model: LpModel,
        label: str,
        specs: Sequence[DecisionVariableSpec],
        handles: Sequence[Variable],
    ):
        self.model = model
        self.label = label
        self.specs = tuple(specs)
        self._handles = tuple(handles)
        self._by_name = {h.name: h for h in self._handles}

    @classmethod
    def create(
        cls,
        model: LpModel,
        specs: Sequence[DecisionVariableSpec],
        label: str,
    ) -> "VariableGroup":
        """Register every spec on the model, preserving input order."""
        handles = [spec.add_to(model) for spec in specs]
        return cls(model, label, specs, handles)

    @property
    def count(self) -> int:
        return len(self._handles)

    def __len__(self) -> int:
        return len(self._handles)

    def __iter__(self) -> Iterator[Variable]:
        return iter(self._handles)

    @property
    def names(self) -> list[str]:
        return [h.name for h in self._handles]

    def handle(self, i: int) -> Variable:
        """Return the i-th handle.

        Raises:
            IndexError: If i is outside [0, count)
        """
        if not 0 <= i < len(self._handles):
            raise IndexError(
                f"{self.label} index {i} out of range [0, {len(self._handles)})"
            )
        return self._handles[i]

    def by_name(self, name: str) -> Variable:
        """Return the handle registered under ``name`` (KeyError if absent)."""
        try:
            return self._by_name[name]
        except KeyError:
            raise KeyError(f"No variable named '{name}' in group '{self.label}'") from None

    def __getitem__(self, key: Union[int, str]) -> Variable:
        if isinstance(key, str):
            return self.by_name(key)
        return self.handle(key)

    def values(self) -> dict[str, float]:
        """Solved values keyed by variable name, in group order."""
        return {h.name: self.model.value(h) for h in self._handles}

    def report(self, writer: OutputWriter) -> None:
        """Write the header and every value above REPORT_EPSILON."""
        writer.write_line(f"\n{self.label}:")
        for handle in self._handles:
            value = self.model.value(handle)
            if value > REPORT_EPSILON:
                writer.write_line(f"{handle.name} {format_number(value)}")
