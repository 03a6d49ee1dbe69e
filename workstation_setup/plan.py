"""Ordered provisioning plans, declared in full before anything executes."""

from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

from .errors import PlanError
from .steps import ProvisioningStep


class Plan:
    """An immutable, ordered list of steps with unique ids."""

    def __init__(self, steps: Iterable[ProvisioningStep], name: str = "plan") -> None:
        self.name = name
        self.steps: Tuple[ProvisioningStep, ...] = tuple(steps)
        seen = set()
        for step in self.steps:
            if not step.step_id:
                raise PlanError("Step identifiers must not be empty.")
            if step.step_id in seen:
                raise PlanError(f"Duplicate step identifier: {step.step_id}")
            seen.add(step.step_id)

    def __iter__(self) -> Iterator[ProvisioningStep]:
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)

    def __contains__(self, step_id: object) -> bool:
        return any(step.step_id == step_id for step in self.steps)

    @property
    def step_ids(self) -> List[str]:
        return [step.step_id for step in self.steps]

    def select(
        self,
        only: Optional[Sequence[str]] = None,
        skip: Optional[Sequence[str]] = None,
    ) -> "Plan":
        """Return a plan restricted to ``only`` and without ``skip``, order kept."""
        unknown = [sid for sid in list(only or []) + list(skip or []) if sid not in self]
        if unknown:
            raise PlanError(f"Unknown step identifier(s): {', '.join(unknown)}")
        steps = [
            step
            for step in self.steps
            if (not only or step.step_id in only) and step.step_id not in (skip or [])
        ]
        return Plan(steps, name=self.name)


class PlanBuilder:
    """
    Collects steps in the order they must run.

    Adding a step id that is already in the builder is ignored, so shared
    steps (e.g. the system update) can be contributed by several task groups.
    """

    def __init__(self, name: str = "plan") -> None:
        self.name = name
        self._steps: List[ProvisioningStep] = []

    def add(self, step: ProvisioningStep) -> "PlanBuilder":
        if any(existing.step_id == step.step_id for existing in self._steps):
            return self
        self._steps.append(step)
        return self

    def extend(self, steps: Iterable[ProvisioningStep]) -> "PlanBuilder":
        for step in steps:
            self.add(step)
        return self

    def build(self) -> Plan:
        return Plan(self._steps, name=self.name)
