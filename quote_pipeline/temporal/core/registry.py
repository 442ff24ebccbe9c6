"""Static step registry.

Each pipeline step is declared once as a :class:`StepDescriptor`. The
registry validates the declarations when it is built, so a duplicate step id
or activity name stops the worker at startup instead of silently shadowing
another step.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Type

from quote_pipeline.core.exceptions import ConfigurationError
from quote_pipeline.schemas.events import Event


class TriggerMode(str, Enum):
    START = "start"
    SIGNAL_WITH_START = "signal_with_start"


@dataclass(frozen=True)
class StepDescriptor:
    """Declaration of one pipeline step.

    Attributes:
        step_id: Unique step identifier, also the workflow id prefix
        event: Name of the event that triggers the step
        workflow: Temporal workflow class
        activity_class: Class whose instance implements the step's activities
        activities: Names of the activity methods on ``activity_class``
        mode: Start a workflow per event, or signal one workflow per quote
        signal: Signal name for ``SIGNAL_WITH_START`` steps
    """

    step_id: str
    event: str
    workflow: Type
    activity_class: Optional[Type] = None
    activities: Tuple[str, ...] = ()
    mode: TriggerMode = TriggerMode.START
    signal: Optional[str] = None

    def workflow_id(self, event: Event) -> str:
        if self.mode == TriggerMode.SIGNAL_WITH_START:
            return f"{self.step_id}-{event.quote_id}"
        return f"{self.step_id}-{event.id}"


class StepRegistry:
    """Validated lookup over a fixed set of step descriptors."""

    def __init__(self, descriptors: Iterable[StepDescriptor]):
        self._steps: Dict[str, StepDescriptor] = {}
        self._by_event: Dict[str, List[StepDescriptor]] = {}
        activity_owner: Dict[str, str] = {}

        for descriptor in descriptors:
            if not descriptor.step_id:
                raise ConfigurationError("Step descriptor without a step_id")
            if descriptor.step_id in self._steps:
                raise ConfigurationError(f"Duplicate step id: {descriptor.step_id}")
            if descriptor.mode == TriggerMode.SIGNAL_WITH_START and not descriptor.signal:
                raise ConfigurationError(f"Step {descriptor.step_id} needs a signal name")

            for name in descriptor.activities:
                if name in activity_owner:
                    raise ConfigurationError(
                        f"Activity {name!r} declared by both "
                        f"{activity_owner[name]} and {descriptor.step_id}"
                    )
                if descriptor.activity_class is None or not hasattr(descriptor.activity_class, name):
                    raise ConfigurationError(
                        f"Step {descriptor.step_id} declares missing activity {name!r}"
                    )
                activity_owner[name] = descriptor.step_id

            self._steps[descriptor.step_id] = descriptor
            self._by_event.setdefault(descriptor.event, []).append(descriptor)

    def __len__(self) -> int:
        return len(self._steps)

    def get(self, step_id: str) -> StepDescriptor:
        return self._steps[step_id]

    @property
    def step_ids(self) -> List[str]:
        return list(self._steps)

    def subscribers(self, event_name: str) -> List[StepDescriptor]:
        return list(self._by_event.get(event_name, []))

    @property
    def workflows(self) -> List[Type]:
        return [d.workflow for d in self._steps.values()]

    @property
    def activity_names(self) -> List[str]:
        return [name for d in self._steps.values() for name in d.activities]

    def bind_activities(self, deps: Any) -> List[Callable]:
        """Instantiate each step's activity class with ``deps`` and return its activities."""
        bound: List[Callable] = []
        for descriptor in self._steps.values():
            if descriptor.activity_class is None:
                continue
            instance = descriptor.activity_class(deps)
            bound.extend(getattr(instance, name) for name in descriptor.activities)
        return bound
