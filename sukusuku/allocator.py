"""
Sukusuku - Task Allocator
Splits household tasks between the two caregivers.

The only policy today is a coin flip per task. Callers depend on the
Allocator protocol, so a real scheduler can replace it.
"""

import random
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Sequence


class Party(Enum):
    PARTY_A = "parent1"
    PARTY_B = "parent2"


@dataclass(frozen=True)
class Assignment:
    task: str
    assignee: Party

    def to_record(self) -> Dict[str, Any]:
        return {"task": self.task, "assigned": self.assignee.value}


class Allocator(Protocol):
    def assign(self, tasks: Sequence[str]) -> List[Assignment]: ...


class RandomAllocator:
    """Assigns each task independently to either party with equal probability."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def assign(self, tasks: Sequence[str]) -> List[Assignment]:
        return [
            Assignment(task=task, assignee=self.rng.choice((Party.PARTY_A, Party.PARTY_B)))
            for task in tasks
        ]
