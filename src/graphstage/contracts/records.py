"""Record shapes that cross task boundaries."""

from dataclasses import dataclass, field
from typing import Any

from graphstage.contracts.enums import Channel


@dataclass(frozen=True)
class OutputRecord:
    """One emission on a stage output channel.

    GRAPH records carry an encoded vertex in ``value`` and no key.
    SIDEEFFECT records carry a terminal (key, value) pair; either side may be
    None when the stage has nothing to put there.
    """

    channel: Channel
    key: Any
    value: Any


@dataclass
class StageJobResult:
    """Everything one stage job produced.

    Attributes:
        stage: Stage plugin name
        graph: GRAPH output, one list of encoded vertex records per map task
        side_effects: SIDEEFFECT records in emission order
        counters: Job-wide counter totals keyed by counter name
    """

    stage: str
    graph: list[list[bytes]] = field(default_factory=list)
    side_effects: list[OutputRecord] = field(default_factory=list)
    counters: dict[str, int] = field(default_factory=dict)

    def side_effect_pairs(self) -> list[tuple[Any, Any]]:
        return [(record.key, record.value) for record in self.side_effects]

    def side_effect_values(self) -> list[Any]:
        return [record.value for record in self.side_effects]

    def counter(self, name: str) -> int:
        """Counter total, 0 if never incremented."""
        return self.counters.get(name, 0)
