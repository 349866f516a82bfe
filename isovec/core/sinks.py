"""
Persistence sinks for recorded isotopic states.

A sink receives every composition the ``StateLedger`` records as one
batch: the state id plus one ``(isotope, fraction)`` pair per isotope.
A state is either written whole or not at all; the ledger only commits
the state id once ``write_state`` returns. The engine never reads sinks
back; they exist so an output database (or a test) can observe the
states a run produced.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import List, Protocol, Sequence, Tuple, Union

StateRows = Sequence[Tuple[int, float]]


class PersistenceSink(Protocol):
    def write_state(self, state_id: int, rows: StateRows) -> None:
        ...


@dataclass(frozen=True)
class StateRow:
    """A single recorded isotope fraction."""
    state_id: int
    isotope: int
    fraction: float


class MemorySink:
    """Keep recorded rows in memory, in the order they were written."""

    def __init__(self):
        self.rows: List[StateRow] = []

    def write_state(self, state_id: int, rows: StateRows) -> None:
        batch = [StateRow(state_id, int(isotope), float(fraction)) for isotope, fraction in rows]
        self.rows.extend(batch)

    def by_state(self, state_id: int) -> dict[int, float]:
        return {row.isotope: row.fraction for row in self.rows if row.state_id == state_id}

    def state_ids(self) -> List[int]:
        """Distinct state ids in first-written order."""
        seen: List[int] = []
        for row in self.rows:
            if not seen or seen[-1] != row.state_id:
                seen.append(row.state_id)
        return seen

    def __len__(self) -> int:
        return len(self.rows)


class JsonLinesSink:
    """Append rows to a JSON-lines file, one object per row.

    Each state is serialised completely before the file is touched and
    then appended with a single write, so a serialisation error never
    leaves part of a state on disk. The file is opened per state so that
    a crashed run keeps every state written so far.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def write_state(self, state_id: int, rows: StateRows) -> None:
        lines = [
            json.dumps({"state_id": state_id, "isotope": isotope, "fraction": fraction}) + "\n"
            for isotope, fraction in rows
        ]
        with self.path.open("a", encoding="utf-8") as fh:
            fh.write("".join(lines))

    def read(self) -> List[StateRow]:
        if not self.path.exists():
            return []
        with self.path.open("r", encoding="utf-8") as fh:
            return [StateRow(**json.loads(line)) for line in fh if line.strip()]
