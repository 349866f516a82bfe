"""
Ledger subsystem responsible for state identities and persistence.

Every composition that becomes permanent, either by being loaded as a
recipe or by being recorded from a handle, receives a state id from the
single counter kept here. Ids start at 1, strictly increase and once
committed are never reused, so the registry and handle recording can
never collide.

Recording a composition minimises it and hands the sink the whole state,
one row per isotope, in a single batch. The id is committed only after
the sink accepts it. Id assignment and sink writes share one lock, which
keeps rows in the sink ordered by state id even when actors record from
several threads.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from .composition import Composition, CompositionStore
from .sinks import MemorySink, PersistenceSink

logger = logging.getLogger(__name__)


class StateLedger:
    """Assign monotonic state ids and write logged states to a sink.

    Attributes:
        store: Store used to minimise and read compositions.
        sink: Destination of recorded rows.
        recorded: Number of compositions written to the sink.
    """

    def __init__(self, store: CompositionStore, sink: Optional[PersistenceSink] = None):
        self.store = store
        self.sink = sink if sink is not None else MemorySink()
        self.recorded = 0
        self._next_id = 1
        self._lock = threading.RLock()

    @property
    def last_state_id(self) -> int:
        """The most recently issued id, 0 before the first one."""
        return self._next_id - 1

    def next_state_id(self) -> int:
        """Issue a fresh state id without recording anything."""
        with self._lock:
            state_id = self._next_id
            self._next_id += 1
            return state_id

    def record(self, c: Composition) -> bool:
        """Log ``c`` if it is not already logged.

        Returns True when a new state was written and False when ``c``
        already carried a state id. The id is only committed after the
        sink accepted the whole state; if the sink raises, the error
        propagates, ``c`` stays unlogged and the id is reused by the next
        record.
        """
        with self._lock:
            if c.logged:
                return False
            self.store.minimize(c)
            state_id = self._next_id
            rows = [(tope, self.store.mass_fraction(c, tope)) for tope in c.isotopes()]
            self.sink.write_state(state_id, rows)
            self._next_id += 1
            # freezes c
            c.state_id = state_id
            self.recorded += 1
        logger.debug("Recorded state %d with %d isotopes", state_id, len(rows))
        return True
