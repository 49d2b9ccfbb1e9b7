import enum
import logging
import threading
from dataclasses import dataclass

from suite_errors import CompletionStateError

logger = logging.getLogger(__name__)

UNGROUPED = "ungrouped"


class GroupPhase(enum.Enum):
    IDLE = "idle"
    REGISTERING = "registering"
    DRAINING = "draining"
    FLUSHED = "flushed"


@dataclass
class GroupState:
    registered: int = 0
    completed: int = 0
    phase: GroupPhase = GroupPhase.IDLE


class CompletionCoordinator:
    """Counts registered and finished tests per group and flushes once they converge.

    ``on_flush(group)`` is called exactly once per group, after the last
    registered test completes. The lock only covers the counter update and
    the compare-and-set of the phase; the flush itself runs outside it.
    """

    def __init__(self, on_flush):
        self._on_flush = on_flush
        self._lock = threading.Lock()
        self._groups: dict[str, GroupState] = {}

    def register(self, group: str = UNGROUPED) -> int:
        with self._lock:
            state = self._groups.setdefault(group, GroupState())
            if state.phase is GroupPhase.FLUSHED:
                raise CompletionStateError(f"Group '{group}' already flushed; cannot register more tests")
            state.registered += 1
            if state.phase is GroupPhase.IDLE:
                state.phase = GroupPhase.REGISTERING
            return state.registered

    def complete(self, group: str = UNGROUPED) -> bool:
        """Mark one test in ``group`` finished. Returns True if this call triggered the flush."""
        with self._lock:
            state = self._groups.get(group)
            if state is None or state.completed >= state.registered:
                raise CompletionStateError(f"complete() called for '{group}' without a matching register()")
            state.completed += 1
            state.phase = GroupPhase.DRAINING
            should_flush = state.completed == state.registered
            if should_flush:
                state.phase = GroupPhase.FLUSHED
            registered, completed = state.registered, state.completed

        logger.debug("Group '%s': %d/%d completed", group, completed, registered)
        if should_flush:
            logger.info("All %d tests in group '%s' finished, flushing report", registered, group)
            self._fire(group)
        return should_flush

    def flush_now(self, reason: str = UNGROUPED) -> None:
        """Manual flush for ad hoc runs that never register a group."""
        logger.info("Manual report flush (%s)", reason)
        self._fire(reason)

    def _fire(self, group: str) -> None:
        try:
            self._on_flush(group)
        except Exception:
            # reporting must never change a test outcome
            logger.exception("Report flush for group '%s' failed", group)

    def snapshot(self, group: str = UNGROUPED) -> GroupState:
        with self._lock:
            state = self._groups.get(group, GroupState())
            return GroupState(state.registered, state.completed, state.phase)
