from typing import Optional, Set

from relay_api.logging_config import get_logger

logger = get_logger("dedup_guard")

DEFAULT_MAX_SIZE = 5000


class DedupGuard:
    """In-process, memory-bounded filter of already handled message ids.

    When the set reaches ``max_size`` it is cleared entirely before the next
    insert. State is lost on restart and is not shared between processes.
    """

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE):
        if max_size < 1:
            raise ValueError("max_size must be positive")
        self.max_size = max_size
        self._seen: Set[str] = set()
        self.clear_count = 0

    def __len__(self) -> int:
        return len(self._seen)

    def seen(self, message_id: Optional[str]) -> bool:
        if not message_id:
            return False
        return message_id in self._seen

    def mark_seen(self, message_id: Optional[str]) -> None:
        if not message_id:
            return
        if len(self._seen) >= self.max_size:
            logger.info(
                "Dedup set reached capacity, clearing",
                extra={"context": {"max_size": self.max_size}},
            )
            self._seen.clear()
            self.clear_count += 1
        self._seen.add(message_id)

    def admit(self, message_id: Optional[str]) -> bool:
        """Check and mark in one step. Returns False for a duplicate.

        Must not be split across an ``await``: two deliveries of the same id
        would otherwise both pass the check.
        """
        if self.seen(message_id):
            return False
        self.mark_seen(message_id)
        return True
