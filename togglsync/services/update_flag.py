from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class UpdateFlag:
    """
    State of a row's updateFlag cell.

    The stored integer is hundreds * 100 + ones: ones == 1 marks a pending update, the
    hundreds count successful updates. Marking an update applied adds 99 to the stored
    value (e.g. 1 -> 100, 101 -> 200), which clears the ones digit and bumps the count.
    """
    value: int = 0

    @classmethod
    def parse(cls, raw: Optional[Union[int, str]]) -> "UpdateFlag":
        """Empty cells and unparsable values read as 0."""
        if raw is None or raw == "":
            return cls(0)
        try:
            return cls(int(raw))
        except (TypeError, ValueError):
            return cls(0)

    @property
    def pending(self) -> bool:
        return self.value % 10 == 1

    @property
    def update_count(self) -> int:
        return self.value // 100

    def mark_applied(self) -> "UpdateFlag":
        return UpdateFlag(self.value + 99)

    def request_update(self) -> "UpdateFlag":
        """Flag the row for the next reconciliation (no-op when already pending)."""
        if self.pending:
            return self
        return UpdateFlag(self.update_count * 100 + 1)
