import time


class SystemClock:
    """Reads the system wall clock."""

    def current_millis(self) -> int:
        return time.time_ns() // 1_000_000

    def __repr__(self) -> str:
        return "SystemClock()"


class FixedClock:
    """Always reports the same instant; useful for reproducible builds."""

    def __init__(self, fixed_millis: int) -> None:
        self.fixed_millis = fixed_millis

    def current_millis(self) -> int:
        return self.fixed_millis

    def __repr__(self) -> str:
        return f"FixedClock(fixed_millis={self.fixed_millis!r})"


class OffsetClock:
    """System time shifted by a constant number of milliseconds."""

    def __init__(self, offset_millis: int) -> None:
        self.offset_millis = offset_millis

    def current_millis(self) -> int:
        return time.time_ns() // 1_000_000 + self.offset_millis

    def __repr__(self) -> str:
        return f"OffsetClock(offset_millis={self.offset_millis!r})"
