from dataclasses import dataclass

DEFAULT_INTERVAL_S = 1.0 / 3.0

@dataclass
class Sampler:
    """Fixed-rate gate driven by host tick durations.

    Fires at most once per ``advance`` call; time beyond the interval is
    discarded rather than carried into the next tick.
    """
    interval: float = DEFAULT_INTERVAL_S
    accumulated: float = 0.0
    fired: int = 0

    def __post_init__(self):
        if self.interval <= 0:
            raise ValueError(f"sample interval must be positive, got {self.interval}")

    def reset(self):
        self.accumulated = 0.0
        self.fired = 0

    def advance(self, delta: float) -> bool:
        self.accumulated += max(0.0, delta)
        if self.accumulated >= self.interval:
            self.accumulated = 0.0
            self.fired += 1
            return True
        return False

    @property
    def rate_hz(self) -> float:
        return 1.0 / self.interval
