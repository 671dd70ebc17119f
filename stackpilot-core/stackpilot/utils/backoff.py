import random

from pydantic import Field
from pydantic.dataclasses import dataclass


@dataclass
class ExponentialBackoff:
    """
    Delays between the retries of a failed remote call. Every delay is the current interval, jittered by up to
    ``randomization_factor`` in both directions. The interval starts at ``initial_interval`` and is multiplied
    by ``multiplier`` after each retry, up to ``max_interval``.

    ``next_backoff()`` returns 0 once ``max_retries`` is used up, which tells the caller to give up. With the
    defaults used while tailing stack events (``max_retries=5``) the intervals are 1, 2, 4, 8 and 16 seconds.
    """

    initial_interval: float = Field(1.0, title="Initial backoff interval in seconds", gt=0)
    randomization_factor: float = Field(0.5, title="Factor to randomize backoff", ge=0, le=1)
    multiplier: float = Field(2.0, title="Multiply interval by this factor each retry", gt=1)
    max_interval: float = Field(30.0, title="Maximum backoff interval in seconds", gt=0)
    max_retries: int = Field(-1, title="Max retry attempts (-1 for unlimited)", ge=-1)

    def __post_init__(self):
        self.reset()

    def reset(self) -> None:
        self.interval: float = self.initial_interval
        self.retries: int = 0

    @property
    def exhausted(self) -> bool:
        return 0 <= self.max_retries < self.retries

    def next_backoff(self) -> float:
        self.retries += 1
        if self.exhausted:
            return 0

        delay = self.interval
        if self.randomization_factor:
            # the jittered delay may exceed max_interval
            delta = self.interval * self.randomization_factor
            delay = random.uniform(self.interval - delta, self.interval + delta)

        self.interval = min(self.max_interval, self.interval * self.multiplier)
        return delay
