import asyncio


class HealthGauge:
    """
    Failure counter backing the readiness probe.

    Unexpected exceptions raised while serving a request increment the gauge
    (``womp``); a background task decrements it periodically (``tick``). A
    burst of failures pushes the value over the threshold and the readiness
    probe reports unhealthy until the gauge decays again.
    """

    def __init__(self, value: int = 0, health_threshold: int = 100) -> None:
        self._value = value
        self._health_threshold = health_threshold
        self._lock = asyncio.Lock()

    @property
    def value(self) -> int:
        return self._value

    async def womp(self, d=1) -> int:
        async with self._lock:
            self._value += int(d)
            return self._value

    async def tick(self) -> None:
        async with self._lock:
            if self._value > 0:
                self._value -= 1

    async def is_healthy(self) -> bool:
        async with self._lock:
            return self._value <= self._health_threshold
