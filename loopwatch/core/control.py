import time, logging
from typing import Callable
from redis.exceptions import RedisError

log = logging.getLogger(__name__)

class RedisHealth:
    """
    Tracks Redis reachability for the stall sink. After a failure, checks
    short-circuit to False until the cooldown expires so a dead Redis is not
    pinged on every event.
    """

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        self.ok = True
        self.down_until = 0.0
        self.clock = clock

    def mark_down(self, *, cooldown_s: float = 5.0) -> None:
        if self.ok:
            log.error("Redis unreachable, dropping stall events for %.0fs", cooldown_s)
        self.ok = False
        self.down_until = self.clock() + cooldown_s

    async def check(self, r, *, cooldown_s: float = 5.0) -> bool:
        now = self.clock()

        if not self.ok and now < self.down_until:
            return False

        try:
            await r.ping()
            if not self.ok:
                log.warning("Redis recovered")
            self.ok = True
            return True
        except RedisError:
            self.mark_down(cooldown_s=cooldown_s)
            return False
