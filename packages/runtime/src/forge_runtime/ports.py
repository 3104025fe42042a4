"""
Port allocation for preview servers.

Ports come from a fixed range. A monotonic cursor scans upward and skips
ports still claimed by a live server; it never wraps around, so the range
is exhausted once the cursor passes its end.

The allocator is not locked itself; the process supervisor serializes every
call under its registry lock.
"""

from forge_core import PortExhaustedError, PortUnavailableError, get_logger

logger = get_logger(__name__)

PORT_RANGE_START = 24000
PORT_RANGE_END = 24999


class PortAllocator:
    """Hands out unique ports from ``[start, end]``."""

    def __init__(self, start: int = PORT_RANGE_START, end: int = PORT_RANGE_END):
        if start > end:
            raise ValueError(f"Empty port range {start}-{end}")
        self.start = start
        self.end = end
        self._next = start
        self._claimed: set[int] = set()

    def in_use(self, port: int) -> bool:
        """Check whether a live server claims the port."""
        return port in self._claimed

    @property
    def claimed(self) -> frozenset[int]:
        return frozenset(self._claimed)

    def allocate(self) -> int:
        """
        Claim the next free port.

        Raises:
            PortExhaustedError: If the cursor has passed the end of the range
        """
        while self._next <= self.end:
            port = self._next
            self._next += 1
            if port not in self._claimed:
                self._claimed.add(port)
                logger.debug("Port allocated", port=port)
                return port

        raise PortExhaustedError(
            f"No available ports in range {self.start}-{self.end}",
            context={"start": self.start, "end": self.end},
        )

    def claim(self, port: int) -> int:
        """
        Claim an explicitly requested port.

        Raises:
            PortUnavailableError: If a live server already holds it
        """
        if port in self._claimed:
            raise PortUnavailableError(
                f"Port {port} is already in use by another server",
                context={"port": port},
            )
        self._claimed.add(port)
        return port

    def release(self, port: int) -> None:
        """Return a port; releasing an unclaimed port is a no-op."""
        self._claimed.discard(port)
