"""Tests for the port allocator."""

import pytest

from forge_core import PortExhaustedError, PortUnavailableError, ServerStartError
from forge_runtime import PORT_RANGE_END, PORT_RANGE_START, PortAllocator


class TestPortAllocator:
    """Tests for PortAllocator."""

    def test_default_range(self):
        assert (PORT_RANGE_START, PORT_RANGE_END) == (24000, 24999)

    def test_allocates_ascending_unique_ports(self):
        ports = PortAllocator(24000, 24010)
        assert [ports.allocate() for _ in range(3)] == [24000, 24001, 24002]
        assert ports.claimed == {24000, 24001, 24002}

    def test_cursor_does_not_reuse_released_ports(self):
        ports = PortAllocator(24000, 24010)
        first = ports.allocate()
        ports.release(first)

        assert ports.allocate() == 24001
        assert not ports.in_use(first)

    def test_skips_explicitly_claimed_ports(self):
        ports = PortAllocator(24000, 24010)
        ports.claim(24000)
        ports.claim(24001)

        assert ports.allocate() == 24002

    def test_exhaustion_without_wraparound(self):
        ports = PortAllocator(24000, 24001)
        ports.allocate()
        second = ports.allocate()
        ports.release(second)

        with pytest.raises(PortExhaustedError) as exc_info:
            ports.allocate()
        assert isinstance(exc_info.value, ServerStartError)

    def test_claim_collision(self):
        ports = PortAllocator()
        ports.claim(3000)

        with pytest.raises(PortUnavailableError):
            ports.claim(3000)

    def test_claim_after_release(self):
        ports = PortAllocator()
        ports.claim(3000)
        ports.release(3000)

        assert ports.claim(3000) == 3000

    def test_release_unclaimed_is_noop(self):
        ports = PortAllocator()
        ports.release(12345)
        assert ports.claimed == frozenset()

    def test_empty_range_rejected(self):
        with pytest.raises(ValueError):
            PortAllocator(25000, 24000)
