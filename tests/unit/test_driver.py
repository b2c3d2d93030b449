"""
Unit tests for the SHA-256 driver.

These tests verify:
1. Padding of the final block(s)
2. Init/Update/Final against hashlib, including block-boundary lengths
3. Streaming updates in arbitrary chunk sizes
4. Exact register protocol issued per block
5. Driving either instance, and both concurrently
6. Poll timeout and finalized-context errors
"""

import hashlib

import numpy as np
import pytest

from dualsha import AcceleratorConfig, AcceleratorSim
from dualsha.driver import (
    DigestFinalizedError,
    DriverTimeoutError,
    Sha256Context,
    SimulatedBus,
    pad_message,
    padding_blocks,
    sha256,
    sha256_pair,
)
from dualsha.util import Control, Reg

ABC_DIGEST = "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"


def random_bytes(length, seed=0):
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, size=length, dtype=np.uint8).tobytes()


class RecordingBus(SimulatedBus):
    """SimulatedBus that logs every transaction."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.log = []

    def read(self, addr):
        value = super().read(addr)
        self.log.append(("r", addr, value))
        return value

    def write(self, addr, value):
        self.log.append(("w", addr, value))
        super().write(addr, value)


class StuckBus:
    """A bus whose accelerator never completes."""

    def read(self, addr):
        return 0

    def write(self, addr, value):
        pass


class SlowBus:
    """A bus whose accelerator reports DONE on the given control read."""

    def __init__(self, done_after):
        self.done_after = done_after
        self.control_reads = 0

    def read(self, addr):
        if addr == Reg.CONTROL:
            self.control_reads += 1
            return int(Control.DONE) if self.control_reads >= self.done_after else 0
        return 0

    def write(self, addr, value):
        if addr == Reg.CONTROL:
            self.control_reads = 0


class TestPadding:
    """Tests for the padding helpers."""

    def test_empty_message(self):
        blocks = padding_blocks(b"", 0)
        assert len(blocks) == 1
        assert blocks[0] == b"\x80" + bytes(63)

    def test_length_fits(self):
        blocks = padding_blocks(b"abc", 24)
        assert len(blocks) == 1
        assert blocks[0][:4] == b"abc\x80"
        assert blocks[0][56:] == (24).to_bytes(8, "big")

    @pytest.mark.parametrize("tail_len", [56, 60, 63])
    def test_length_spills(self, tail_len):
        blocks = padding_blocks(bytes(tail_len), tail_len * 8)
        assert len(blocks) == 2
        assert blocks[0][tail_len] == 0x80
        assert blocks[1][:56] == bytes(56)
        assert int.from_bytes(blocks[1][56:], "big") == tail_len * 8

    def test_55_bytes_fit(self):
        assert len(padding_blocks(bytes(55), 55 * 8)) == 1

    def test_rejects_full_block(self):
        with pytest.raises(ValueError):
            padding_blocks(bytes(64), 512)

    @pytest.mark.parametrize("length,count", [(0, 1), (55, 1), (56, 2), (64, 2), (119, 2), (120, 3)])
    def test_pad_message_block_count(self, length, count):
        blocks = pad_message(bytes(length))
        assert len(blocks) == count
        assert all(len(block) == 64 for block in blocks)


class TestSha256Context:
    """Tests for Init/Update/Final over the simulated accelerator."""

    @pytest.fixture
    def bus(self):
        return SimulatedBus()

    def test_abc(self, bus):
        ctx = Sha256Context(bus)
        ctx.init()
        ctx.update(b"abc")
        assert ctx.final().hex() == ABC_DIGEST
        assert ctx.blocks_processed == 1

    def test_abc_helper(self):
        assert sha256(b"abc").hex() == ABC_DIGEST

    @pytest.mark.parametrize("length", [0, 1, 55, 56, 63, 64, 65, 127, 128, 300])
    def test_matches_hashlib(self, bus, length):
        message = random_bytes(length, seed=length)
        assert sha256(message, bus=bus) == hashlib.sha256(message).digest()

    @pytest.mark.parametrize("chunk", [1, 7, 63, 64, 100])
    def test_streaming_updates(self, bus, chunk):
        message = random_bytes(200, seed=chunk)
        ctx = Sha256Context(bus)
        for i in range(0, len(message), chunk):
            ctx.update(message[i : i + chunk])
        assert ctx.final() == hashlib.sha256(message).digest()

    def test_hexdigest(self, bus):
        ctx = Sha256Context(bus)
        ctx.update(b"abc")
        assert ctx.hexdigest() == ABC_DIGEST

    def test_init_restarts(self, bus):
        ctx = Sha256Context(bus)
        ctx.update(b"something else entirely")
        ctx.init()
        ctx.update(b"abc")
        assert ctx.final().hex() == ABC_DIGEST

    def test_second_instance(self, bus):
        ctx = Sha256Context(bus, instance=1)
        ctx.update(b"abc")
        assert ctx.final().hex() == ABC_DIGEST
        assert bus.accel.instance(1).completions == 1
        assert bus.accel.instance(0).completions == 0

    def test_register_protocol(self):
        bus = RecordingBus()
        ctx = Sha256Context(bus, instance=1)
        ctx.update(b"abc")
        ctx.final()

        writes = [(addr, value) for kind, addr, value in bus.log if kind == "w"]
        assert [addr for addr, _ in writes[:16]] == [0x204 + 4 * i for i in range(16)]
        assert writes[0][1] == 0x61626380
        assert [addr for addr, _ in writes[16:24]] == [0x244 + 4 * i for i in range(8)]
        assert writes[24:] == [(0x200, 0), (0x200, int(Control.GO))]

        reads = [(addr, value) for kind, addr, value in bus.log if kind == "r"]
        polls = [value for addr, value in reads if addr == 0x200 + Reg.CONTROL]
        assert all(not value & Control.DONE for value in polls[:-1])
        assert polls[-1] & Control.DONE
        assert [addr for addr, _ in reads[len(polls) :]] == [0x264 + 4 * i for i in range(8)]

    def test_update_after_final_raises(self, bus):
        ctx = Sha256Context(bus)
        ctx.final()
        with pytest.raises(DigestFinalizedError):
            ctx.update(b"x")
        with pytest.raises(DigestFinalizedError):
            ctx.final()

    def test_timeout(self):
        ctx = Sha256Context(StuckBus(), max_polls=10)
        ctx.update(b"abc")
        with pytest.raises(DriverTimeoutError) as excinfo:
            ctx.final()
        assert excinfo.value.polls == 10
        assert excinfo.value.instance == 0

    def test_poll_limit_from_config(self):
        ctx = Sha256Context(StuckBus(), config=AcceleratorConfig(poll_limit=3))
        assert ctx.max_polls == 3

    def test_max_polls_none_is_unbounded(self):
        ctx = Sha256Context(StuckBus(), config=AcceleratorConfig(poll_limit=5), max_polls=None)
        assert ctx.max_polls is None

    def test_max_polls_none_outlasts_config_limit(self):
        bus = SlowBus(done_after=50)
        ctx = Sha256Context(bus, config=AcceleratorConfig(poll_limit=5), max_polls=None)
        ctx.submit(bytes(64))
        assert ctx.wait() == 50

    def test_config_limit_applies_by_default(self):
        ctx = Sha256Context(SlowBus(done_after=50), config=AcceleratorConfig(poll_limit=5))
        ctx.submit(bytes(64))
        with pytest.raises(DriverTimeoutError):
            ctx.wait()

    def test_rejects_bad_block(self, bus):
        ctx = Sha256Context(bus)
        with pytest.raises(ValueError):
            ctx.transform(bytes(63))

    def test_rejects_bad_instance(self, bus):
        with pytest.raises(ValueError):
            Sha256Context(bus, instance=2)


class TestSha256Pair:
    """Tests for hashing two messages on both engines."""

    def test_pair_matches_hashlib(self):
        a = random_bytes(150, seed=1)
        b = random_bytes(20, seed=2)
        digest_a, digest_b = sha256_pair(a, b)
        assert digest_a == hashlib.sha256(a).digest()
        assert digest_b == hashlib.sha256(b).digest()

    def test_pair_identical_inputs(self):
        digest_a, digest_b = sha256_pair(b"abc", b"abc")
        assert digest_a == digest_b
        assert digest_a.hex() == ABC_DIGEST

    def test_pair_overlaps_engines(self):
        """Two one-block messages take about as long as one."""
        single = SimulatedBus()
        sha256(b"abc", bus=single)

        pair = SimulatedBus(AcceleratorSim())
        sha256_pair(b"abc", b"xyz", bus=pair)

        assert pair.accel.cycle < 2 * single.accel.cycle
        assert pair.accel.instance(0).completions == 1
        assert pair.accel.instance(1).completions == 1
