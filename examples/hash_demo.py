#!/usr/bin/env python3
"""
SHA-256 Accelerator Demo.

This example hashes data through the simulated dual-engine accelerator and
checks the digests against hashlib. It shows:

1. Driver Flow
   - Init / Update / Final over the memory-mapped register protocol
   - One hardware run per 64-byte block, spin-polling CONTROL.DONE

2. Dual Engines
   - Two messages hashed concurrently, one per engine instance
   - Cycle counts for serial versus paired execution

3. RTL Cross-Check (optional)
   - The known-answer block run through the Amaranth RTL top level
   - GO -> DONE latency compared with the behavioral model

Usage:
    python hash_demo.py [MESSAGE ...] [--file PATH] [--pair] [--rtl] [--verbose]
"""

import argparse
import hashlib
import logging
import sys
from pathlib import Path

# Add src directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from dualsha import AcceleratorConfig, AcceleratorSim, SimulatedBus, sha256, sha256_pair  # noqa: E402
from dualsha.driver import Sha256Context  # noqa: E402
from dualsha.engine import H0  # noqa: E402
from dualsha.util import Control, Reg, msg_offset, state_in_offset, state_out_offset  # noqa: E402

KAT_BLOCK = [
    0x49207573, 0x65642074, 0x6F20706C, 0x61792070,
    0x69616E6F, 0x20627920, 0x6561722C, 0x20627574,
    0x206E6F77, 0x20492075, 0x7365206D, 0x79206861,
    0x6E64732E, 0x80000000, 0x00000000, 0x000001A0,
]  # fmt: skip


def hash_messages(messages: list[bytes]) -> bool:
    """Hash each message on instance 0 and compare with hashlib."""
    print("\n" + "=" * 70)
    print("Driver: Init / Update / Final")
    print("=" * 70)

    ok = True
    for message in messages:
        bus = SimulatedBus()
        digest = sha256(message, bus=bus)
        expected = hashlib.sha256(message).digest()
        status = "ok" if digest == expected else "MISMATCH"
        ok &= digest == expected
        label = message[:24] + (b"..." if len(message) > 24 else b"")
        print(f"   {label!r:32s} {digest.hex()}  [{status}]")
        print(f"   {'':32s} {bus.accel.cycle} cycles, {bus.transactions} bus transactions")
    return ok


def hash_pair(first: bytes, second: bytes) -> bool:
    """Hash two messages serially and then concurrently."""
    print("\n" + "=" * 70)
    print("Dual Engines")
    print("=" * 70)

    serial = SimulatedBus()
    for message in (first, second):
        ctx = Sha256Context(serial)
        ctx.update(message)
        ctx.final()

    paired = SimulatedBus(AcceleratorSim(AcceleratorConfig()))
    digest_a, digest_b = sha256_pair(first, second, bus=paired)

    ok = digest_a == hashlib.sha256(first).digest() and digest_b == hashlib.sha256(second).digest()
    print(f"   serial (instance 0 only): {serial.accel.cycle} cycles")
    print(f"   paired (instances 0 + 1): {paired.accel.cycle} cycles")
    print(f"   digests match hashlib: {ok}")
    return ok


def run_rtl() -> bool:
    """Run the known-answer block through the RTL top level."""
    from amaranth.sim import Simulator

    from dualsha import DualSha256Top

    print("\n" + "=" * 70)
    print("RTL Cross-Check")
    print("=" * 70)

    top = DualSha256Top(AcceleratorConfig())
    results = {}

    async def bus_write(ctx, addr, value):
        ctx.set(top.addr, addr)
        ctx.set(top.wdata, value)
        ctx.set(top.we, 1)
        await ctx.tick()
        ctx.set(top.we, 0)

    async def bus_read(ctx, addr):
        ctx.set(top.addr, addr)
        value = ctx.get(top.rdata)
        await ctx.tick()
        return value

    async def testbench(ctx):
        for i, word in enumerate(KAT_BLOCK):
            await bus_write(ctx, msg_offset(i), word)
        for i, word in enumerate(H0):
            await bus_write(ctx, state_in_offset(i), word)
        await bus_write(ctx, Reg.CONTROL, 0)
        await bus_write(ctx, Reg.CONTROL, int(Control.GO))

        polls = 0
        while True:
            polls += 1
            if await bus_read(ctx, Reg.CONTROL) & Control.DONE:
                break
        results["polls"] = polls
        results["out"] = [await bus_read(ctx, state_out_offset(i)) for i in range(8)]

    sim = Simulator(top)
    sim.add_clock(1e-6)
    sim.add_testbench(testbench)
    sim.run()

    model = Sha256Context(SimulatedBus())
    model.submit(b"".join(word.to_bytes(4, "big") for word in KAT_BLOCK))
    model_polls = model.wait()
    model.collect()

    print(f"   RTL   polls to DONE: {results['polls']}")
    print(f"   Model polls to DONE: {model_polls}")
    print(f"   RTL   result: {' '.join(f'{w:08x}' for w in results['out'])}")
    print(f"   Model result: {' '.join(f'{w:08x}' for w in model.state)}")
    return results["polls"] == model_polls and results["out"] == model.state


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="SHA-256 Accelerator Demo",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "messages",
        nargs="*",
        default=["abc"],
        help="Messages to hash (default: abc)",
    )
    parser.add_argument(
        "--file",
        type=Path,
        action="append",
        default=[],
        help="Hash the contents of a file (may be repeated)",
    )
    parser.add_argument(
        "--pair",
        action="store_true",
        help="Also hash the first two inputs concurrently on both engines",
    )
    parser.add_argument(
        "--rtl",
        action="store_true",
        help="Cross-check the known-answer block on the RTL (requires Amaranth)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log per-block driver and register-file events",
    )

    args = parser.parse_args()

    if args.verbose and not logging.getLogger().handlers:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    messages = [m.encode() for m in args.messages] + [p.read_bytes() for p in args.file]

    success = hash_messages(messages)
    if args.pair:
        first, second = (messages + [b""])[:2]
        success &= hash_pair(first, second)
    if args.rtl:
        success &= run_rtl()

    print("\n" + "=" * 70)
    print("Demo completed successfully!" if success else "Demo FAILED")
    print("=" * 70)
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
