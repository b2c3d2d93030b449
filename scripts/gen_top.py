#!/usr/bin/env python3
"""Generate the dual-engine accelerator top level Verilog from dualsha."""

import argparse
import sys
from pathlib import Path

# Add src to path if running from scripts/
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

from amaranth.back import verilog  # noqa: E402

from dualsha.config import AcceleratorConfig  # noqa: E402
from dualsha.top import DualSha256Top  # noqa: E402


def main():
    parser = argparse.ArgumentParser(description="Generate DualSha256Top Verilog")
    parser.add_argument("--instances", type=int, default=2, help="Engine instances (default: 2)")
    parser.add_argument(
        "--stride",
        type=lambda s: int(s, 0),
        default=0x200,
        help="Byte stride between instance windows (default: 0x200)",
    )
    args = parser.parse_args()

    gen_dir = project_root / "gen"
    gen_dir.mkdir(exist_ok=True)

    config = AcceleratorConfig(num_instances=args.instances, instance_stride=args.stride)
    top = DualSha256Top(config)

    output_path = gen_dir / "dual_sha256_top.v"
    with open(output_path, "w") as f:
        f.write(verilog.convert(top, name="DualSha256Top"))

    print(f"Generated {output_path} ({config.num_instances} instances, {config.addr_bits}-bit bus)")


if __name__ == "__main__":
    main()
