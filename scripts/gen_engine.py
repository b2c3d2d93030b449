#!/usr/bin/env python3
"""Generate CompressionEngine Verilog from dualsha."""

import sys
from pathlib import Path

# Add src to path if running from scripts/
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

from amaranth.back import verilog  # noqa: E402

from dualsha.engine import CompressionEngine  # noqa: E402


def main():
    gen_dir = project_root / "gen"
    gen_dir.mkdir(exist_ok=True)

    engine = CompressionEngine()

    output_path = gen_dir / "sha256_engine.v"
    with open(output_path, "w") as f:
        f.write(verilog.convert(engine, name="Sha256Engine"))

    print(f"Generated {output_path}")


if __name__ == "__main__":
    main()
