"""
Dualsha - A dual-engine SHA-256 compression accelerator.

This package provides the accelerator as synthesizable Amaranth HDL
(engine, register file, two-instance top level), cycle-equivalent behavioral
models of the same hardware, and a polling software driver.
"""

from .config import AcceleratorConfig
from .driver import Sha256Context, SimulatedBus, sha256, sha256_pair
from .top import AcceleratorSim, DualSha256Top

__version__ = "0.1.0"
__all__ = [
    "AcceleratorConfig",
    "AcceleratorSim",
    "DualSha256Top",
    "Sha256Context",
    "SimulatedBus",
    "sha256",
    "sha256_pair",
    "__version__",
]
