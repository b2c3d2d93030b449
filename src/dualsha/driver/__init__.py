"""
Software driver for the SHA-256 accelerator.

This module contains:
- RegisterBus / SimulatedBus: the read/write bus surface
- Sha256Context: Init/Update/Final over one engine instance
- sha256 / sha256_pair: one-shot helpers
"""

from .bus import RegisterBus, SimulatedBus
from .errors import DigestFinalizedError, DriverTimeoutError
from .sha256 import Sha256Context, pad_message, padding_blocks, sha256, sha256_pair

__all__ = [
    "RegisterBus",
    "SimulatedBus",
    "Sha256Context",
    "DriverTimeoutError",
    "DigestFinalizedError",
    "pad_message",
    "padding_blocks",
    "sha256",
    "sha256_pair",
]
