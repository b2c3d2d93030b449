"""
SHA-256 compression engine.

This module contains:
- functions: logical functions, constants and the integer reference model
- CompressionEngine: RTL engine (IDLE -> LOAD -> EXPAND -> COMPRESS -> DONE)
- CompressionEngineSim: cycle-equivalent behavioral model
"""

from .compression import RUN_STEPS, CompressionEngine, CompressionEngineSim, EngineState
from .functions import H0, K, compress_block, expand_schedule

__all__ = [
    "CompressionEngine",
    "CompressionEngineSim",
    "EngineState",
    "RUN_STEPS",
    "H0",
    "K",
    "compress_block",
    "expand_schedule",
]
