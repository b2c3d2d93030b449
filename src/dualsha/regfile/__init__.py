"""
Memory-mapped register file.

This module contains:
- RegisterFile: RTL register window with the GO/DONE handshake
- RegisterFileSim: behavioral model owning a CompressionEngineSim
"""

from .register_file import RegisterFile, RegisterFileSim

__all__ = ["RegisterFile", "RegisterFileSim"]
