"""
Dualsha Configuration Module

This module defines the configuration dataclass for the dual-engine SHA-256
accelerator. All structural parameters are specified here and propagate
through both the RTL components and the behavioral models.

Note: The accelerator implements exactly one hash primitive, the 256-bit
SHA-256 one-block compression function. The parameters below only describe
how many engines exist and where their register windows live on the bus.
"""

from dataclasses import dataclass

from .util.regmap import REGISTER_WINDOW_BYTES


@dataclass
class AcceleratorConfig:
    """
    Configuration for the SHA-256 accelerator.

    Example:
        >>> config = AcceleratorConfig()
        >>> print(config.addr_bits)  # 10 (two 0x200-byte windows)
        >>> print(hex(config.base_address(1)))  # 0x200
    """

    # =========================================================================
    # Instancing
    # =========================================================================
    num_instances: int = 2
    """Number of independent engine/register-file pairs."""

    instance_stride: int = 0x200
    """Byte distance between consecutive instance windows on the bus."""

    # =========================================================================
    # Data Types (bit widths)
    # =========================================================================
    word_bits: int = 32
    """Width of every register and of the bus data path."""

    # =========================================================================
    # Driver
    # =========================================================================
    poll_limit: int | None = 100_000
    """
    Maximum number of control-register reads the driver spends waiting for
    DONE before giving up. None spins forever, like the bare-metal firmware.
    """

    def __post_init__(self):
        if self.num_instances < 1:
            raise ValueError(f"num_instances must be >= 1, got {self.num_instances}")
        if self.word_bits != 32:
            raise ValueError(f"SHA-256 registers are 32 bits wide, got word_bits={self.word_bits}")
        stride = self.instance_stride
        if stride <= 0 or stride & (stride - 1):
            raise ValueError(f"instance_stride must be a power of two, got {stride:#x}")
        if stride < self.window_bytes:
            raise ValueError(
                f"instance_stride {stride:#x} is smaller than the register window "
                f"({self.window_bytes:#x} bytes)"
            )
        if self.poll_limit is not None and self.poll_limit < 1:
            raise ValueError(f"poll_limit must be positive or None, got {self.poll_limit}")

    # =========================================================================
    # Derived Properties
    # =========================================================================

    @property
    def window_bytes(self) -> int:
        """Bytes of address space decoded by one register file."""
        return REGISTER_WINDOW_BYTES

    @property
    def local_addr_bits(self) -> int:
        """Bits needed to address one register window."""
        return (self.window_bytes - 1).bit_length()

    @property
    def instance_bits(self) -> int:
        """Bits needed to select an instance."""
        return max(1, (self.num_instances - 1).bit_length())

    @property
    def stride_bits(self) -> int:
        """Bit position of the instance select field in a bus address."""
        return (self.instance_stride - 1).bit_length()

    @property
    def addr_bits(self) -> int:
        """Width of the bus address port on the top level."""
        return self.stride_bits + self.instance_bits

    @property
    def word_mask(self) -> int:
        """All-ones mask for one register word."""
        return (1 << self.word_bits) - 1

    def base_address(self, index: int) -> int:
        """Bus byte address of instance ``index``'s register window."""
        if not 0 <= index < self.num_instances:
            raise ValueError(f"instance {index} out of range (0..{self.num_instances - 1})")
        return index * self.instance_stride
