"""
SHA-256 logical functions, constants and the reference compression function.

Everything here operates on plain Python integers holding 32-bit words. The
functions serve two purposes:

1. The behavioral engine model (``CompressionEngineSim``) evaluates one
   expansion step or one round per call using these helpers.
2. ``compress_block`` is the golden reference the RTL and the behavioral
   model are checked against.

Definitions follow FIPS 180-4 section 4.1.2:
    EP0(x)  = ROTR(x, 2)  ^ ROTR(x, 13) ^ ROTR(x, 22)
    EP1(x)  = ROTR(x, 6)  ^ ROTR(x, 11) ^ ROTR(x, 25)
    SIG0(x) = ROTR(x, 7)  ^ ROTR(x, 18) ^ (x >> 3)
    SIG1(x) = ROTR(x, 17) ^ ROTR(x, 19) ^ (x >> 10)
    CH(x, y, z)  = (x & y) ^ (~x & z)
    MAJ(x, y, z) = (x & y) ^ (x & z) ^ (y & z)
"""

from collections.abc import Sequence

MASK32 = 0xFFFF_FFFF

BLOCK_WORDS = 16
STATE_WORDS = 8
SCHEDULE_WORDS = 64
ROUNDS = 64

# Round constants: first 32 bits of the fractional parts of the cube roots
# of the first 64 primes.
K = (
    0x428A2F98, 0x71374491, 0xB5C0FBCF, 0xE9B5DBA5, 0x3956C25B, 0x59F111F1, 0x923F82A4, 0xAB1C5ED5,
    0xD807AA98, 0x12835B01, 0x243185BE, 0x550C7DC3, 0x72BE5D74, 0x80DEB1FE, 0x9BDC06A7, 0xC19BF174,
    0xE49B69C1, 0xEFBE4786, 0x0FC19DC6, 0x240CA1CC, 0x2DE92C6F, 0x4A7484AA, 0x5CB0A9DC, 0x76F988DA,
    0x983E5152, 0xA831C66D, 0xB00327C8, 0xBF597FC7, 0xC6E00BF3, 0xD5A79147, 0x06CA6351, 0x14292967,
    0x27B70A85, 0x2E1B2138, 0x4D2C6DFC, 0x53380D13, 0x650A7354, 0x766A0ABB, 0x81C2C92E, 0x92722C85,
    0xA2BFE8A1, 0xA81A664B, 0xC24B8B70, 0xC76C51A3, 0xD192E819, 0xD6990624, 0xF40E3585, 0x106AA070,
    0x19A4C116, 0x1E376C08, 0x2748774C, 0x34B0BCB5, 0x391C0CB3, 0x4ED8AA4A, 0x5B9CCA4F, 0x682E6FF3,
    0x748F82EE, 0x78A5636F, 0x84C87814, 0x8CC70208, 0x90BEFFFA, 0xA4506CEB, 0xBEF9A3F7, 0xC67178F2,
)  # fmt: skip

# Initial hash value: first 32 bits of the fractional parts of the square
# roots of the first 8 primes.
H0 = (
    0x6A09E667, 0xBB67AE85, 0x3C6EF372, 0xA54FF53A,
    0x510E527F, 0x9B05688C, 0x1F83D9AB, 0x5BE0CD19,
)  # fmt: skip


# =============================================================================
# Logical Functions
# =============================================================================


def rotr(x: int, n: int) -> int:
    """Rotate a 32-bit word right by ``n`` bits."""
    return ((x >> n) | (x << (32 - n))) & MASK32


def ep0(x: int) -> int:
    return rotr(x, 2) ^ rotr(x, 13) ^ rotr(x, 22)


def ep1(x: int) -> int:
    return rotr(x, 6) ^ rotr(x, 11) ^ rotr(x, 25)


def sig0(x: int) -> int:
    return rotr(x, 7) ^ rotr(x, 18) ^ (x >> 3)


def sig1(x: int) -> int:
    return rotr(x, 17) ^ rotr(x, 19) ^ (x >> 10)


def ch(x: int, y: int, z: int) -> int:
    return ((x & y) ^ (~x & z)) & MASK32


def maj(x: int, y: int, z: int) -> int:
    return (x & y) ^ (x & z) ^ (y & z)


# =============================================================================
# Single Steps
# =============================================================================


def expand_word(schedule: Sequence[int], t: int) -> int:
    """Message schedule recurrence for slot ``t`` (16 <= t < 64)."""
    return (
        sig1(schedule[t - 2]) + schedule[t - 7] + sig0(schedule[t - 15]) + schedule[t - 16]
    ) & MASK32


def compress_round(working: Sequence[int], k: int, w: int) -> tuple[int, ...]:
    """
    Apply one compression round to the working variables (a..h).

    Returns the new working variables as an 8-tuple.
    """
    a, b, c, d, e, f, g, h = working
    t1 = (h + ep1(e) + ch(e, f, g) + k + w) & MASK32
    t2 = (ep0(a) + maj(a, b, c)) & MASK32
    return ((t1 + t2) & MASK32, a, b, c, (d + t1) & MASK32, e, f, g)


# =============================================================================
# Reference Compression Function
# =============================================================================


def _check_job(block: Sequence[int], state: Sequence[int]) -> None:
    if len(block) != BLOCK_WORDS:
        raise ValueError(f"block must have {BLOCK_WORDS} words, got {len(block)}")
    if len(state) != STATE_WORDS:
        raise ValueError(f"state must have {STATE_WORDS} words, got {len(state)}")


def expand_schedule(block: Sequence[int]) -> list[int]:
    """Expand a 16-word block into the 64-word message schedule."""
    if len(block) != BLOCK_WORDS:
        raise ValueError(f"block must have {BLOCK_WORDS} words, got {len(block)}")
    schedule = [word & MASK32 for word in block] + [0] * (SCHEDULE_WORDS - BLOCK_WORDS)
    for t in range(BLOCK_WORDS, SCHEDULE_WORDS):
        schedule[t] = expand_word(schedule, t)
    return schedule


def compress_block(state: Sequence[int], block: Sequence[int]) -> tuple[int, ...]:
    """
    SHA-256 compression of one 512-bit block.

    Args:
        state: Eight 32-bit chaining words
        block: Sixteen 32-bit message words (big-endian word order)

    Returns:
        The updated eight-word state.

    Example:
        >>> from dualsha.engine.functions import H0, compress_block
        >>> block = [0x61626380] + [0] * 14 + [0x18]   # "abc", padded
        >>> hex(compress_block(H0, block)[0])
        '0xba7816bf'
    """
    _check_job(block, state)
    schedule = expand_schedule(block)
    working = tuple(word & MASK32 for word in state)
    for t in range(ROUNDS):
        working = compress_round(working, K[t], schedule[t])
    return tuple((w + s) & MASK32 for w, s in zip(working, state, strict=True))
