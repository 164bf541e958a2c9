"""Program-derived address helpers.

Used by the submission bots to locate program accounts. The ingestion path
does not derive addresses.
"""

from dataclasses import dataclass
from typing import Sequence

from solders.pubkey import Pubkey


TWOB_PROGRAM_ID = "DkjFmy1YNDDDaXoy3ZvuCnpb294UDbpbT457gUyiFS5V"


def program_id() -> Pubkey:
    """Parse the TwoB program id."""
    return Pubkey.from_string(TWOB_PROGRAM_ID)


@dataclass(frozen=True)
class PdaResult:
    """A program-derived address and its bump seed."""

    address: Pubkey
    bump: int


def derive_address(program: Pubkey | str, seeds: Sequence[bytes]) -> PdaResult:
    """Derive a program address from seeds.

    Deterministic: the same program id and seeds always give the same result.

    Args:
        program: Owning program id (Pubkey or base58 string).
        seeds: Seed byte strings, each at most 32 bytes.

    Returns:
        PdaResult with the off-curve address and canonical bump.
    """
    if isinstance(program, str):
        program = Pubkey.from_string(program)
    address, bump = Pubkey.find_program_address(list(seeds), program)
    return PdaResult(address=address, bump=bump)


def u64_seed(value: int) -> bytes:
    """Encode an integer seed the way the program does (u64 little-endian)."""
    return value.to_bytes(8, "little")
