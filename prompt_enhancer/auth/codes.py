"""One-time code generation."""

import secrets

DEFAULT_CODE_LENGTH = 6


def generate_code(length: int = DEFAULT_CODE_LENGTH) -> str:
    """
    Return a fixed-width decimal code, uniform over all 10**length values.

    Draws from the OS CSPRNG via `secrets`; there is no fallback source.
    """
    if length < 1:
        raise ValueError("Code length must be at least 1")
    return str(secrets.randbelow(10 ** length)).zfill(length)


def is_well_formed_code(value: str, length: int = DEFAULT_CODE_LENGTH) -> bool:
    """True if value is exactly `length` ASCII digits."""
    return (
        isinstance(value, str)
        and len(value) == length
        and all("0" <= c <= "9" for c in value)
    )
