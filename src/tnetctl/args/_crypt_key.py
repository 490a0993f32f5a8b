"""Default crypt-key generation."""

import secrets

CRYPT_KEY_DIGITS = 13

_LOWER = 10 ** (CRYPT_KEY_DIGITS - 1)
_SPAN = 9 * _LOWER


def generate_crypt_key() -> str:
    """Generate a random 13-digit numeric crypt key.

    The tunnel binary parses the key as a 64-bit integer seed, so the key
    stays numeric; digits come from the `secrets` CSPRNG.

    Returns:
        A 13-digit decimal string without a leading zero.
    """
    return str(_LOWER + secrets.randbelow(_SPAN))
