"""Crypt-key redaction for displayed and logged argument lists."""

import re
from collections.abc import Iterable

CRYPT_KEY_PREFIX = "--crypt-key="
MASK = "**********"
MASKED_CRYPT_KEY = f"{CRYPT_KEY_PREFIX}{MASK}"

_CRYPT_KEY_PATTERN = re.compile(r"--crypt-key=\S*")


def mask_args(args: Iterable[str]) -> list[str]:
    """Redact crypt-key values in an argument list.

    Every token starting with ``--crypt-key=`` is replaced wholesale by
    ``--crypt-key=**********``. Other tokens pass through unchanged and order
    is preserved.

    Args:
        args: The unmasked argument list.

    Returns:
        A new, masked argument list of the same length.
    """
    return [
        MASKED_CRYPT_KEY if arg.startswith(CRYPT_KEY_PREFIX) else arg for arg in args
    ]


def secret_values(args: Iterable[str]) -> list[str]:
    """Return the non-empty crypt-key values carried by an argument list."""
    return [
        arg[len(CRYPT_KEY_PREFIX) :]
        for arg in args
        if arg.startswith(CRYPT_KEY_PREFIX) and len(arg) > len(CRYPT_KEY_PREFIX)
    ]


def mask_text(text: str, args: Iterable[str] = ()) -> str:
    """Redact crypt keys from free-form text such as error messages.

    Any ``--crypt-key=...`` fragment is masked, and so is every bare
    occurrence of a secret value carried by ``args``.

    Args:
        text: Text that may echo arguments.
        args: The unmasked argument list the text may refer to.

    Returns:
        The redacted text.
    """
    masked = _CRYPT_KEY_PATTERN.sub(MASKED_CRYPT_KEY, text)
    # Longest first so a key that contains another key is fully replaced
    for secret in sorted(set(secret_values(args)), key=len, reverse=True):
        masked = masked.replace(secret, MASK)
    return masked
