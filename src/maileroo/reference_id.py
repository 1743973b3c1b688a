"""Reference id generation."""

import secrets
from typing import Callable, Optional

from .validators import REFERENCE_ID_LENGTH

RandomBytes = Callable[[int], bytes]


class ReferenceIDGenerator:
    """Generates 24-character hex reference ids.

    The random source defaults to :func:`secrets.token_bytes`. Tests can
    inject a deterministic one. Failures of the random source propagate.
    """

    def __init__(self, random_bytes: Optional[RandomBytes] = None):
        self._random_bytes = random_bytes or secrets.token_bytes

    def __call__(self) -> str:
        data = self._random_bytes(REFERENCE_ID_LENGTH // 2)
        if len(data) != REFERENCE_ID_LENGTH // 2:
            raise ValueError(
                f"random source returned {len(data)} bytes, "
                f"expected {REFERENCE_ID_LENGTH // 2}"
            )
        return data.hex()


_default_generator = ReferenceIDGenerator()


def generate_reference_id() -> str:
    """Return a new random reference id."""
    return _default_generator()
