"""Short, high-entropy identifiers used as default disposer keys."""

from __future__ import annotations

from collections.abc import Callable
import secrets

# Legal characters for the unique ID. All of them are on a US keyboard;
# no XML special characters or control codes.
SOUP = (
    "!#%()*+,-./:;=?@[]^_`{|}~"
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789"
)
UID_LENGTH = 20


def gen_uid(length: int = UID_LENGTH, alphabet: str = SOUP) -> str:
    """Generate a random ID.

    87 characters ** 20 positions is better than 128 bits, so collisions are
    negligible in practice.
    """
    return "".join(secrets.choice(alphabet) for _ in range(length))


def make_uid_factory(
    length: int = UID_LENGTH, alphabet: str = SOUP
) -> Callable[[], str]:
    """Bind ``length`` and ``alphabet`` into a zero-argument generator."""
    if length < 1:
        raise ValueError("length must be positive.")
    if not alphabet:
        raise ValueError("alphabet must not be empty.")

    def factory() -> str:
        return gen_uid(length, alphabet)

    return factory
