"""
=============================================================================
SHORT CODE GENERATOR
=============================================================================

Produces the sequence of short codes handed out by the service:

    AAAA, AAAB, AAAC, ... AAAZ, AABA, ... ZZZZ

Each code is a fixed-width string of uppercase letters read as a base-26
number ('A' = 0, 'Z' = 25). Generating the next code is just "add one"
with carry, done position by position from the right:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    INCREMENT WITH CARRY                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   A A B Z          rightmost is 'Z'  → becomes 'A', carry left       │
    │         ▲                                                            │
    │   A A B A          next is 'B'       → becomes 'C', stop             │
    │       ▲                                                              │
    │   A A C A          result                                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
OVERFLOW
=============================================================================

A carry out of the leftmost position means every code of the current
width has been issued (26 ** width codes). Reusing "AAAA" would make two
short URLs collide, so the generator never wraps. Instead:

    WIDEN (default)   "ZZZZ" is followed by "AAAAA". Codes of different
                      widths are different strings, so nothing collides.

    FAIL              The call after "ZZZZ" was issued raises
                      CodeSpaceExhausted.

=============================================================================
"""

from enum import Enum

from ..exceptions import CodeSpaceExhausted


ALPHABET_START = "A"
ALPHABET_END = "Z"


class OverflowPolicy(Enum):
    """What the generator does once every code of its width is used."""

    WIDEN = "widen"
    FAIL = "fail"


def increment_code(code: str) -> tuple[str, bool]:
    """
    Add one to a base-26 letter code.

    Args:
        code: Current code, uppercase letters only.

    Returns:
        Tuple of (next code, overflowed). On overflow the returned code is
        all 'A's of the same width; the caller decides what to do with it.
    """
    letters = list(code)
    for i in range(len(letters) - 1, -1, -1):
        if letters[i] == ALPHABET_END:
            letters[i] = ALPHABET_START
        else:
            letters[i] = chr(ord(letters[i]) + 1)
            return "".join(letters), False
    return "".join(letters), True


class CodeGenerator:
    """
    Monotonic short code generator.

    next_prefix() hands out the current code and advances the counter, so
    the very first call returns "AAAA" (for width 4).

    Usage:
        codes = CodeGenerator()
        codes.next_prefix()  # "AAAA"
        codes.next_prefix()  # "AAAB"
        codes.peek()         # "AAAC"

    Not thread-safe. The service only calls it from the event loop thread.
    """

    def __init__(self, width: int = 4, overflow: OverflowPolicy = OverflowPolicy.WIDEN):
        if width < 1:
            raise ValueError(f"width must be >= 1, got {width}")
        self.overflow = OverflowPolicy(overflow)
        self._current = ALPHABET_START * width
        self._exhausted = False
        self._issued = 0

    @property
    def width(self) -> int:
        """Width of the code the next call will return."""
        return len(self._current)

    @property
    def issued(self) -> int:
        """Number of codes handed out so far."""
        return self._issued

    def peek(self) -> str:
        """
        Return the code the next call to next_prefix() will hand out.

        Raises:
            CodeSpaceExhausted: Under the FAIL policy once the space is used up.
        """
        if self._exhausted:
            raise CodeSpaceExhausted(self.width)
        return self._current

    def next_prefix(self) -> str:
        """
        Return the current code and advance to the next one.

        Raises:
            CodeSpaceExhausted: Under the FAIL policy, on the call after the
                                last code of the width was returned.
        """
        code = self.peek()

        following, overflowed = increment_code(code)
        if overflowed:
            if self.overflow is OverflowPolicy.WIDEN:
                following = ALPHABET_START * (len(code) + 1)
            else:
                self._exhausted = True

        self._current = following
        self._issued += 1
        return code
