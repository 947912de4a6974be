"""Parsing of integer selections such as ``"0:23"`` or ``"1,15,31"``.

Three forms are accepted:

- ``"a:b"``   -- inclusive range from ``a`` to ``b``
- ``"a,b,c"`` -- explicit list
- ``"a"``     -- single value
"""

from __future__ import annotations


class IntegerSelectionError(ValueError):
    """Raised when an integer selection string is malformed or out of bounds."""


def parse_integers(text: str, *, minimum: int, maximum: int) -> tuple[int, ...]:
    """Parse an integer selection and validate it against ``[minimum, maximum]``.

    Args:
        text: Selection string (range, comma-separated list, or single value).
        minimum: Smallest allowed value (inclusive).
        maximum: Largest allowed value (inclusive).

    Returns:
        The selected integers in the order given (ranges ascending).

    Raises:
        IntegerSelectionError: If the string cannot be parsed, a range is
            reversed, the selection is empty, or a value is out of bounds.
    """
    text = text.strip()
    if not text:
        msg = "Empty integer selection"
        raise IntegerSelectionError(msg)

    try:
        if ":" in text:
            start_text, _, stop_text = text.partition(":")
            start, stop = int(start_text), int(stop_text)
            if stop < start:
                msg = f"Reversed range {text!r}: {stop} < {start}"
                raise IntegerSelectionError(msg)
            values = tuple(range(start, stop + 1))
        elif "," in text:
            values = tuple(int(token) for token in text.split(",") if token.strip())
        else:
            values = (int(text),)
    except ValueError as exc:
        if isinstance(exc, IntegerSelectionError):
            raise
        msg = f"Cannot parse integer selection {text!r}: {exc}"
        raise IntegerSelectionError(msg) from exc

    if not values:
        msg = f"Integer selection {text!r} selects nothing"
        raise IntegerSelectionError(msg)

    out_of_bounds = [v for v in values if v < minimum or v > maximum]
    if out_of_bounds:
        msg = f"Values {out_of_bounds} in {text!r} are outside [{minimum}, {maximum}]"
        raise IntegerSelectionError(msg)

    return values
