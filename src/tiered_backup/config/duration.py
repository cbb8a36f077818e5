"""
Duration literal parsing.

Durations are written as concatenated ``<digits><unit>`` groups, for
example ``1D2H30M`` or ``6h 30m``. Units are ``d``, ``h``, ``m`` and ``s``
(case-insensitive). Whitespace is allowed only between groups.
"""

from datetime import timedelta

from tiered_backup.core.exceptions import DurationFormatError

UNIT_SECONDS = {
    "d": 86400,
    "h": 3600,
    "m": 60,
    "s": 1,
}


def parse_duration_seconds(literal: str) -> int:
    """
    Parse a duration literal into whole seconds.

    Args:
        literal: Duration text such as ``"1D2H30M"`` or ``"45S"``

    Returns:
        Total seconds, floored at zero

    Raises:
        DurationFormatError: If the literal is empty or malformed
    """
    if literal is None or not str(literal).strip():
        raise DurationFormatError("Duration is empty", literal=literal)

    text = str(literal).strip().lower()
    total = 0
    number: int | None = None

    for ch in text:
        if "0" <= ch <= "9":
            number = int(ch) if number is None else number * 10 + int(ch)
            continue
        if ch.isspace():
            if number is not None:
                raise DurationFormatError(
                    "Whitespace between a number and its unit", literal=literal
                )
            continue
        if ch not in UNIT_SECONDS:
            raise DurationFormatError(f"Unknown duration unit: {ch!r}", literal=literal)
        if number is None:
            raise DurationFormatError(f"Missing number before unit {ch!r}", literal=literal)
        total += number * UNIT_SECONDS[ch]
        number = None

    if number is not None:
        raise DurationFormatError("Unit required for trailing number", literal=literal)

    return max(0, total)


def parse_duration(literal: str) -> timedelta:
    """Parse a duration literal into a timedelta."""
    return timedelta(seconds=parse_duration_seconds(literal))


def format_duration(seconds: float) -> str:
    """Render seconds as ``1d 2h 30m 0s`` style text, dropping leading zero units."""
    remaining = max(0, int(seconds))
    parts = []
    for unit, size in UNIT_SECONDS.items():
        value, remaining = divmod(remaining, size)
        if value or parts or unit == "s":
            parts.append(f"{value}{unit}")
    return " ".join(parts)
