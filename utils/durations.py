import re

_UNITS = {
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
    "w": 7 * 86400,
}

_DURATION = re.compile(r"^(\d+(?:\.\d+)?)\s*([smhdw])$", re.IGNORECASE)


def parse_duration(value) -> int:
    """Parse a duration such as "3600", "30m", "12h" or "1d" into seconds.

    Plain numbers are taken as seconds. Raises ValueError for anything
    else, including non-positive durations.
    """
    text = str(value).strip()

    if text.isdigit():
        seconds = int(text)
    else:
        match = _DURATION.match(text)
        if not match:
            raise ValueError(f"Invalid duration format: {value!r}")
        seconds = int(float(match.group(1)) * _UNITS[match.group(2).lower()])

    if seconds <= 0:
        raise ValueError(f"Duration must be positive: {value!r}")
    return seconds
