import re
import typing

DURATION_REGEX = re.compile(r"^(?P<value>[0-9.]+)\s*(?P<units>[a-z]*)$")

DURATION_SCALES = {
    "": 1,
    "s": 1,
    "sec": 1,
    "m": 60,
    "min": 60,
    "h": 3600,
    "hr": 3600,
}


def to_seconds(duration: typing.Union[str, int, float, None]) -> float:
    """
    Convert a duration configuration value into a number of seconds.

    For example, 20, "45", "30s", "10m", "1.5h", ... will be converted into
    their representative number of seconds and returned as a float.
    """
    if duration is None or duration == "":
        return 0.0

    if not isinstance(duration, str):
        return float(duration)

    match = DURATION_REGEX.match(duration.strip().lower())
    if not match or match.group("units") not in DURATION_SCALES:
        raise ValueError(f'Unknown duration value "{duration}".')

    return float(match.group("value")) * DURATION_SCALES[match.group("units")]
