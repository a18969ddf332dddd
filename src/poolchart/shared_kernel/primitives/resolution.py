from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType

from poolchart.platform.errors import UnknownResolution

# Chart resolution label -> bucket width in seconds.
# Months are flattened to 30 days.
_BUCKET_SECONDS = MappingProxyType(
    {
        "1": 60,
        "5": 5 * 60,
        "15": 15 * 60,
        "60": 60 * 60,
        "240": 4 * 60 * 60,
        "1D": 24 * 60 * 60,
        "1W": 7 * 24 * 60 * 60,
        "1M": 30 * 24 * 60 * 60,
    }
)

SUPPORTED_RESOLUTIONS: tuple[str, ...] = tuple(_BUCKET_SECONDS.keys())


def bucket_seconds_of(label: str) -> int:
    """
    Return bucket width in seconds for a chart resolution label.

    Parameters:
    - label: resolution label (`"1"`, `"5"`, `"15"`, `"60"`, `"240"`, `"1D"`, `"1W"`, `"1M"`).

    Returns:
    - Bucket width in seconds.

    Assumptions/Invariants:
    - Labels are case-sensitive, the table is process-wide and immutable.

    Errors/Exceptions:
    - Raises `UnknownResolution` for labels outside the table.

    Side effects:
    - None.
    """
    try:
        return _BUCKET_SECONDS[label]
    except (KeyError, TypeError) as exc:
        raise UnknownResolution(str(label)) from exc


@dataclass(frozen=True, slots=True)
class Resolution:
    """
    Resolution — chart resolution label together with its bucket width.

    Representation:
    - label: "1", "5", ..., "1M"
    - bucket_seconds: derived from the label table
    """

    label: str

    def __post_init__(self) -> None:
        # validates the label
        bucket_seconds_of(self.label)

    @property
    def bucket_seconds(self) -> int:
        return _BUCKET_SECONDS[self.label]

    @property
    def bucket_ms(self) -> int:
        return self.bucket_seconds * 1000

    def bucket_start_s(self, ts_s: int | float) -> int:
        """Epoch-aligned bucket start in seconds for a timestamp in seconds."""
        width = self.bucket_seconds
        return int(ts_s // width) * width

    def bucket_start_ms(self, ts_s: int | float) -> int:
        """Epoch-aligned bucket start in milliseconds for a timestamp in seconds."""
        return self.bucket_start_s(ts_s) * 1000

    def __str__(self) -> str:
        return self.label
