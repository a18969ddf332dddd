from __future__ import annotations

import pytest

from poolchart.platform.errors import UnknownResolution
from poolchart.shared_kernel.primitives import SUPPORTED_RESOLUTIONS, Resolution, bucket_seconds_of


def test_bucket_seconds_table_covers_chart_resolutions() -> None:
    """Ensure every supported label maps to its fixed bucket width."""
    assert bucket_seconds_of("1") == 60
    assert bucket_seconds_of("5") == 300
    assert bucket_seconds_of("15") == 900
    assert bucket_seconds_of("60") == 3600
    assert bucket_seconds_of("240") == 14400
    assert bucket_seconds_of("1D") == 86400
    assert bucket_seconds_of("1W") == 604800
    assert bucket_seconds_of("1M") == 2592000
    assert SUPPORTED_RESOLUTIONS == ("1", "5", "15", "60", "240", "1D", "1W", "1M")


def test_unknown_label_raises_unknown_resolution() -> None:
    """Ensure unsupported labels are rejected with a typed error."""
    with pytest.raises(UnknownResolution) as excinfo:
        bucket_seconds_of("3")
    assert excinfo.value.code == "unknown_resolution"

    with pytest.raises(UnknownResolution):
        Resolution("1d")


def test_bucket_start_is_epoch_aligned() -> None:
    """Ensure bucket starts are floored to multiples of the width."""
    res = Resolution("1")
    assert res.bucket_start_s(1000) == 960
    assert res.bucket_start_ms(1000) == 960_000
    assert res.bucket_start_s(960) == 960
    assert res.bucket_ms == 60_000
    assert str(res) == "1"
