from tymer.core.format import format_time, ms_to_minutes

MINUTE = 60_000


def test_format_time_rounding_modes() -> None:
    assert format_time(90_000, mode="elapsed") == "0:01"
    assert format_time(90_000, mode="remaining") == "0:02"
    assert format_time(90_000) == "0:02"
    assert format_time(89_999) == "0:01"


def test_format_time_hours_and_compact() -> None:
    assert format_time(125 * MINUTE) == "2:05"
    assert format_time(36 * MINUTE, compact=True) == "36"
    assert format_time(61 * MINUTE, compact=True) == "1:01"


def test_format_time_placeholder_and_debug() -> None:
    assert format_time(None) == "––:––"
    assert format_time(3_723_456, debug=True) == "01:02:03 3723456 ms"


def test_ms_to_minutes() -> None:
    assert ms_to_minutes(359_999) == 5
