from tymer.core.models import PeriodType
from tymer.notifications.catalog import DEFAULT_CATALOG, SoundCatalog, WindowKind

MINUTE = 60_000


def test_priorities_rank_overtime_first() -> None:
    ranked = sorted(WindowKind, key=lambda kind: kind.priority, reverse=True)

    assert ranked == [WindowKind.OVERTIME, WindowKind.TIMESUP, WindowKind.REMAINING, WindowKind.ELAPSED]


def test_build_windows_for_work_period() -> None:
    windows = DEFAULT_CATALOG.build_windows(36 * MINUTE, PeriodType.WORK, PeriodType.BREAK)
    by_key = {window.key: window for window in windows}

    assert by_key["elapsed_6"].target_ms == 6 * MINUTE
    assert by_key["remaining_24"].target_ms == 12 * MINUTE
    assert by_key["timesup"].target_ms == 36 * MINUTE
    assert by_key["timesup"].sound_key == "timesup_break"
    assert by_key["overtime_60"].target_ms == 96 * MINUTE
    assert by_key["overtime_60"].sound_key == "overtime_60"


def test_build_windows_skips_remaining_before_start() -> None:
    windows = DEFAULT_CATALOG.build_windows(12 * MINUTE, "break")
    keys = {window.key for window in windows}

    assert "remaining_24" not in keys
    assert "remaining_12" in keys
    assert "overtime_60" not in keys
    assert {w.sound_key for w in windows if w.kind is WindowKind.OVERTIME} == {
        f"overtime_break_{minutes}" for minutes in DEFAULT_CATALOG.overtime_break
    }
    assert next(w for w in windows if w.kind is WindowKind.TIMESUP).sound_key == "timesup_finish"


def test_max_remaining_minutes() -> None:
    assert DEFAULT_CATALOG.max_remaining_minutes == 24
    assert SoundCatalog(elapsed=(), remaining=(), overtime=(), overtime_break=()).max_remaining_minutes == 0


def test_from_mapping_overrides_and_falls_back() -> None:
    catalog = SoundCatalog.from_mapping({"remaining": [12, 6, 0], "overtime": "bad"})

    assert catalog.remaining == (6, 12)
    assert catalog.overtime == DEFAULT_CATALOG.overtime
    assert catalog.elapsed == DEFAULT_CATALOG.elapsed
