"""Named date-range presets for the dashboard's analytics window."""
from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from app.core.config import settings
from app.schemas.dashboard import DatePreset, DateRange

DEFAULT_PRESET = DatePreset.last_30_days


def _now(tz: ZoneInfo) -> datetime:
    return datetime.now(tz)


def dashboard_timezone() -> ZoneInfo:
    return ZoneInfo(settings.DASHBOARD_TIMEZONE)


def range_for_preset(preset: DatePreset, now: Optional[datetime] = None) -> DateRange:
    """Compute ``{start, end}`` for ``preset``; ``end`` is always ``now``.

    "Today" and "This Month" start at local midnight in the dashboard timezone.
    """
    tz = dashboard_timezone()
    now = now or _now(tz)
    if now.tzinfo is None:
        now = now.replace(tzinfo=tz)

    if preset == DatePreset.today:
        local = now.astimezone(tz)
        start = local.replace(hour=0, minute=0, second=0, microsecond=0)
    elif preset == DatePreset.last_7_days:
        start = now - timedelta(days=7)
    elif preset == DatePreset.last_30_days:
        start = now - timedelta(days=30)
    elif preset == DatePreset.this_month:
        local = now.astimezone(tz)
        start = local.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    else:
        raise ValueError(f"Unknown date preset: {preset}")

    return DateRange(start=start, end=now, label=preset.value)


def to_iso(value: datetime) -> str:
    """UTC ISO-8601 with millisecond precision and a ``Z`` suffix."""
    utc = value.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"
