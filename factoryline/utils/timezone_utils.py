from __future__ import annotations

from datetime import date, datetime, timezone as dt_timezone
from typing import Dict

import pytz
from flask import current_app, has_app_context

DEFAULT_TIMEZONE = "UTC"


class TimezoneUtils:
    """Timestamp helpers: storage is always aware UTC, display is factory-local."""

    @staticmethod
    def validate_timezone(tz_name: str | None) -> bool:
        if not tz_name:
            return False
        try:
            pytz.timezone(tz_name)
        except pytz.UnknownTimeZoneError:
            return False
        return True

    @staticmethod
    def utc_now() -> datetime:
        """Return the current UTC timestamp (timezone aware)."""
        return datetime.now(dt_timezone.utc)

    @staticmethod
    def today() -> date:
        return TimezoneUtils.to_factory_timezone(TimezoneUtils.utc_now()).date()

    @staticmethod
    def factory_timezone() -> str:
        """Timezone configured for the plant, used for display and calendar dates."""
        if has_app_context():
            candidate = current_app.config.get("FACTORY_TIMEZONE")
            if TimezoneUtils.validate_timezone(candidate):
                return candidate
        return DEFAULT_TIMEZONE

    @staticmethod
    def ensure_timezone_aware(
        dt: datetime | None, assume_utc: bool = True
    ) -> datetime | None:
        """Guarantee that a datetime carries timezone information."""
        if dt is None:
            return None
        if dt.tzinfo is None:
            if not assume_utc:
                raise ValueError("Naive datetime provided without explicit timezone handling.")
            return dt.replace(tzinfo=dt_timezone.utc)
        return dt

    @staticmethod
    def to_factory_timezone(dt: datetime | None) -> datetime | None:
        if dt is None:
            return None
        target = pytz.timezone(TimezoneUtils.factory_timezone())
        return TimezoneUtils.ensure_timezone_aware(dt).astimezone(target)

    @staticmethod
    def format_datetime_for_api(dt: datetime | None) -> Dict[str, str | None]:
        """Produce a structured payload containing UTC and localized timestamps."""
        if dt is None:
            return {"utc": None, "local": None, "timezone": None}

        aware = TimezoneUtils.ensure_timezone_aware(dt)
        localized = TimezoneUtils.to_factory_timezone(aware)
        return {
            "utc": aware.astimezone(dt_timezone.utc).isoformat(),
            "local": localized.isoformat(),
            "timezone": TimezoneUtils.factory_timezone(),
        }

    @staticmethod
    def parse_iso_timestamp(value) -> datetime | None:
        """Parse an ISO date or datetime string into an aware UTC datetime."""
        if value in (None, ""):
            return None
        if isinstance(value, datetime):
            return TimezoneUtils.ensure_timezone_aware(value)
        if isinstance(value, date):
            return datetime.combine(value, datetime.min.time(), tzinfo=dt_timezone.utc)
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        return TimezoneUtils.ensure_timezone_aware(parsed).astimezone(dt_timezone.utc)
