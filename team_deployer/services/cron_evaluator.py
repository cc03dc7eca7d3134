"""
Cron expression evaluation for cloned schedules.
"""
from datetime import datetime, timezone as dt_timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from croniter import croniter, CroniterBadCronError, CroniterBadDateError

from team_deployer.config.settings import DEFAULT_SCHEDULE_TIMEZONE
from team_deployer.services.errors import InvalidScheduleError


def next_run_at(cron_expression: str, timezone: Optional[str] = None,
                base: Optional[datetime] = None) -> datetime:
    """
    Return the next trigger time (UTC) of a cron expression evaluated in a timezone.

    Args:
        cron_expression: Five-field cron expression, e.g. "0 8 * * 1-5"
        timezone: IANA timezone the expression is written in (default UTC)
        base: Reference time; defaults to now. Naive values are read as UTC.

    Raises:
        InvalidScheduleError: If the expression or the timezone cannot be parsed
    """
    tz_name = timezone or DEFAULT_SCHEDULE_TIMEZONE
    try:
        tz = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise InvalidScheduleError(f"Unknown timezone {tz_name!r}") from e

    if base is None:
        base = datetime.now(dt_timezone.utc)
    elif base.tzinfo is None:
        base = base.replace(tzinfo=dt_timezone.utc)

    if not croniter.is_valid(cron_expression):
        raise InvalidScheduleError(f"Invalid cron expression {cron_expression!r}")

    try:
        local_next = croniter(cron_expression, base.astimezone(tz)).get_next(datetime)
    except (CroniterBadCronError, CroniterBadDateError) as e:
        raise InvalidScheduleError(f"Cannot evaluate cron expression {cron_expression!r}: {e}") from e

    return local_next.astimezone(dt_timezone.utc)
