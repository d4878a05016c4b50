import datetime

import pytz

# The ILS reports "never happened" dates as the first day of 1900.
NEVER_DATE = datetime.date(1900, 1, 1)
DISPLAY_DATE_FORMAT = "%b %d, %Y"


def from_timestamp(ts: float) -> datetime.datetime:
    """Return a UTC datetime object from a timestamp.

    :return: datetime object
    """
    return datetime.datetime.fromtimestamp(ts, tz=pytz.UTC)


def utc_now() -> datetime.datetime:
    """Get the current time in UTC.

    :return: datetime object
    """
    return datetime.datetime.now(tz=pytz.UTC)


def display_date(date: datetime.date | None) -> str:
    """Format an ILS date for patrons, e.g. "Mar 04, 2019".

    Missing dates and the ILS placeholder date both render as "Never".
    """
    if date is None or date == NEVER_DATE:
        return "Never"
    return date.strftime(DISPLAY_DATE_FORMAT)
