"""NFL regular-season constants."""

FIRST_WEEK = 1
LAST_WEEK = 18
REGULAR_SEASON_TYPE = 2
REGULAR_SEASON_WEEKS: tuple[int, ...] = tuple(range(FIRST_WEEK, LAST_WEEK + 1))


def is_regular_week(week: int | None) -> bool:
    """Return True for week numbers inside the regular season (1..18)."""

    return week is not None and FIRST_WEEK <= week <= LAST_WEEK


def valid_weeks(weeks) -> list[int]:
    """Distinct regular-season weeks in ascending order; others are dropped."""

    return sorted({week for week in weeks if is_regular_week(week)})
