from collections.abc import Mapping
from dataclasses import dataclass
from dataclasses import field
from datetime import date
from datetime import timedelta


WEEKS_IN_WINDOW = 52
DAYS_IN_WEEK = 7
MONTH_NAMES = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


def contribution_level(count: int) -> int:
    """Map daily contribution count to a heatmap level in range 0..4."""

    if count <= 0:
        return 0
    if count <= 2:
        return 1
    if count <= 5:
        return 2
    if count <= 10:
        return 3
    return 4


@dataclass(frozen=True)
class DayCell:
    date: date
    count: int
    level: int
    is_today: bool = False


@dataclass(frozen=True)
class MonthLabel:
    week_index: int
    name: str


@dataclass
class CalendarGrid:
    """Trailing 52-week window of day cells, oldest week first."""

    weeks: list[list[DayCell]]
    month_labels: list[MonthLabel] = field(default_factory=list)
    total_contributions: int = 0
    active_days: int = 0

    def cells(self) -> list[DayCell]:
        return [cell for week in self.weeks for cell in week]

    def month_header(self) -> list[str]:
        """Month names to print above the grid, left to right.

        Takes the first label found for each week and drops a name equal to
        the previous one.
        """

        first_by_week: dict[int, str] = {}
        for label in self.month_labels:
            first_by_week.setdefault(label.week_index, label.name)

        header: list[str] = []
        last_name = ""
        for week_index in range(len(self.weeks)):
            name = first_by_week.get(week_index)
            if name and name != last_name:
                header.append(name)
                last_name = name
        return header


class CalendarGridBuilder:
    def __init__(self, today: date | None = None) -> None:
        self.today = today

    def build(self, activity: Mapping[str, int], today: date | None = None) -> CalendarGrid:
        today = today or self.today or date.today()

        weeks: list[list[DayCell]] = []
        month_labels: list[MonthLabel] = []
        current_month = 0
        total = 0
        active_days = 0

        for weeks_back in range(WEEKS_IN_WINDOW - 1, -1, -1):
            week_index = WEEKS_IN_WINDOW - 1 - weeks_back
            week: list[DayCell] = []

            for weekday in range(DAYS_IN_WEEK):
                day = today - timedelta(days=weeks_back * DAYS_IN_WEEK + (DAYS_IN_WEEK - 1 - weekday))
                count = activity.get(day.isoformat(), 0)

                if week_index > 0 and day.month != current_month:
                    current_month = day.month
                    month_labels.append(MonthLabel(week_index, MONTH_NAMES[day.month - 1]))

                total += count
                if count > 0:
                    active_days += 1

                week.append(
                    DayCell(
                        date=day,
                        count=count,
                        level=contribution_level(count),
                        is_today=weeks_back == 0 and weekday == DAYS_IN_WEEK - 1,
                    )
                )

            weeks.append(week)

        return CalendarGrid(
            weeks=weeks,
            month_labels=month_labels,
            total_contributions=total,
            active_days=active_days,
        )
