import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from markupsafe import Markup, escape

from schooldash.models.timetable import DayOfWeek, TimetableEntry
from schooldash.timeutils import local_now

logger = logging.getLogger(__name__)

SLOTS_PER_DAY = 12
FIRST_SLOT = "08:00"

# Minutes added to the running clock before each slot; breaks are shorter
SLOT_INCREMENTS = {0: 0, 3: 20, 6: 25, 9: 35}
DEFAULT_INCREMENT = 45

# The plan changes once a school year
WEEKLY_PLAN: List[TimetableEntry] = [
    TimetableEntry(day=DayOfWeek.MONDAY, plan=[
        "Sport", "Sport", "<i>1st Break</i>", "Social Learning", "EP/DP", "<i>2nd Break</i>",
        "Maths", "Maths", "<b>Lunch 🥬</b>", "Science", "Förder", "Deutsch",
    ]),
    TimetableEntry(day=DayOfWeek.TUESDAY, plan=[
        "Deutsch", "Deutsch", "<i>1st Break</i>", "Study Time", "Informal learning", "<i>2nd Break</i>",
        "Art", "Art", "<b>Lunch 🥬</b>", "Music", "WUV", "WUV",
    ]),
    TimetableEntry(day=DayOfWeek.WEDNESDAY, plan=[
        "Maths", "Maths", "<i>1st Break</i>", "Social Learning", "EP/DP", "<i>2nd Break</i>",
        "SocS", "Informal learning", "<b>Lunch 🥬</b>", "EM/DM", "Förder", "Science",
    ]),
    TimetableEntry(day=DayOfWeek.THURSDAY, plan=[
        "Sport", "EM/DM", "<i>1st Break</i>", "English", "Maths", "<i>2nd Break</i>",
        "Lebenskunde", "Lebenskunde", "<b>Lunch 🥬</b>", "Music", "Study Time", "Informal learning",
    ]),
    TimetableEntry(day=DayOfWeek.FRIDAY, plan=[
        "SocS", "SocS", "<i>1st Break</i>", "English", "English", "<i>2nd Break</i>",
        "Science", "Science", "<b>Lunch 🥬</b>", "Informal learning", "Taekwondo", "Go Home Time",
    ]),
    TimetableEntry(day=DayOfWeek.SATURDAY, plan=[
        "Mallakhamb", "Mallakhamb", "Healthy <b>Lunch 🥬</b>", "Swimming", "Swimming", "Shower",
        "Go Home", "Snacks", "Baalbharti", "Baalbharti", "Dinner", "Movie time",
    ]),
    TimetableEntry(day=DayOfWeek.SUNDAY, plan=["Just Chill"]),
]

_PLAN_BY_DAY: Dict[DayOfWeek, TimetableEntry] = {entry.day: entry for entry in WEEKLY_PLAN}

SUNDAY_HTML = """
            <div class="timetable-item">
                <div class="timetable-time">09:00 - 17:00</div>
                <div class="timetable-desc">Fun and chill</div>
                <div class="timetable-status">Prepare the bag</div>
            </div>
        """

ROW_TEMPLATE = """
            <div class="timetable-item">
                <div class="timetable-time">{time}</div>
                <div class="timetable-desc">{desc}</div>
                <div class="timetable-status"> </div>
            </div>
        """


def day_of_week(now: Optional[datetime] = None, tz_name: Optional[str] = None) -> DayOfWeek:
    # DayOfWeek is declared Monday first, like datetime.weekday()
    return list(DayOfWeek)[local_now(tz_name, now).weekday()]


def get_timetable_entry(day: DayOfWeek) -> TimetableEntry:
    return _PLAN_BY_DAY[day]


def slot_times(count: int = SLOTS_PER_DAY, start: str = FIRST_SLOT) -> List[str]:
    """
    Start time of every slot

    The clock starts at ``start`` and each slot advances it by its increment
    before the slot is labelled, so slot 0 starts at ``start`` itself.
    """
    clock = datetime.strptime(start, "%H:%M")
    times = []
    for i in range(count):
        clock += timedelta(minutes=SLOT_INCREMENTS.get(i, DEFAULT_INCREMENT))
        times.append(clock.strftime("%H:%M"))
    return times


def render_timetable(entry: TimetableEntry) -> Markup:
    """Render a day's plan as timetable rows; the plan's own markup is kept"""
    if entry.day is DayOfWeek.SUNDAY:
        return Markup(SUNDAY_HTML)

    plan = list(entry.plan[:SLOTS_PER_DAY])
    if len(plan) < SLOTS_PER_DAY:
        logger.warning(f"{entry.day.value} plan has {len(plan)} slots, padding to {SLOTS_PER_DAY}")
        plan += [""] * (SLOTS_PER_DAY - len(plan))

    rows = [
        ROW_TEMPLATE.format(time=escape(period), desc=slot)
        for period, slot in zip(slot_times(), plan)
    ]
    return Markup("".join(rows))


def get_timetable(now: Optional[datetime] = None, tz_name: Optional[str] = None) -> Markup:
    """Timetable HTML for today in the configured timezone"""
    return render_timetable(get_timetable_entry(day_of_week(now, tz_name)))
