from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import List


class DayOfWeek(str, Enum):
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"


class TimetableEntry(BaseModel):
    """Lesson plan for one weekday"""

    model_config = ConfigDict(frozen=True)

    day: DayOfWeek
    plan: List[str] = Field(..., description="Slot labels, may contain <i>/<b> markup")
