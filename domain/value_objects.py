"""Domain Value Objects"""
from pydantic import BaseModel, validator
from datetime import date, datetime, time, timezone
from typing import Union

from domain.enums import OverlapPolicy


Moment = Union[datetime, date, str]


def to_datetime(value: Moment) -> datetime:
    """Normalize an ISO-8601 string, date or datetime to a naive datetime.

    Date-only values mean midnight. Aware values are converted to UTC and
    their tzinfo dropped so every stored instant compares with every other.
    """
    if isinstance(value, str):
        value = datetime.fromisoformat(value.strip())
    elif not isinstance(value, datetime):
        if not isinstance(value, date):
            raise ValueError(f"Unsupported date value: {value!r}")
        value = datetime.combine(value, time.min)

    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def intervals_overlap(
    first_start: datetime,
    first_end: datetime,
    second_start: datetime,
    second_end: datetime,
    policy: OverlapPolicy = OverlapPolicy.INCLUSIVE
) -> bool:
    """Overlap test between two stays under the given boundary policy"""
    if policy == OverlapPolicy.EXCLUSIVE:
        return first_start < second_end and first_end > second_start
    return first_start <= second_end and first_end >= second_start


class DateRange(BaseModel):
    """Value Object for a stay interval"""
    start: datetime
    end: datetime

    @validator('start', 'end', pre=True)
    def normalize(cls, v):
        return to_datetime(v)

    @validator('end')
    def end_after_start(cls, v, values):
        if 'start' in values and v <= values['start']:
            raise ValueError('End date must be after start date')
        return v

    def overlaps(self, start: datetime, end: datetime,
                 policy: OverlapPolicy = OverlapPolicy.INCLUSIVE) -> bool:
        return intervals_overlap(self.start, self.end, start, end, policy)

    def nights(self) -> int:
        """Calculate number of nights"""
        return (self.end.date() - self.start.date()).days

    class Config:
        frozen = True
