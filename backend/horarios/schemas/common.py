from __future__ import annotations

import re
from datetime import time
from typing import Generic, TypeVar

from pydantic import BaseModel

DAY_VALUES = (1, 2, 3, 4, 5, 6)
DAY_NAMES = {
    1: "Lunes",
    2: "Martes",
    3: "Miércoles",
    4: "Jueves",
    5: "Viernes",
    6: "Sábado",
}

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

T = TypeVar("T")


def parse_time_to_minutes(value: str) -> int:
    if not TIME_PATTERN.match(value):
        raise ValueError("Time must be in HH:MM 24-hour format")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def format_time(value: time | str) -> str:
    if isinstance(value, time):
        return value.strftime("%H:%M")
    text = str(value).strip()
    # Accept HH:MM:SS from drivers and clients alike.
    if len(text) == 8 and text.count(":") == 2:
        text = text[:5]
    return text


class Page(BaseModel, Generic[T]):
    count: int
    next: int | None
    previous: int | None
    results: list[T]
