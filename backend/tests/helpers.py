from datetime import date, datetime

# A Monday far enough ahead that "now" never catches up with it
DAY = date(2031, 3, 10)
NOW = datetime(2031, 3, 10, 8, 0)


def at(hour: int, minute: int = 0, day: date = DAY) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute)
