from .tables import (
    Base,
    metadata,
    AdminNotifications,
    Courses,
    PointLedgerEntries,
    Profiles,
    Reservations,
    ResourceLocks,
    ScheduleOverrides,
)

__all__ = [
    "Base",
    "metadata",
    "AdminNotifications",
    "Courses",
    "PointLedgerEntries",
    "Profiles",
    "Reservations",
    "ResourceLocks",
    "ScheduleOverrides",
]
