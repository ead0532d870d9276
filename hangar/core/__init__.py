"""Core package - Booking rules: calendar, slots, occupancy and status lifecycle."""

from hangar.core.exceptions import (
    AppointmentNotFoundError,
    ClosedDayError,
    ConfigurationError,
    CustomerNotFoundError,
    HangarError,
    InvalidSlotError,
    InvalidTransitionError,
    OrphanRecordWarning,
    PersistenceError,
    ServiceNotFoundError,
    SlotFullError,
    TenantNotFoundError,
    VehicleNotFoundError,
)

__all__ = [
    "HangarError",
    "ConfigurationError",
    "ClosedDayError",
    "InvalidSlotError",
    "SlotFullError",
    "InvalidTransitionError",
    "PersistenceError",
    "TenantNotFoundError",
    "ServiceNotFoundError",
    "AppointmentNotFoundError",
    "CustomerNotFoundError",
    "VehicleNotFoundError",
    "OrphanRecordWarning",
]
