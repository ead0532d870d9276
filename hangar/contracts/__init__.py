"""Contracts package - Pydantic schemas for data validation."""

from hangar.contracts.appointment import (
    Appointment,
    AppointmentStatus,
    Customer,
    Vehicle,
)
from hangar.contracts.booking import (
    BookingRequest,
    BookingResult,
    CalendarDay,
    NewCustomer,
    NewVehicle,
    PublicBookingForm,
    SlotOccupancy,
    SlotView,
    TransitionResult,
)
from hangar.contracts.tenant import (
    BlockedDate,
    DayStatus,
    OperatingRule,
    ServiceItem,
    TenantConfig,
)

__all__ = [
    "Appointment",
    "AppointmentStatus",
    "Customer",
    "Vehicle",
    "BookingRequest",
    "BookingResult",
    "CalendarDay",
    "NewCustomer",
    "NewVehicle",
    "PublicBookingForm",
    "SlotOccupancy",
    "SlotView",
    "TransitionResult",
    "BlockedDate",
    "DayStatus",
    "OperatingRule",
    "ServiceItem",
    "TenantConfig",
]
