"""Pytest Configuration - Shared fixtures for tests."""

import os
from collections.abc import AsyncGenerator
from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

# Set test environment before importing app
os.environ["APP_ENV"] = "development"
os.environ["ENABLE_TRACING"] = "false"
os.environ["ENABLE_NOTIFICATIONS"] = "false"

from hangar.contracts.appointment import (  # noqa: E402
    Appointment,
    AppointmentStatus,
    Customer,
    Vehicle,
)
from hangar.contracts.tenant import ServiceItem, TenantConfig  # noqa: E402
from hangar.core.booking import BookingService  # noqa: E402
from hangar.core.dependencies import AppDependencies  # noqa: E402

# TODAY cai numa sexta; MONDAY é a segunda seguinte. 2024-12-25 (quarta) fica bloqueado
TODAY = date(2024, 12, 20)
MONDAY = date(2024, 12, 23)


@pytest.fixture
def tenant_config() -> TenantConfig:
    """Hangar aberto de segunda a sábado, 08:00-12:00, um box."""
    return TenantConfig(
        id="tenant-1",
        slug="carbon-car",
        owner_user_id="owner-1",
        business_name="CarbonCar",
        whatsapp="5511999990000",
        operating_rules=[
            {"dayOfWeek": 0, "isOpen": False},
            *[
                {"dayOfWeek": dow, "isOpen": True, "openTime": "08:00", "closeTime": "12:00"}
                for dow in range(1, 7)
            ],
        ],
        blocked_dates=[{"date": "2024-12-25", "reason": "Natal"}],
        slot_interval_minutes=60,
        box_capacity=1,
    )


@pytest.fixture
def service_item() -> ServiceItem:
    """Serviço ativo do Hangar."""
    return ServiceItem(id="svc-1", name="Lavagem Detalhada", price=180.0, duration_minutes=120)


def make_appointment(
    time: str = "09:00",
    day: date = MONDAY,
    status: AppointmentStatus = AppointmentStatus.NOVO,
    appointment_id: str = "appt-1",
    **extra,
) -> Appointment:
    """Monta um Appointment como viria do banco."""
    return Appointment(
        id=appointment_id,
        business_id="tenant-1",
        customer_id="cust-1",
        vehicle_id="veh-1",
        service_id="svc-1",
        service_type="Lavagem Detalhada",
        date=day,
        time=time,
        status=status,
        **extra,
    )


@pytest.fixture
def mock_supabase(tenant_config: TenantConfig, service_item: ServiceItem) -> MagicMock:
    """SupabaseService falso com respostas felizes por padrão."""
    supabase = MagicMock()
    supabase.get_tenant_config = AsyncMock(return_value=tenant_config)
    supabase.get_tenant_config_by_slug = AsyncMock(return_value=tenant_config)
    supabase.get_service = AsyncMock(return_value=service_item)
    supabase.get_active_appointments_for_date = AsyncMock(return_value=[])
    supabase.get_customer = AsyncMock(
        return_value=Customer(id="cust-1", business_id="tenant-1", name="Ana", phone="11988887777"),
    )
    supabase.get_vehicle = AsyncMock(
        return_value=Vehicle(id="veh-1", customer_id="cust-1", model="Civic", plate="ABC1D23"),
    )
    supabase.get_user_id_from_token = AsyncMock(return_value="owner-1")
    supabase.get_appointment = AsyncMock(return_value=None)
    supabase.save_dead_letter = AsyncMock()
    supabase.create_customer = AsyncMock(
        return_value=MagicMock(id="cust-new"),
    )
    supabase.create_vehicle = AsyncMock(
        return_value=MagicMock(id="veh-new"),
    )

    async def create_appointment(payload: dict) -> Appointment:
        return Appointment.model_validate({"id": "appt-new", **payload})

    supabase.create_appointment = AsyncMock(side_effect=create_appointment)

    async def update_status(appointment_id: str, status: AppointmentStatus) -> Appointment:
        current = await supabase.get_appointment(appointment_id)
        return current.model_copy(update={"status": status})

    supabase.update_appointment_status = AsyncMock(side_effect=update_status)
    return supabase


@pytest.fixture
def appointment_factory():
    """Fábrica de agendamentos (ver make_appointment)."""
    return make_appointment


@pytest.fixture
def mock_notifier() -> MagicMock:
    """NotificationDispatcher falso."""
    return MagicMock()


@pytest.fixture
def booking_service(mock_supabase: MagicMock, mock_notifier: MagicMock) -> BookingService:
    """BookingService com relógio fixo em TODAY."""
    return BookingService(
        AppDependencies(
            supabase=mock_supabase,
            notifier=mock_notifier,
            today=lambda _tz: TODAY,
        )
    )


@pytest.fixture
async def async_client(booking_service: BookingService) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing FastAPI app."""
    from hangar.handlers.booking import get_booking_service
    from hangar.main import app

    app.dependency_overrides[get_booking_service] = lambda: booking_service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
