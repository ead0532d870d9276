"""Booking Contract - Requests and results of the public booking flow."""

from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from hangar.contracts.appointment import Appointment
from hangar.contracts.tenant import HHMM_PATTERN, DayStatus
from hangar.core.exceptions import HangarError, OrphanRecordWarning


class NewVehicle(BaseModel):
    """Veículo informado no formulário de agendamento."""

    brand: str = Field("", max_length=60, description="Marca")
    model: str = Field(..., min_length=1, max_length=60, description="Modelo")
    plate: str = Field("", max_length=10, description="Placa")
    color: str = Field("", max_length=30, description="Cor")

    @field_validator("plate")
    @classmethod
    def normalize_plate(cls, v: str) -> str:
        """Placa em maiúsculas, sem espaços nem hífen."""
        return "".join(c for c in v if c.isalnum()).upper()


class NewCustomer(BaseModel):
    """Cliente informado no formulário (visitante sem cadastro)."""

    name: str = Field(..., min_length=1, max_length=120, description="Nome")
    phone: str = Field(..., pattern=r"^\+?[1-9]\d{7,14}$", description="Telefone")
    email: str | None = Field(None, description="E-mail")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()

    @field_validator("phone", mode="before")
    @classmethod
    def normalize_phone(cls, v: Any) -> Any:
        """Mantém só dígitos (e o + inicial)."""
        if not isinstance(v, str):
            return v
        cleaned = "".join(c for c in v if c.isdigit() or c == "+")
        return cleaned


def _check_customer_source(form: Any) -> None:
    if (form.customer_id is None) == (form.new_customer is None):
        raise ValueError("Informe customer_id ou new_customer (apenas um)")
    if form.vehicle_id and not form.customer_id:
        raise ValueError("vehicle_id exige customer_id")
    if form.new_vehicle and not form.new_customer:
        raise ValueError("new_vehicle exige new_customer")


class BookingRequest(BaseModel):
    """Pedido de agendamento recebido pelo núcleo.

    Exige um cliente existente (``customer_id``) ou os dados de um novo
    cliente (``new_customer``), nunca os dois.
    """

    tenant_id: str = Field(..., description="ID do Hangar")
    service_id: str = Field(..., description="ID do serviço")
    scheduled_date: date = Field(..., alias="date", description="Data")
    scheduled_time: str = Field(
        ...,
        alias="time",
        pattern=HHMM_PATTERN,
        description="Horário (HH:MM)",
    )
    customer_id: str | None = Field(None, description="Cliente existente")
    vehicle_id: str | None = Field(None, description="Veículo do cliente")
    new_customer: NewCustomer | None = Field(None, description="Novo cliente")
    new_vehicle: NewVehicle | None = Field(None, description="Novo veículo")
    observation: str | None = Field(None, max_length=500)

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="after")
    def check_customer_source(self) -> "BookingRequest":
        _check_customer_source(self)
        return self


class PublicBookingForm(BaseModel):
    """Corpo do POST do micro-site (o Hangar vem do slug na URL)."""

    service_id: str
    scheduled_date: date = Field(..., alias="date")
    scheduled_time: str = Field(..., alias="time", pattern=HHMM_PATTERN)
    customer_id: str | None = None
    vehicle_id: str | None = None
    new_customer: NewCustomer | None = None
    new_vehicle: NewVehicle | None = None
    observation: str | None = Field(None, max_length=500)

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="after")
    def check_customer_source(self) -> "PublicBookingForm":
        _check_customer_source(self)
        return self

    def to_request(self, tenant_id: str) -> BookingRequest:
        """Monta o BookingRequest para o Hangar resolvido."""
        return BookingRequest(
            tenant_id=tenant_id,
            **self.model_dump(by_alias=True),
        )


class SlotOccupancy(BaseModel):
    """Ocupação de um horário."""

    count: int = Field(0, ge=0, description="Agendamentos ativos no horário")
    is_full: bool = Field(False, description="Sem box livre (desabilitado)")


class SlotView(SlotOccupancy):
    """Horário como exibido na grade do micro-site."""

    time: str = Field(..., pattern=HHMM_PATTERN)


class CalendarDay(BaseModel):
    """Dia do calendário mensal do micro-site."""

    day: date = Field(..., alias="date")
    day_name: str = Field(..., description="Dia da semana abreviado (SEG, TER...)")
    day_number: str = Field(..., description="Dia do mês com dois dígitos")
    status: DayStatus
    is_past: bool
    is_open: bool = Field(..., description="Aberto e não passado")

    model_config = ConfigDict(populate_by_name=True)


class BookingResult(BaseModel):
    """Resultado de commit_booking: sucesso com agendamento ou erro tipado."""

    success: bool
    appointment: Appointment | None = None
    error: HangarError | None = None
    warnings: list[OrphanRecordWarning] = Field(default_factory=list)

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @classmethod
    def ok(cls, appointment: Appointment) -> "BookingResult":
        return cls(success=True, appointment=appointment)

    @classmethod
    def fail(
        cls,
        error: HangarError,
        warnings: list[OrphanRecordWarning] | None = None,
    ) -> "BookingResult":
        return cls(success=False, error=error, warnings=warnings or [])


class TransitionResult(BaseModel):
    """Resultado de transition_status."""

    success: bool
    appointment: Appointment | None = None
    error: HangarError | None = None

    model_config = ConfigDict(arbitrary_types_allowed=True)
