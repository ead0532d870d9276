"""Appointment Contract - Models for appointments, customers and vehicles."""

from datetime import date
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from hangar.contracts.tenant import HHMM_PATTERN


class AppointmentStatus(str, Enum):
    """Status possíveis de um agendamento."""

    NOVO = "NOVO"
    CONFIRMADO = "CONFIRMADO"
    EM_EXECUCAO = "EM_EXECUCAO"
    FINALIZADO = "FINALIZADO"
    CANCELADO = "CANCELADO"


class Appointment(BaseModel):
    """Schema completo de agendamento (leitura do DB).

    Os nomes internos diferem das colunas ``date``/``time`` do banco;
    os aliases fazem a ponte.
    """

    id: str = Field(..., description="ID único do agendamento")
    business_id: str | None = Field(None, description="ID do Hangar")
    customer_id: str | None = Field(None, description="ID do cliente")
    vehicle_id: str | None = Field(
        None,
        description="ID do veículo (opcional até ser atribuído)",
    )
    service_id: str | None = Field(None, description="ID do serviço")
    service_type: str | None = Field(None, description="Nome do serviço")
    scheduled_date: date = Field(..., alias="date", description="Data")
    scheduled_time: str = Field(
        ...,
        alias="time",
        pattern=HHMM_PATTERN,
        description="Horário (HH:MM)",
    )
    duration_minutes: int = Field(60, description="Duração em minutos")
    price: float = Field(0.0, description="Preço cobrado")
    status: AppointmentStatus = Field(
        AppointmentStatus.NOVO,
        description="Status atual",
    )
    observation: str | None = Field(None, description="Observação livre")
    user_id: str | None = Field(
        None,
        description="Usuário autenticado que agendou (nulo para visitantes)",
    )

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": "550e8400-e29b-41d4-a716-446655440000",
                "business_id": "660e8400-e29b-41d4-a716-446655440001",
                "customer_id": "770e8400-e29b-41d4-a716-446655440002",
                "vehicle_id": "880e8400-e29b-41d4-a716-446655440003",
                "service_id": "990e8400-e29b-41d4-a716-446655440004",
                "service_type": "Lavagem Detalhada",
                "date": "2026-02-16",
                "time": "09:00",
                "duration_minutes": 120,
                "price": 180.0,
                "status": "NOVO",
            }
        },
    )

    @field_validator(
        "id", "business_id", "customer_id", "vehicle_id", "service_id", mode="before"
    )
    @classmethod
    def stringify_ids(cls, v: Any) -> Any:
        return str(v) if v is not None else v

    @field_validator("scheduled_time", mode="before")
    @classmethod
    def truncate_seconds(cls, v: Any) -> Any:
        """Postgres devolve ``time`` como "HH:MM:SS"."""
        if isinstance(v, str) and len(v) > 5:
            return v[:5]
        return v

    @property
    def is_active(self) -> bool:
        """Conta para a ocupação do horário (não cancelado)."""
        return self.status != AppointmentStatus.CANCELADO


class Vehicle(BaseModel):
    """Schema de veículo."""

    id: str = Field(..., description="ID único do veículo")
    customer_id: str | None = Field(None, description="Dono do veículo")
    brand: str = Field("", description="Marca")
    model: str = Field("", description="Modelo")
    plate: str = Field("", description="Placa")
    color: str = Field("", description="Cor")
    type: str = Field("CARRO", description="Tipo de veículo")

    @field_validator("id", "customer_id", mode="before")
    @classmethod
    def stringify_ids(cls, v: Any) -> Any:
        return str(v) if v is not None else v

    @field_validator("brand", "model", "plate", "color", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return v or ""


class Customer(BaseModel):
    """Schema de cliente."""

    id: str = Field(..., description="ID único do cliente")
    business_id: str | None = Field(None, description="ID do Hangar")
    name: str = Field(..., description="Nome do cliente")
    phone: str = Field("", description="Telefone")
    email: str | None = Field(None, description="E-mail")

    @field_validator("id", "business_id", mode="before")
    @classmethod
    def stringify_ids(cls, v: Any) -> Any:
        return str(v) if v is not None else v

    @field_validator("phone", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return v or ""
