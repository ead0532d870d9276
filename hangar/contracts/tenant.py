"""Tenant Contract - Hangar configuration as consumed by the booking core."""

from datetime import date
from enum import Enum
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator

from hangar.config.settings import Settings, get_settings
from hangar.utils.logger import get_logger

logger = get_logger(__name__)

HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class DayStatus(str, Enum):
    """Situação de um dia no calendário do Hangar."""

    OPEN = "open"
    CLOSED = "closed"
    BLOCKED = "blocked"


class OperatingRule(BaseModel):
    """Regra de funcionamento de um dia da semana.

    O dia da semana segue a convenção do micro-site: 0 = domingo.
    """

    day_of_week: int = Field(
        ...,
        ge=0,
        le=6,
        alias="dayOfWeek",
        description="Dia da semana (0 = domingo, 6 = sábado)",
    )
    is_open: bool = Field(
        False,
        alias="isOpen",
        description="Se o Hangar abre neste dia",
    )
    open_time: str = Field(
        "08:00",
        alias="openTime",
        pattern=HHMM_PATTERN,
        description="Abertura (HH:MM)",
    )
    close_time: str = Field(
        "18:00",
        alias="closeTime",
        pattern=HHMM_PATTERN,
        description="Fechamento (HH:MM)",
    )

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("open_time", "close_time", mode="before")
    @classmethod
    def truncate_seconds(cls, v: Any) -> Any:
        """Aceita "HH:MM:SS" vindo do banco."""
        if isinstance(v, str) and len(v) > 5:
            return v[:5]
        return v


class BlockedDate(BaseModel):
    """Data bloqueada manualmente (feriado, manutenção)."""

    day: date = Field(..., alias="date", description="Data bloqueada")
    reason: str | None = Field(None, description="Motivo (opcional)")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("reason", mode="before")
    @classmethod
    def empty_reason_is_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class TenantConfig(BaseModel):
    """Configuração de agenda de um Hangar (tenant)."""

    id: str = Field(..., description="ID interno do Hangar")
    slug: str | None = Field(None, description="Slug público do micro-site")
    owner_user_id: str | None = Field(
        None,
        description="Usuário dono do Hangar (recebe clientes de visitantes)",
    )
    business_name: str = Field("CarbonCar", description="Nome comercial")
    whatsapp: str | None = Field(None, description="WhatsApp do Hangar")
    timezone: str = Field("America/Sao_Paulo", description="Fuso do Hangar")
    operating_rules: list[OperatingRule] = Field(default_factory=list)
    blocked_dates: list[BlockedDate] = Field(default_factory=list)
    slot_interval_minutes: int = Field(
        60,
        description="Granularidade da grade de horários",
    )
    box_capacity: int = Field(
        1,
        description="Atendimentos simultâneos por horário",
    )

    @field_validator("timezone", mode="before")
    @classmethod
    def known_timezone(cls, v: Any) -> Any:
        """Fuso desconhecido cai no padrão das settings."""
        fallback = get_settings().default_timezone
        if not v:
            return fallback
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError, TypeError):
            logger.warning("tenant_timezone_invalid", timezone=v, fallback=fallback)
            return fallback
        return v

    def rule_for(self, day_of_week: int) -> OperatingRule | None:
        """Retorna a regra do dia da semana (a primeira, se duplicada)."""
        for rule in self.operating_rules:
            if rule.day_of_week == day_of_week:
                return rule
        return None

    def is_blocked(self, day: date) -> bool:
        """Verifica se a data está na lista de bloqueios."""
        return any(blocked.day == day for blocked in self.blocked_dates)

    @classmethod
    def from_row(
        cls,
        row: dict[str, Any],
        settings: Settings | None = None,
    ) -> "TenantConfig":
        """Converte uma linha de ``business_settings`` no modelo interno.

        As regras e bloqueios ficam em ``configs`` (JSON) no banco, mas podem
        vir no topo da linha quando já normalizados.

        Args:
            row: Linha da tabela business_settings.
            settings: Settings para valores padrão.

        Returns:
            TenantConfig normalizado.
        """
        settings = settings or get_settings()
        configs = row.get("configs") or {}

        interval = row.get("slot_interval_minutes")
        capacity = row.get("box_capacity")

        return cls(
            id=str(row["id"]),
            slug=row.get("slug"),
            owner_user_id=row.get("user_id"),
            business_name=row.get("business_name") or settings.default_business_name,
            whatsapp=row.get("whatsapp"),
            timezone=row.get("timezone")
            or configs.get("timezone")
            or settings.default_timezone,
            operating_rules=row.get("operating_days")
            or configs.get("operating_days")
            or settings.default_operating_days,
            blocked_dates=row.get("blocked_dates")
            or configs.get("blocked_dates")
            or [],
            slot_interval_minutes=(
                settings.default_slot_interval_minutes if interval is None else interval
            ),
            box_capacity=settings.default_box_capacity if capacity is None else capacity,
        )


class ServiceItem(BaseModel):
    """Serviço oferecido pelo Hangar (lavagem, polimento, etc)."""

    id: str = Field(..., description="ID do serviço")
    name: str = Field(..., description="Nome exibido")
    price: float = Field(0.0, ge=0, description="Preço em reais")
    duration_minutes: int = Field(60, gt=0, description="Duração estimada")
    is_active: bool = Field(True, description="Se aparece no micro-site")

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, v: Any) -> Any:
        return str(v) if v is not None else v
