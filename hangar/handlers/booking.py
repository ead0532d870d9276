"""Booking Handler - Public micro-site and dashboard endpoints."""

from datetime import date
from typing import Annotated, Any, NoReturn

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from hangar.contracts.appointment import AppointmentStatus
from hangar.contracts.booking import PublicBookingForm
from hangar.contracts.tenant import TenantConfig
from hangar.core.booking import BookingService
from hangar.core.calendar import build_month_calendar, first_available_day
from hangar.core.dependencies import AppDependencies
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
from hangar.core.idempotency import IdempotencyManager, get_idempotency_manager
from hangar.services.notifications import get_notification_dispatcher
from hangar.services.supabase import get_supabase_service
from hangar.utils.logger import bind_request_context, get_logger

router = APIRouter(prefix="/hangar", tags=["booking"])
logger = get_logger(__name__)

HTTP_STATUS_BY_ERROR: dict[type[HangarError], int] = {
    ClosedDayError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    InvalidSlotError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    SlotFullError: status.HTTP_409_CONFLICT,
    InvalidTransitionError: status.HTTP_409_CONFLICT,
    TenantNotFoundError: status.HTTP_404_NOT_FOUND,
    ServiceNotFoundError: status.HTTP_404_NOT_FOUND,
    AppointmentNotFoundError: status.HTTP_404_NOT_FOUND,
    CustomerNotFoundError: status.HTTP_404_NOT_FOUND,
    VehicleNotFoundError: status.HTTP_404_NOT_FOUND,
    ConfigurationError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    PersistenceError: status.HTTP_502_BAD_GATEWAY,
}


def http_status_for(error: HangarError) -> int:
    """Status HTTP do erro (subclasses herdam o do pai mais próximo)."""
    for cls in type(error).__mro__:
        if cls in HTTP_STATUS_BY_ERROR:
            return HTTP_STATUS_BY_ERROR[cls]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def raise_http_error(
    error: HangarError,
    warnings: list[OrphanRecordWarning] | None = None,
) -> NoReturn:
    """Converte um erro de domínio em HTTPException."""
    detail: dict[str, Any] = error.to_dict()
    if warnings:
        detail["warnings"] = [w.to_dict() for w in warnings]
    raise HTTPException(status_code=http_status_for(error), detail=detail)


def get_booking_service() -> BookingService:
    """Monta o BookingService com as dependências globais."""
    return BookingService(
        AppDependencies(
            supabase=get_supabase_service(),
            notifier=get_notification_dispatcher(),
        )
    )


BookingServiceDep = Annotated[BookingService, Depends(get_booking_service)]
IdempotencyDep = Annotated[IdempotencyManager, Depends(get_idempotency_manager)]


async def load_tenant(slug: str, service: BookingServiceDep) -> TenantConfig:
    """Resolve o Hangar pelo slug da URL."""
    bind_request_context(tenant_slug=slug)
    try:
        return await service.supabase.get_tenant_config_by_slug(slug)
    except HangarError as e:
        raise_http_error(e)


TenantDep = Annotated[TenantConfig, Depends(load_tenant)]


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"code": "unauthorized", "message": message},
    )


async def optional_user(
    service: BookingServiceDep,
    authorization: Annotated[str | None, Header()] = None,
) -> str | None:
    """Usuário do token Bearer, ou None para visitantes sem token.

    Um token presente mas inválido é recusado em vez de virar visitante.
    """
    if not authorization:
        return None
    if not authorization.lower().startswith("bearer "):
        raise _unauthorized("Token inválido")

    user_id = await service.supabase.get_user_id_from_token(authorization[7:].strip())
    if user_id is None:
        raise _unauthorized("Token inválido")
    return user_id


async def require_dashboard_user(
    user_id: Annotated[str | None, Depends(optional_user)],
) -> str:
    """Exige um token Bearer válido do Supabase Auth."""
    if user_id is None:
        raise _unauthorized("Token ausente")
    return user_id


class StatusChange(BaseModel):
    """Corpo do PATCH de status."""

    status: AppointmentStatus


@router.get("/{slug}")
async def get_tenant_profile(tenant: TenantDep) -> dict:
    """Dados públicos do Hangar para o topo do micro-site."""
    return {
        "id": tenant.id,
        "slug": tenant.slug,
        "business_name": tenant.business_name,
        "whatsapp": tenant.whatsapp,
        "slot_interval_minutes": tenant.slot_interval_minutes,
        "box_capacity": tenant.box_capacity,
        "operating_days": [
            rule.model_dump(by_alias=True) for rule in tenant.operating_rules
        ],
    }


@router.get("/{slug}/calendar")
async def get_calendar(
    tenant: TenantDep,
    service: BookingServiceDep,
    year: Annotated[int | None, Query(ge=2000, le=2100)] = None,
    month: Annotated[int | None, Query(ge=1, le=12)] = None,
) -> dict:
    """Calendário do mês com dias abertos, fechados, bloqueados e passados.

    Sem ano/mês, usa o mês atual no fuso do Hangar.
    """
    today = service.deps.today(tenant.timezone)
    year = year or today.year
    month = month or today.month

    days = build_month_calendar(tenant, year, month, today)
    first_day = first_available_day(days)

    return {
        "year": year,
        "month": month,
        "first_available": first_day.isoformat() if first_day else None,
        "days": [day.model_dump(mode="json", by_alias=True) for day in days],
    }


@router.get("/{slug}/slots")
async def get_slots(
    tenant: TenantDep,
    service: BookingServiceDep,
    day: Annotated[date, Query(alias="date")],
) -> dict:
    """Grade de horários do dia com ocupação (lotados vêm desabilitados)."""
    try:
        day_status, slots = await service.get_day_availability(tenant, day)
    except HangarError as e:
        raise_http_error(e)

    return {
        "date": day.isoformat(),
        "status": day_status.value,
        "box_capacity": tenant.box_capacity,
        "slots": [slot.model_dump() for slot in slots],
    }


@router.post("/{slug}/bookings", status_code=status.HTTP_201_CREATED)
async def create_booking(
    form: PublicBookingForm,
    tenant: TenantDep,
    service: BookingServiceDep,
    idempotency: IdempotencyDep,
    user_id: Annotated[str | None, Depends(optional_user)],
    idempotency_key: Annotated[str | None, Header(alias="Idempotency-Key")] = None,
) -> Any:
    """Grava um agendamento feito pelo micro-site.

    Com token Bearer, o cliente logado fica dono do cadastro e do
    agendamento. Um ``Idempotency-Key`` repetido devolve a resposta original
    em vez de criar outro agendamento.
    """
    if idempotency_key:
        is_duplicate, cached = await idempotency.check_and_mark(
            tenant.id, idempotency_key
        )
        if is_duplicate:
            if cached is not None:
                return JSONResponse(status_code=status.HTTP_200_OK, content=cached)
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={
                    "code": "duplicate_submission",
                    "message": "Agendamento já está sendo processado",
                },
            )

    try:
        result = await service.commit_booking(
            form.to_request(tenant.id), config=tenant, actor_user_id=user_id
        )
    except Exception:
        if idempotency_key:
            await idempotency.release(tenant.id, idempotency_key)
        raise

    if not result.success or result.appointment is None:
        if idempotency_key:
            await idempotency.release(tenant.id, idempotency_key)
        raise_http_error(
            result.error or PersistenceError("Falha ao gravar agendamento"),
            result.warnings,
        )

    body = {
        "status": "success",
        "appointment": result.appointment.model_dump(mode="json", by_alias=True),
    }
    if idempotency_key:
        await idempotency.store_result(tenant.id, idempotency_key, body)

    logger.info(
        "booking_request_completed",
        tenant_id=tenant.id,
        appointment_id=result.appointment.id,
    )
    return body


@router.patch("/appointments/{appointment_id}/status")
async def change_status(
    appointment_id: str,
    change: StatusChange,
    service: BookingServiceDep,
    user_id: Annotated[str, Depends(require_dashboard_user)],
) -> dict:
    """Avança ou cancela um agendamento pelo painel do Hangar."""
    bind_request_context(appointment_id=appointment_id, user_id=user_id)

    result = await service.update_status(
        appointment_id, change.status, actor_user_id=user_id
    )
    if not result.success or result.appointment is None:
        raise_http_error(
            result.error or PersistenceError("Falha ao atualizar agendamento")
        )

    return {
        "status": "success",
        "appointment": result.appointment.model_dump(mode="json", by_alias=True),
    }
