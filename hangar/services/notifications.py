"""Notification Dispatcher - Fire-and-forget WhatsApp messages.

Messages are sent from background asyncio tasks after the booking (or the
status change) is already persisted. A failed message is logged and parked
in the dead letter queue; it never reaches the booking flow.
"""

import asyncio
from collections.abc import Coroutine
from typing import Any

from hangar.config.settings import get_settings
from hangar.contracts.appointment import Appointment, AppointmentStatus
from hangar.core.templates import format_date_br, format_template
from hangar.services.evolution import EvolutionAPIClient, get_evolution_client
from hangar.services.supabase import SupabaseService, get_supabase_service
from hangar.utils.dlq import send_to_dlq
from hangar.utils.logger import get_logger

logger = get_logger(__name__)

STATUS_TEMPLATES: dict[AppointmentStatus, str] = {
    AppointmentStatus.CONFIRMADO: "booking_confirmed",
    AppointmentStatus.FINALIZADO: "vehicle_ready",
    AppointmentStatus.CANCELADO: "booking_canceled",
}


class NotificationDispatcher:
    """Dispara mensagens de WhatsApp sem bloquear quem chamou.

    Mantém referência às tasks em andamento até terminarem, para que o
    event loop não as descarte.
    """

    def __init__(
        self,
        supabase: SupabaseService,
        evolution: EvolutionAPIClient | None = None,
        enabled: bool | None = None,
    ) -> None:
        self.supabase = supabase
        self.evolution = evolution or get_evolution_client()
        self.enabled = get_settings().enable_notifications if enabled is None else enabled
        self._tasks: set[asyncio.Task[None]] = set()

    def _spawn(self, coro: Coroutine[Any, Any, None], name: str) -> asyncio.Task[None] | None:
        if not self.enabled:
            coro.close()
            logger.info("notification_skipped", reason="notifications_disabled", kind=name)
            return None

        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def booking_created(
        self, appointment: Appointment, business_name: str
    ) -> asyncio.Task[None] | None:
        """Agenda o aviso de "agendamento recebido"."""
        return self._spawn(
            self._send(appointment, business_name, "booking_received"),
            name=f"notify_booking_created:{appointment.id}",
        )

    def status_changed(
        self, appointment: Appointment, business_name: str | None = None
    ) -> asyncio.Task[None] | None:
        """Agenda o aviso correspondente ao novo status (se houver).

        Sem ``business_name``, o nome do Hangar é buscado dentro da task.
        """
        template_key = STATUS_TEMPLATES.get(appointment.status)
        if template_key is None:
            return None
        return self._spawn(
            self._send(appointment, business_name, template_key),
            name=f"notify_status_changed:{appointment.id}",
        )

    async def drain(self) -> None:
        """Aguarda as mensagens pendentes (shutdown e testes)."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def _send(
        self, appointment: Appointment, business_name: str | None, template_key: str
    ) -> None:
        if not self.evolution.is_configured:
            logger.info(
                "notification_skipped",
                reason="evolution_not_configured",
                appointment_id=appointment.id,
            )
            return

        try:
            text, phone = await self._render(appointment, business_name, template_key)
            if not phone:
                logger.info(
                    "notification_skipped",
                    reason="customer_without_phone",
                    appointment_id=appointment.id,
                )
                return
            await self.evolution.send_text_message(phone, text)
            logger.info(
                "notification_sent",
                appointment_id=appointment.id,
                template=template_key,
            )
        except Exception as e:
            logger.warning(
                "notification_failed",
                appointment_id=appointment.id,
                template=template_key,
                error=str(e),
                error_type=type(e).__name__,
            )
            await send_to_dlq(
                self.supabase,
                reference_id=appointment.id,
                payload={"template": template_key, "appointment_id": appointment.id},
                error=str(e),
                error_type="notification_error",
            )

    async def _render(
        self, appointment: Appointment, business_name: str | None, template_key: str
    ) -> tuple[str, str]:
        if business_name is None and appointment.business_id:
            tenant = await self.supabase.get_tenant_config(appointment.business_id)
            business_name = tenant.business_name

        customer = (
            await self.supabase.get_customer(appointment.customer_id)
            if appointment.customer_id
            else None
        )
        vehicle = (
            await self.supabase.get_vehicle(appointment.vehicle_id)
            if appointment.vehicle_id
            else None
        )

        text = format_template(
            template_key,
            business_name=business_name or get_settings().default_business_name,
            customer_name=customer.name if customer else "cliente",
            service=appointment.service_type or "serviço",
            date=format_date_br(appointment.scheduled_date),
            time=appointment.scheduled_time,
            vehicle_model=(vehicle.model if vehicle and vehicle.model else "Veículo"),
            vehicle_plate=(vehicle.plate if vehicle and vehicle.plate else "---"),
        )
        return text, customer.phone if customer else ""


_dispatcher: NotificationDispatcher | None = None


def get_notification_dispatcher() -> NotificationDispatcher:
    """Obtém o disparador global usado pelas rotas HTTP."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = NotificationDispatcher(supabase=get_supabase_service())
    return _dispatcher
