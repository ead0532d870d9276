"""Booking Commit - Validates a requested slot and persists the appointment.

The capacity check reads occupancy fresh on every attempt but is not atomic
with the insert: two concurrent commits may both pass and both insert.
Only a constraint in the database would turn this into a hard guarantee.
"""

from datetime import date
from typing import Any

from hangar.contracts.appointment import AppointmentStatus
from hangar.contracts.booking import (
    BookingRequest,
    BookingResult,
    SlotView,
    TransitionResult,
)
from hangar.contracts.tenant import DayStatus, ServiceItem, TenantConfig
from hangar.core.calendar import resolve_day
from hangar.core.dependencies import AppDependencies
from hangar.core.exceptions import (
    AppointmentNotFoundError,
    ClosedDayError,
    CustomerNotFoundError,
    HangarError,
    InvalidSlotError,
    OrphanRecordWarning,
    PersistenceError,
    ServiceNotFoundError,
    SlotFullError,
    VehicleNotFoundError,
)
from hangar.core.fsm import transition_status
from hangar.core.occupancy import compute_occupancy, to_slot_views
from hangar.core.slots import slots_for_day
from hangar.services.observability import booking_span
from hangar.utils.dlq import send_to_dlq
from hangar.utils.logger import get_logger

logger = get_logger(__name__)


class BookingService:
    """Orquestra calendário, grade, ocupação e gravação do agendamento."""

    def __init__(self, deps: AppDependencies) -> None:
        self.deps = deps
        self.supabase = deps.supabase

    # -- Leitura (micro-site) --------------------------------------------

    async def get_day_availability(
        self, config: TenantConfig, day: date
    ) -> tuple[DayStatus, list[SlotView]]:
        """Situação do dia e grade com ocupação, para a tela de horários.

        Dias passados ou não abertos voltam sem horários e sem consulta
        ao banco.

        Args:
            config: Configuração do Hangar.
            day: Data selecionada.

        Returns:
            Tupla (status do dia, horários com contagem e is_full).
        """
        status = resolve_day(config, day)
        if day < self.deps.today(config.timezone) or status != DayStatus.OPEN:
            return status, []

        slots = slots_for_day(config, day)
        appointments = await self.supabase.get_active_appointments_for_date(
            config.id, day
        )
        occupancy = compute_occupancy(slots, appointments, config.box_capacity)
        return status, to_slot_views(occupancy)

    async def check_preconditions(
        self, config: TenantConfig, day: date, slot_time: str
    ) -> None:
        """Valida data, horário e capacidade, nessa ordem.

        Raises:
            ClosedDayError: Dia passado, fechado ou bloqueado.
            InvalidSlotError: Horário fora da grade do dia.
            SlotFullError: Sem box livre no horário.
            ConfigurationError: Intervalo ou capacidade inválidos.
            PersistenceError: Falha ao ler a ocupação.
        """
        if day < self.deps.today(config.timezone):
            raise ClosedDayError(
                "Não é possível agendar em datas passadas",
                date=day.isoformat(),
                status="past",
            )

        status = resolve_day(config, day)
        if status != DayStatus.OPEN:
            raise ClosedDayError(
                "O Hangar não atende nesta data",
                date=day.isoformat(),
                status=status.value,
            )

        slots = slots_for_day(config, day)
        if slot_time not in slots:
            raise InvalidSlotError(
                "Horário indisponível para esta data",
                date=day.isoformat(),
                time=slot_time,
            )

        appointments = await self.supabase.get_active_appointments_for_date(
            config.id, day
        )
        occupancy = compute_occupancy([slot_time], appointments, config.box_capacity)
        if occupancy[slot_time].is_full:
            raise SlotFullError(
                "Horário lotado",
                date=day.isoformat(),
                time=slot_time,
                count=occupancy[slot_time].count,
                box_capacity=config.box_capacity,
            )

    # -- Escrita ---------------------------------------------------------

    async def check_ownership(self, config: TenantConfig, request: BookingRequest) -> None:
        """Confere que cliente e veículo existentes pertencem ao pedido.

        Raises:
            CustomerNotFoundError: Cliente inexistente ou de outro Hangar.
            VehicleNotFoundError: Veículo inexistente ou de outro cliente.
            PersistenceError: Falha na leitura.
        """
        if request.customer_id is None:
            return

        customer = await self.supabase.get_customer(request.customer_id)
        if customer is None or customer.business_id != config.id:
            raise CustomerNotFoundError(
                "Cliente não encontrado",
                customer_id=request.customer_id,
            )

        if request.vehicle_id is None:
            return

        vehicle = await self.supabase.get_vehicle(request.vehicle_id)
        if vehicle is None or vehicle.customer_id != customer.id:
            raise VehicleNotFoundError(
                "Veículo não encontrado",
                vehicle_id=request.vehicle_id,
                customer_id=customer.id,
            )

    async def commit_booking(
        self,
        request: BookingRequest,
        config: TenantConfig | None = None,
        actor_user_id: str | None = None,
    ) -> BookingResult:
        """Valida e grava um novo agendamento.

        Args:
            request: Pedido de agendamento.
            config: Configuração já carregada do Hangar (evita nova leitura).
            actor_user_id: Usuário logado que agenda; None para visitantes.

        Returns:
            BookingResult com o agendamento criado ou o erro tipado.
        """
        with booking_span(
            "commit_booking",
            tenant_id=request.tenant_id,
            date=request.scheduled_date.isoformat(),
            time=request.scheduled_time,
        ) as span:
            try:
                if config is None:
                    config = await self.supabase.get_tenant_config(request.tenant_id)
                await self.check_preconditions(
                    config, request.scheduled_date, request.scheduled_time
                )
                service = await self.supabase.get_service(config.id, request.service_id)
                if service is None:
                    raise ServiceNotFoundError(
                        "Serviço não encontrado",
                        service_id=request.service_id,
                    )
                await self.check_ownership(config, request)
            except HangarError as e:
                span.set_attribute("hangar.rejected", e.code)
                logger.info(
                    "booking_rejected",
                    tenant_id=request.tenant_id,
                    date=request.scheduled_date.isoformat(),
                    time=request.scheduled_time,
                    code=e.code,
                    reason=e.message,
                )
                return BookingResult.fail(e)

            result = await self._persist(config, service, request, actor_user_id)
            span.set_attribute("hangar.success", result.success)
            return result

    async def _persist(
        self,
        config: TenantConfig,
        service: ServiceItem,
        request: BookingRequest,
        actor_user_id: str | None,
    ) -> BookingResult:
        customer_id = request.customer_id
        vehicle_id = request.vehicle_id
        created_customer_id: str | None = None
        created_vehicle_id: str | None = None

        try:
            # Cliente e veículo antes do agendamento, nessa ordem
            if request.new_customer is not None:
                customer = await self.supabase.create_customer(
                    config.id,
                    actor_user_id or config.owner_user_id,
                    request.new_customer,
                )
                customer_id = created_customer_id = customer.id

                if request.new_vehicle is not None:
                    vehicle = await self.supabase.create_vehicle(
                        customer.id, request.new_vehicle
                    )
                    vehicle_id = created_vehicle_id = vehicle.id

            appointment = await self.supabase.create_appointment(
                self._appointment_payload(
                    config, service, request, customer_id, vehicle_id, actor_user_id
                )
            )

        except PersistenceError as e:
            warnings: list[OrphanRecordWarning] = []
            if created_customer_id is not None:
                warning = OrphanRecordWarning(
                    created_customer_id, created_vehicle_id, e.message
                )
                warnings.append(warning)
                logger.error(
                    "booking_orphan_records",
                    tenant_id=config.id,
                    customer_id=created_customer_id,
                    vehicle_id=created_vehicle_id,
                    error=e.message,
                )
                await send_to_dlq(
                    self.supabase,
                    reference_id=created_customer_id,
                    payload=warning.to_dict(),
                    error=e.message,
                    error_type="orphan_record",
                )
            return BookingResult.fail(e, warnings)

        logger.info(
            "booking_committed",
            tenant_id=config.id,
            appointment_id=appointment.id,
            date=appointment.scheduled_date.isoformat(),
            time=appointment.scheduled_time,
            new_customer=created_customer_id is not None,
        )

        if self.deps.notifier is not None:
            self.deps.notifier.booking_created(appointment, config.business_name)

        return BookingResult.ok(appointment)

    @staticmethod
    def _appointment_payload(
        config: TenantConfig,
        service: ServiceItem,
        request: BookingRequest,
        customer_id: str | None,
        vehicle_id: str | None,
        actor_user_id: str | None,
    ) -> dict[str, Any]:
        return {
            "business_id": config.id,
            "user_id": actor_user_id,
            "customer_id": customer_id,
            "vehicle_id": vehicle_id,
            "service_id": service.id,
            "service_type": service.name,
            "date": request.scheduled_date.isoformat(),
            "time": request.scheduled_time,
            "duration_minutes": service.duration_minutes,
            "price": service.price,
            "status": AppointmentStatus.NOVO.value,
            "observation": request.observation,
        }

    async def update_status(
        self,
        appointment_id: str,
        new_status: AppointmentStatus,
        actor_user_id: str | None = None,
    ) -> TransitionResult:
        """Muda o status de um agendamento e grava no banco.

        Args:
            appointment_id: ID do agendamento.
            new_status: Status desejado.
            actor_user_id: Usuário do painel; se informado, precisa ser o
                dono do Hangar do agendamento.

        Returns:
            TransitionResult com o agendamento gravado ou o erro.
        """
        with booking_span(
            "update_status",
            appointment_id=appointment_id,
            to_status=new_status.value,
        ):
            try:
                appointment = await self.supabase.get_appointment(appointment_id)
            except PersistenceError as e:
                return TransitionResult(success=False, error=e)

            not_found = TransitionResult(
                success=False,
                error=AppointmentNotFoundError(
                    "Agendamento não encontrado",
                    appointment_id=appointment_id,
                ),
            )
            if appointment is None:
                return not_found

            business_name: str | None = None
            if actor_user_id is not None:
                try:
                    config = await self.supabase.get_tenant_config(
                        appointment.business_id or ""
                    )
                except HangarError as e:
                    return TransitionResult(success=False, error=e)
                if config.owner_user_id != actor_user_id:
                    logger.warning(
                        "status_change_forbidden",
                        appointment_id=appointment_id,
                        actor_user_id=actor_user_id,
                    )
                    return not_found
                business_name = config.business_name

            result = transition_status(appointment, new_status)
            if not result.success:
                logger.info(
                    "status_transition_rejected",
                    appointment_id=appointment_id,
                    from_status=appointment.status.value,
                    to_status=new_status.value,
                )
                return result

            try:
                persisted = await self.supabase.update_appointment_status(
                    appointment_id, new_status
                )
            except PersistenceError as e:
                return TransitionResult(success=False, error=e)

            logger.info(
                "status_transition_applied",
                appointment_id=appointment_id,
                from_status=appointment.status.value,
                to_status=new_status.value,
            )

            if self.deps.notifier is not None:
                self.deps.notifier.status_changed(persisted, business_name)

            return TransitionResult(success=True, appointment=persisted)


async def commit_booking(
    deps: AppDependencies,
    request: BookingRequest,
    actor_user_id: str | None = None,
) -> BookingResult:
    """Atalho funcional para BookingService.commit_booking."""
    return await BookingService(deps).commit_booking(request, actor_user_id=actor_user_id)