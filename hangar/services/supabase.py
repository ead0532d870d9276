"""Serviço do Supabase - Operações de Banco de Dados.

Única camada que conhece nomes de tabelas e colunas. Toda falha do
Supabase (rede, constraint, RLS) sai daqui como ``PersistenceError``.
"""

from datetime import date
from typing import Any

from pydantic import ValidationError

from hangar.config.settings import get_settings
from hangar.contracts.appointment import Appointment, AppointmentStatus, Customer, Vehicle
from hangar.contracts.booking import NewCustomer, NewVehicle
from hangar.contracts.tenant import ServiceItem, TenantConfig
from hangar.core.exceptions import PersistenceError, TenantNotFoundError
from hangar.utils.logger import get_logger
from supabase import AsyncClient, acreate_client

logger = get_logger(__name__)


class SupabaseService:
    """Serviço encapsulado para operações no Supabase."""

    def __init__(self, client: AsyncClient | None = None) -> None:
        """Inicializa o serviço com um cliente Supabase.

        Args:
            client: Cliente Supabase opcional. Se não fornecido, cria um novo
                a partir das settings na primeira operação.
        """
        self._client = client

    async def _get_client(self) -> AsyncClient:
        """Obtém ou cria o cliente assíncrono do Supabase."""
        if self._client is None:
            self._client = await self._create_client()
        return self._client

    async def _create_client(self) -> AsyncClient:
        """Cria um novo cliente Supabase a partir das configurações."""
        settings = get_settings()

        # Service key ignora RLS: posse de cliente e veículo é checada no núcleo
        key = settings.supabase_service_key or settings.supabase_key

        if not key or not settings.supabase_url:
            logger.warning(
                "supabase_not_configured",
                message="Credenciais do Supabase não configuradas.",
            )
            if not settings.is_development:
                raise PersistenceError("Credenciais do Supabase são obrigatórias")

        try:
            new_client = await acreate_client(settings.supabase_url, key)
        except Exception as e:
            raise PersistenceError(
                "Não foi possível conectar ao Supabase", operation="connect"
            ) from e

        logger.info(
            "supabase_client_created",
            using_service_key=key == settings.supabase_service_key,
        )
        return new_client

    async def _execute(self, operation: str, query: Any) -> Any:
        """Executa uma query convertendo falhas em PersistenceError."""
        try:
            return await query.execute()
        except Exception as e:
            logger.error(
                "supabase_operation_failed",
                operation=operation,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise PersistenceError(
                f"Falha no banco de dados ({operation})",
                operation=operation,
            ) from e

    # -- Identidade -------------------------------------------------------

    async def get_user_id_from_token(self, access_token: str) -> str | None:
        """Valida o JWT (painel ou cliente logado) e retorna o ID do usuário.

        Args:
            access_token: Token Bearer emitido pelo Supabase Auth.

        Returns:
            ID do usuário ou None se o token for inválido.
        """
        client = await self._get_client()
        try:
            response = await client.auth.get_user(access_token)
        except Exception as e:
            logger.warning("supabase_token_rejected", error=str(e))
            return None

        if response and response.user:
            return str(response.user.id)
        return None

    # -- Configuração do Hangar ------------------------------------------

    async def get_tenant_config(self, tenant_id: str) -> TenantConfig:
        """Carrega a configuração de agenda pelo ID do Hangar.

        Raises:
            TenantNotFoundError: Se não existir.
        """
        client = await self._get_client()
        result = await self._execute(
            "get_tenant_config",
            client.table("business_settings").select("*").eq("id", tenant_id).limit(1),
        )
        if not result or not result.data:
            raise TenantNotFoundError("Hangar não encontrado", tenant_id=tenant_id)
        return TenantConfig.from_row(result.data[0])

    async def get_tenant_config_by_slug(self, slug: str) -> TenantConfig:
        """Carrega a configuração de agenda pelo slug público.

        Raises:
            TenantNotFoundError: Se não existir.
        """
        client = await self._get_client()
        result = await self._execute(
            "get_tenant_config_by_slug",
            client.table("business_settings").select("*").eq("slug", slug).limit(1),
        )
        if not result or not result.data:
            raise TenantNotFoundError("Hangar não encontrado", slug=slug)

        config = TenantConfig.from_row(result.data[0])
        logger.info("tenant_config_loaded", tenant_id=config.id, slug=slug)
        return config

    async def get_service(self, tenant_id: str, service_id: str) -> ServiceItem | None:
        """Busca um serviço ativo do Hangar."""
        client = await self._get_client()
        result = await self._execute(
            "get_service",
            client.table("services")
            .select("*")
            .eq("business_id", tenant_id)
            .eq("id", service_id)
            .eq("is_active", True)
            .limit(1),
        )
        if not result or not result.data:
            return None
        return ServiceItem.model_validate(result.data[0])

    # -- Agendamentos ----------------------------------------------------

    async def get_active_appointments_for_date(
        self, tenant_id: str, check_date: date
    ) -> list[Appointment]:
        """Busca os agendamentos não cancelados de uma data.

        Args:
            tenant_id: ID do Hangar.
            check_date: Data consultada.

        Returns:
            Lista de agendamentos.
        """
        client = await self._get_client()
        result = await self._execute(
            "get_active_appointments_for_date",
            client.table("appointments")
            .select("*")
            .eq("business_id", tenant_id)
            .eq("date", check_date.isoformat())
            .neq("status", AppointmentStatus.CANCELADO.value),
        )
        rows = result.data if result and result.data else []

        appointments: list[Appointment] = []
        for row in rows:
            try:
                appointments.append(Appointment.model_validate(row))
            except ValidationError as e:
                # Linha sem horário válido não ocupa nenhum slot
                logger.warning(
                    "appointment_row_skipped",
                    tenant_id=tenant_id,
                    appointment_id=row.get("id"),
                    error_count=e.error_count(),
                )

        logger.info(
            "appointments_fetched_for_date",
            tenant_id=tenant_id,
            date=check_date.isoformat(),
            count=len(appointments),
            skipped=len(rows) - len(appointments),
        )
        return appointments

    async def get_appointment(self, appointment_id: str) -> Appointment | None:
        """Busca agendamento pelo ID."""
        client = await self._get_client()
        result = await self._execute(
            "get_appointment",
            client.table("appointments").select("*").eq("id", appointment_id).limit(1),
        )
        if not result or not result.data:
            return None
        return Appointment.model_validate(result.data[0])

    async def create_appointment(self, payload: dict[str, Any]) -> Appointment:
        """Cria agendamento no banco de dados.

        Args:
            payload: Colunas da tabela appointments.

        Returns:
            Agendamento criado (com ID gerado).
        """
        client = await self._get_client()
        result = await self._execute(
            "create_appointment",
            client.table("appointments").insert(payload),
        )
        if not result or not result.data:
            raise PersistenceError(
                "Falha ao criar agendamento: nenhum dado retornado",
                operation="create_appointment",
            )

        appointment = Appointment.model_validate(result.data[0])
        logger.info(
            "appointment_created",
            appointment_id=appointment.id,
            tenant_id=appointment.business_id,
            date=appointment.scheduled_date.isoformat(),
            time=appointment.scheduled_time,
        )
        return appointment

    async def update_appointment_status(
        self, appointment_id: str, status: AppointmentStatus
    ) -> Appointment:
        """Atualiza o status de um agendamento.

        Args:
            appointment_id: ID do agendamento.
            status: Novo status.

        Returns:
            Registro do agendamento atualizado.
        """
        client = await self._get_client()
        result = await self._execute(
            "update_appointment_status",
            client.table("appointments")
            .update({"status": status.value})
            .eq("id", appointment_id),
        )
        if not result or not result.data:
            raise PersistenceError(
                "Falha ao atualizar agendamento: nenhum dado retornado",
                operation="update_appointment_status",
                appointment_id=appointment_id,
            )

        logger.info(
            "appointment_status_updated",
            appointment_id=appointment_id,
            status=status.value,
        )
        return Appointment.model_validate(result.data[0])

    # -- Clientes e veículos ---------------------------------------------

    async def get_customer(self, customer_id: str) -> Customer | None:
        """Busca cliente pelo ID."""
        client = await self._get_client()
        result = await self._execute(
            "get_customer",
            client.table("customers").select("*").eq("id", customer_id).limit(1),
        )
        if not result or not result.data:
            return None
        return Customer.model_validate(result.data[0])

    async def get_vehicle(self, vehicle_id: str) -> Vehicle | None:
        """Busca veículo pelo ID."""
        client = await self._get_client()
        result = await self._execute(
            "get_vehicle",
            client.table("vehicles").select("*").eq("id", vehicle_id).limit(1),
        )
        if not result or not result.data:
            return None
        return Vehicle.model_validate(result.data[0])

    async def create_customer(
        self,
        tenant_id: str,
        owner_user_id: str | None,
        customer: NewCustomer,
    ) -> Customer:
        """Cria cliente vinculado ao Hangar.

        Args:
            tenant_id: ID do Hangar.
            owner_user_id: Dono do registro (sessão ou dono do Hangar).
            customer: Dados do formulário.

        Returns:
            Cliente criado.
        """
        client = await self._get_client()
        result = await self._execute(
            "create_customer",
            client.table("customers").insert(
                {
                    "business_id": tenant_id,
                    "user_id": owner_user_id,
                    "name": customer.name,
                    "phone": customer.phone,
                    "email": customer.email,
                }
            ),
        )
        if not result or not result.data:
            raise PersistenceError(
                "Falha ao criar cliente: nenhum dado retornado",
                operation="create_customer",
            )

        created = Customer.model_validate(result.data[0])
        logger.info("customer_created", customer_id=created.id, tenant_id=tenant_id)
        return created

    async def create_vehicle(self, customer_id: str, vehicle: NewVehicle) -> Vehicle:
        """Cria veículo do cliente."""
        client = await self._get_client()
        result = await self._execute(
            "create_vehicle",
            client.table("vehicles").insert(
                {
                    "customer_id": customer_id,
                    "brand": vehicle.brand,
                    "model": vehicle.model,
                    "plate": vehicle.plate,
                    "color": vehicle.color,
                    "type": "CARRO",
                }
            ),
        )
        if not result or not result.data:
            raise PersistenceError(
                "Falha ao criar veículo: nenhum dado retornado",
                operation="create_vehicle",
            )

        created = Vehicle.model_validate(result.data[0])
        logger.info("vehicle_created", vehicle_id=created.id, customer_id=customer_id)
        return created

    # -- Dead letter -----------------------------------------------------

    async def save_dead_letter(self, entry: dict[str, Any]) -> None:
        """Registra um efeito colateral que falhou (notificação, órfão)."""
        client = await self._get_client()
        await self._execute(
            "save_dead_letter",
            client.table("dead_letter_queue").insert(entry),
        )


# Instância global para as rotas HTTP; o núcleo recebe o serviço por DI
_supabase_service: SupabaseService | None = None


def get_supabase_service() -> SupabaseService:
    """Retorna ou cria instância global do serviço."""
    global _supabase_service
    if _supabase_service is None:
        _supabase_service = SupabaseService()
    return _supabase_service
