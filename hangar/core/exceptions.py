"""Domain errors raised by the booking core.

Precondition failures (closed day, invalid slot, full slot, invalid
transition) are meant to reach the user as-is; ``PersistenceError`` wraps any
failure coming from the store.
"""

from typing import Any


class HangarError(Exception):
    """Erro genérico da camada de domínio."""

    code = "hangar_error"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        """Serializa o erro para respostas da API."""
        return {"code": self.code, "message": self.message, **self.details}


class ConfigurationError(HangarError):
    """Configuração do Hangar inválida (intervalo ou capacidade)."""

    code = "configuration_error"


class ClosedDayError(HangarError):
    """A data pedida não está aberta para agendamento."""

    code = "closed_day"


class InvalidSlotError(HangarError):
    """O horário pedido não pertence à grade do dia."""

    code = "invalid_slot"


class SlotFullError(HangarError):
    """Todos os boxes do horário já estão ocupados."""

    code = "slot_full"


class InvalidTransitionError(HangarError):
    """Mudança de status fora do ciclo de vida permitido."""

    code = "invalid_transition"


class PersistenceError(HangarError):
    """Falha do Supabase (rede, constraint, RLS)."""

    code = "persistence_error"


class TenantNotFoundError(HangarError):
    """Nenhum Hangar com o id ou slug informado."""

    code = "tenant_not_found"


class ServiceNotFoundError(HangarError):
    """Serviço inexistente ou inativo para o Hangar."""

    code = "service_not_found"


class AppointmentNotFoundError(HangarError):
    """Agendamento inexistente."""

    code = "appointment_not_found"


class CustomerNotFoundError(HangarError):
    """Cliente inexistente ou de outro Hangar."""

    code = "customer_not_found"


class VehicleNotFoundError(HangarError):
    """Veículo inexistente ou de outro cliente."""

    code = "vehicle_not_found"


class OrphanRecordWarning(UserWarning):
    """Cliente/veículo criados, mas o agendamento falhou.

    Não é revertido automaticamente: o chamador oferece nova tentativa
    ou limpeza manual.
    """

    def __init__(
        self,
        customer_id: str | None,
        vehicle_id: str | None,
        reason: str,
    ) -> None:
        super().__init__(
            f"Registros órfãos após falha no agendamento: "
            f"customer={customer_id} vehicle={vehicle_id} ({reason})"
        )
        self.customer_id = customer_id
        self.vehicle_id = vehicle_id
        self.reason = reason

    def to_dict(self) -> dict[str, Any]:
        """Serializa o aviso para respostas da API."""
        return {
            "code": "orphan_record",
            "customer_id": self.customer_id,
            "vehicle_id": self.vehicle_id,
            "reason": self.reason,
        }
