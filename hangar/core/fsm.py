"""Finite State Machine - Appointment status lifecycle."""

from pydantic import BaseModel, Field

from hangar.contracts.appointment import Appointment, AppointmentStatus
from hangar.contracts.booking import TransitionResult
from hangar.core.exceptions import InvalidTransitionError

# Valid status transitions
VALID_TRANSITIONS: dict[AppointmentStatus, list[AppointmentStatus]] = {
    AppointmentStatus.NOVO: [
        AppointmentStatus.CONFIRMADO,
        AppointmentStatus.CANCELADO,
    ],
    AppointmentStatus.CONFIRMADO: [
        AppointmentStatus.EM_EXECUCAO,
        AppointmentStatus.CANCELADO,
    ],
    AppointmentStatus.EM_EXECUCAO: [
        AppointmentStatus.FINALIZADO,
        AppointmentStatus.CANCELADO,
    ],
    AppointmentStatus.FINALIZADO: [],  # Terminal state
    AppointmentStatus.CANCELADO: [],  # Terminal state
}

TERMINAL_STATUSES = frozenset(
    status for status, allowed in VALID_TRANSITIONS.items() if not allowed
)


class StatusLifecycle(BaseModel):
    """Máquina de estados do status de um agendamento.

    Gerencia transições de status e guarda o histórico percorrido.
    """

    current_status: AppointmentStatus = Field(
        default=AppointmentStatus.NOVO,
        description="Status atual",
    )
    history: list[AppointmentStatus] = Field(
        default_factory=list,
        description="Histórico de status",
    )

    def can_transition_to(self, next_status: AppointmentStatus) -> bool:
        """Valida se transição é permitida.

        Args:
            next_status: Status de destino desejado.

        Returns:
            True se a transição é válida, False caso contrário.
        """
        allowed = VALID_TRANSITIONS.get(self.current_status, [])
        return next_status in allowed

    def transition(self, next_status: AppointmentStatus) -> None:
        """Executa transição de status.

        Args:
            next_status: Status de destino.

        Raises:
            InvalidTransitionError: Se a transição não for permitida.
        """
        if not self.can_transition_to(next_status):
            raise InvalidTransitionError(
                f"Transição inválida: {self.current_status.value} -> {next_status.value}",
                from_status=self.current_status.value,
                to_status=next_status.value,
            )
        self.history.append(self.current_status)
        self.current_status = next_status

    @property
    def is_terminal(self) -> bool:
        """FINALIZADO e CANCELADO não mudam mais."""
        return self.current_status in TERMINAL_STATUSES


def transition_status(
    appointment: Appointment,
    new_status: AppointmentStatus,
) -> TransitionResult:
    """Aplica uma mudança de status sem tocar no banco.

    Args:
        appointment: Agendamento atual.
        new_status: Status desejado.

    Returns:
        TransitionResult com a cópia atualizada ou InvalidTransitionError.
    """
    lifecycle = StatusLifecycle(current_status=appointment.status)
    try:
        lifecycle.transition(new_status)
    except InvalidTransitionError as e:
        return TransitionResult(success=False, error=e)

    return TransitionResult(
        success=True,
        appointment=appointment.model_copy(update={"status": lifecycle.current_status}),
    )
