"""Unit Tests - FSM (Finite State Machine)."""

import pytest

from hangar.contracts.appointment import AppointmentStatus
from hangar.core.exceptions import InvalidTransitionError
from hangar.core.fsm import TERMINAL_STATUSES, StatusLifecycle, transition_status


class TestStatusLifecycle:
    """Tests for the appointment status machine."""

    def test_initial_status(self) -> None:
        """Test that the lifecycle starts in NOVO."""
        lifecycle = StatusLifecycle()

        assert lifecycle.current_status == AppointmentStatus.NOVO
        assert lifecycle.history == []
        assert not lifecycle.is_terminal

    def test_valid_transition_full_flow(self) -> None:
        """Test NOVO -> CONFIRMADO -> EM_EXECUCAO -> FINALIZADO."""
        lifecycle = StatusLifecycle()

        lifecycle.transition(AppointmentStatus.CONFIRMADO)
        lifecycle.transition(AppointmentStatus.EM_EXECUCAO)
        lifecycle.transition(AppointmentStatus.FINALIZADO)

        assert lifecycle.current_status == AppointmentStatus.FINALIZADO
        assert lifecycle.is_terminal
        assert lifecycle.history == [
            AppointmentStatus.NOVO,
            AppointmentStatus.CONFIRMADO,
            AppointmentStatus.EM_EXECUCAO,
        ]

    def test_invalid_transition_raises_error(self) -> None:
        """Test that skipping a step raises InvalidTransitionError."""
        lifecycle = StatusLifecycle()

        assert not lifecycle.can_transition_to(AppointmentStatus.FINALIZADO)

        with pytest.raises(InvalidTransitionError) as exc_info:
            lifecycle.transition(AppointmentStatus.FINALIZADO)

        assert "Transição inválida" in str(exc_info.value)
        assert exc_info.value.details == {
            "from_status": "NOVO",
            "to_status": "FINALIZADO",
        }

    @pytest.mark.parametrize(
        "status",
        [
            AppointmentStatus.NOVO,
            AppointmentStatus.CONFIRMADO,
            AppointmentStatus.EM_EXECUCAO,
        ],
    )
    def test_cancel_from_any_active_status(self, status: AppointmentStatus) -> None:
        """Test CANCELADO is reachable from every non-terminal status."""
        lifecycle = StatusLifecycle(current_status=status)

        lifecycle.transition(AppointmentStatus.CANCELADO)

        assert lifecycle.current_status == AppointmentStatus.CANCELADO
        assert lifecycle.is_terminal

    @pytest.mark.parametrize("status", sorted(TERMINAL_STATUSES))
    def test_terminal_statuses_are_final(self, status: AppointmentStatus) -> None:
        """Test nothing leaves FINALIZADO or CANCELADO."""
        lifecycle = StatusLifecycle(current_status=status)

        for target in AppointmentStatus:
            assert not lifecycle.can_transition_to(target)

    def test_same_status_rejected(self) -> None:
        """Test re-applying the current status is not a transition."""
        lifecycle = StatusLifecycle(current_status=AppointmentStatus.CONFIRMADO)

        assert not lifecycle.can_transition_to(AppointmentStatus.CONFIRMADO)

    def test_no_going_back(self) -> None:
        """Test EM_EXECUCAO cannot return to CONFIRMADO."""
        lifecycle = StatusLifecycle(current_status=AppointmentStatus.EM_EXECUCAO)

        with pytest.raises(InvalidTransitionError):
            lifecycle.transition(AppointmentStatus.CONFIRMADO)


class TestTransitionStatus:
    """Tests for the pure transition_status helper."""

    def test_returns_updated_copy(self, appointment_factory) -> None:
        """Test the original appointment is left untouched."""
        appointment = appointment_factory()

        result = transition_status(appointment, AppointmentStatus.CONFIRMADO)

        assert result.success
        assert result.appointment.status == AppointmentStatus.CONFIRMADO
        assert result.appointment.id == appointment.id
        assert appointment.status == AppointmentStatus.NOVO

    def test_invalid_transition_result(self, appointment_factory) -> None:
        """Test an invalid transition is returned, not raised."""
        appointment = appointment_factory(status=AppointmentStatus.FINALIZADO)

        result = transition_status(appointment, AppointmentStatus.CANCELADO)

        assert not result.success
        assert result.appointment is None
        assert isinstance(result.error, InvalidTransitionError)
        assert result.error.code == "invalid_transition"

    def test_cancel_then_confirm_fails(self, appointment_factory) -> None:
        """Test a canceled appointment cannot be confirmed afterwards."""
        canceled = transition_status(appointment_factory(), AppointmentStatus.CANCELADO)
        assert canceled.success

        result = transition_status(canceled.appointment, AppointmentStatus.CONFIRMADO)

        assert not result.success
        assert isinstance(result.error, InvalidTransitionError)
