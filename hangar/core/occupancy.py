"""Occupancy Counter - Active bookings per slot against box capacity."""

from collections import Counter
from collections.abc import Iterable

from hangar.contracts.appointment import Appointment
from hangar.contracts.booking import SlotOccupancy, SlotView
from hangar.core.exceptions import ConfigurationError


def compute_occupancy(
    slots: Iterable[str],
    appointments: Iterable[Appointment],
    box_capacity: int,
) -> dict[str, SlotOccupancy]:
    """Conta agendamentos ativos por horário.

    Horários lotados continuam no mapa com ``is_full=True``; a tela os
    desabilita em vez de escondê-los.

    Args:
        slots: Grade de horários do dia.
        appointments: Agendamentos da data (cancelados são ignorados).
        box_capacity: Boxes simultâneos do Hangar.

    Returns:
        Mapa horário -> SlotOccupancy, na ordem da grade.

    Raises:
        ConfigurationError: Se box_capacity < 1.
    """
    if box_capacity < 1:
        raise ConfigurationError(
            "Capacidade de boxes deve ser pelo menos 1",
            box_capacity=box_capacity,
        )

    counts = Counter(appt.scheduled_time for appt in appointments if appt.is_active)

    return {
        slot: SlotOccupancy(count=counts[slot], is_full=counts[slot] >= box_capacity)
        for slot in slots
    }


def to_slot_views(occupancy: dict[str, SlotOccupancy]) -> list[SlotView]:
    """Lista de horários para a grade do micro-site."""
    return [
        SlotView(time=slot, count=info.count, is_full=info.is_full)
        for slot, info in occupancy.items()
    ]
