"""Slot Generator - Bookable time-of-day grid for an open day.

Times are handled as minutes since midnight and only formatted to "HH:MM"
when leaving this module.
"""

from collections.abc import Iterator
from datetime import date

from hangar.contracts.tenant import DayStatus, TenantConfig
from hangar.core.calendar import day_of_week, resolve_day
from hangar.core.exceptions import ConfigurationError

MINUTES_PER_DAY = 24 * 60


def time_to_minutes(value: str) -> int:
    """Converte "HH:MM" (ou "HH:MM:SS") em minutos desde 00:00."""
    hours, minutes = value.split(":")[:2]
    return int(hours) * 60 + int(minutes)


def minutes_to_time(minutes: int) -> str:
    """Converte minutos desde 00:00 em "HH:MM" com zero à esquerda."""
    hours, mins = divmod(minutes, 60)
    return f"{hours:02d}:{mins:02d}"


class SlotSequence:
    """Sequência preguiçosa e reiniciável de horários.

    Cada iteração recomeça do horário de abertura, então a mesma instância
    pode ser percorrida várias vezes com o mesmo resultado.
    """

    def __init__(self, start_minutes: int, end_minutes: int, interval: int) -> None:
        self.start_minutes = start_minutes
        self.end_minutes = end_minutes
        self.interval = interval

    def __iter__(self) -> Iterator[str]:
        current = self.start_minutes
        while current < self.end_minutes:
            yield minutes_to_time(current)
            current += self.interval

    def __len__(self) -> int:
        if self.end_minutes <= self.start_minutes:
            return 0
        span = self.end_minutes - self.start_minutes
        return (span + self.interval - 1) // self.interval

    def __contains__(self, value: object) -> bool:
        if not isinstance(value, str):
            return False
        try:
            minutes = time_to_minutes(value)
        except ValueError:
            return False
        return (
            self.start_minutes <= minutes < self.end_minutes
            and (minutes - self.start_minutes) % self.interval == 0
        )

    def __repr__(self) -> str:
        return (
            f"SlotSequence({minutes_to_time(self.start_minutes)}-"
            f"{minutes_to_time(self.end_minutes)}, every {self.interval}min)"
        )


def generate_slots(open_time: str, close_time: str, interval_minutes: int) -> SlotSequence:
    """Gera a grade de horários de um dia aberto.

    Args:
        open_time: Abertura "HH:MM".
        close_time: Fechamento "HH:MM" (exclusivo).
        interval_minutes: Passo entre horários.

    Returns:
        SlotSequence de "HH:MM"; vazia se close_time <= open_time.

    Raises:
        ConfigurationError: Se interval_minutes <= 0.
    """
    if interval_minutes <= 0:
        raise ConfigurationError(
            "Intervalo de horários deve ser maior que zero",
            slot_interval_minutes=interval_minutes,
        )
    return SlotSequence(
        time_to_minutes(open_time),
        time_to_minutes(close_time),
        interval_minutes,
    )


def slots_for_day(config: TenantConfig, day: date) -> SlotSequence:
    """Grade do dia conforme a regra do Hangar (vazia se não estiver aberto)."""
    rule = config.rule_for(day_of_week(day))
    if rule is None or resolve_day(config, day) != DayStatus.OPEN:
        return SlotSequence(0, 0, max(config.slot_interval_minutes, 1))

    return generate_slots(rule.open_time, rule.close_time, config.slot_interval_minutes)
