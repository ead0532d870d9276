"""Operating Calendar - Resolves which days a Hangar accepts bookings."""

import calendar as _calendar
from datetime import date, datetime
from zoneinfo import ZoneInfo

from hangar.contracts.booking import CalendarDay
from hangar.contracts.tenant import DayStatus, TenantConfig

# 0 = domingo, como no micro-site
DAY_NAMES_PT = ("DOM", "SEG", "TER", "QUA", "QUI", "SEX", "SÁB")


def day_of_week(day: date) -> int:
    """Dia da semana com domingo = 0."""
    return (day.weekday() + 1) % 7


def tenant_today(timezone: str) -> date:
    """Data de hoje no fuso do Hangar.

    Args:
        timezone: Nome IANA (ex: America/Sao_Paulo).

    Returns:
        Data local do Hangar.
    """
    return datetime.now(ZoneInfo(timezone)).date()


def resolve_day(config: TenantConfig, day: date) -> DayStatus:
    """Resolve a situação de uma data para o Hangar.

    Sem regra para o dia da semana (ou regra fechada) o dia é CLOSED.
    Um bloqueio manual vence qualquer regra aberta. Datas passadas não
    são tratadas aqui: o chamador as filtra antes.

    Args:
        config: Configuração do Hangar.
        day: Data a resolver.

    Returns:
        OPEN, CLOSED ou BLOCKED.
    """
    rule = config.rule_for(day_of_week(day))
    if rule is None or not rule.is_open:
        return DayStatus.CLOSED
    if config.is_blocked(day):
        return DayStatus.BLOCKED
    return DayStatus.OPEN


def build_month_calendar(
    config: TenantConfig,
    year: int,
    month: int,
    today: date,
) -> list[CalendarDay]:
    """Monta o calendário de um mês para o micro-site.

    Args:
        config: Configuração do Hangar.
        year: Ano exibido.
        month: Mês exibido (1-12).
        today: Hoje no fuso do Hangar.

    Returns:
        Um CalendarDay por dia do mês, em ordem.
    """
    _, days_in_month = _calendar.monthrange(year, month)

    days: list[CalendarDay] = []
    for number in range(1, days_in_month + 1):
        current = date(year, month, number)
        status = resolve_day(config, current)
        is_past = current < today
        days.append(
            CalendarDay(
                day=current,
                day_name=DAY_NAMES_PT[day_of_week(current)],
                day_number=f"{number:02d}",
                status=status,
                is_past=is_past,
                is_open=status == DayStatus.OPEN and not is_past,
            )
        )
    return days


def first_available_day(days: list[CalendarDay]) -> date | None:
    """Primeiro dia agendável do mês (seleção automática do micro-site)."""
    for day in days:
        if day.is_open:
            return day.day
    return None
