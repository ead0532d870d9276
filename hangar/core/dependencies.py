"""Dependências do núcleo de agendamento.

Tudo que o BookingService consome de fora (banco, notificações, relógio)
chega por aqui, o que permite isolar os testes da infraestrutura.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date

from hangar.core.calendar import tenant_today
from hangar.services.notifications import NotificationDispatcher
from hangar.services.supabase import SupabaseService


@dataclass
class AppDependencies:
    """Dependências injetadas no BookingService.

    Attributes:
        supabase: Serviço do Supabase para banco de dados e sessão.
        notifier: Disparador de WhatsApp (None desliga notificações).
        today: Relógio por fuso do Hangar (substituível em testes).
    """

    supabase: SupabaseService
    notifier: NotificationDispatcher | None = None
    today: Callable[[str], date] = field(default=tenant_today)
