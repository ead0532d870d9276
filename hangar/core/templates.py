"""Message Templates - WhatsApp texts sent to Hangar customers.

Templates carry the fixed structure; placeholders are filled with the
appointment data at dispatch time.
"""

from datetime import date
from typing import Any

TEMPLATES: dict[str, str] = {
    "booking_received": (
        "Olá {customer_name}! 🚗\n\n"
        "Recebemos seu agendamento na *{business_name}*:\n\n"
        "• Serviço: {service}\n"
        "• Data: {date}\n"
        "• Horário: {time}\n\n"
        "Assim que confirmarmos, avisamos por aqui."
    ),
    "booking_confirmed": (
        "Olá {customer_name}! ✅\n\n"
        "Seu agendamento na *{business_name}* está confirmado:\n\n"
        "• Serviço: {service}\n"
        "• Data: {date}\n"
        "• Horário: {time}\n"
        "• Veículo: {vehicle_model} ({vehicle_plate})\n\n"
        "Te esperamos!"
    ),
    "vehicle_ready": (
        "Olá {customer_name}! 🚗✨\n\n"
        "Ótimas notícias: o serviço de *{service}* no seu veículo já foi "
        "finalizado aqui na *{business_name}*.\n\n"
        "Seu carro está pronto para ser retirado. "
        "Esperamos que tenha gostado do resultado!\n\n"
        "Até logo!"
    ),
    "booking_canceled": (
        "Olá {customer_name}. Seu agendamento de {service} em {date} às {time} "
        "na *{business_name}* foi cancelado.\n\n"
        "Se quiser remarcar, é só acessar nosso link de agendamento."
    ),
}


def format_date_br(value: date) -> str:
    """Data no formato DD/MM/AAAA."""
    return value.strftime("%d/%m/%Y")


def get_template(template_key: str) -> str:
    """Get a template by its key.

    Raises:
        KeyError: If the template does not exist.
    """
    return TEMPLATES[template_key]


def format_template(template_key: str, **context: Any) -> str:
    """Format a template with context data.

    Missing placeholders are rendered as "---" instead of failing, since
    customers and vehicles may have incomplete records.
    """
    template = get_template(template_key)
    return template.format_map(_DefaultDict(context))


class _DefaultDict(dict):
    def __missing__(self, key: str) -> str:
        return "---"
