"""Dead Letter Queue - Side effects that failed after a booking was saved."""

from typing import Any

from hangar.services.observability import get_current_trace_id
from hangar.services.supabase import SupabaseService
from hangar.utils.logger import get_logger

logger = get_logger(__name__)


async def send_to_dlq(
    supabase: SupabaseService,
    reference_id: str,
    payload: dict[str, Any],
    error: str,
    error_type: str = "notification_error",
) -> None:
    """Registra um efeito colateral falho na Dead Letter Queue.

    Nunca levanta exceção: a DLQ é o último recurso de um fluxo
    fire-and-forget.

    Args:
        supabase: Serviço de banco.
        reference_id: ID do agendamento (ou cliente, para órfãos).
        payload: Dados necessários para reprocessar.
        error: Descrição do erro.
        error_type: Tipo/categoria do erro.
    """
    trace_id = get_current_trace_id() or "unknown"

    logger.error(
        "side_effect_sent_to_dlq",
        reference_id=reference_id,
        error_type=error_type,
        error=error,
        trace_id=trace_id,
    )

    try:
        await supabase.save_dead_letter(
            {
                "reference_id": reference_id,
                "error_type": error_type,
                "error_message": error,
                "payload": payload,
                "trace_id": trace_id,
                "retried": False,
            }
        )
        logger.info("dlq_entry_persisted", reference_id=reference_id)

    except Exception as e:
        # Log but don't raise - DLQ persistence failure shouldn't break the flow
        logger.error(
            "dlq_persistence_failed",
            reference_id=reference_id,
            error=str(e),
        )
