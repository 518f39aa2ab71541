"""
Async job processing with Celery.

- process_inbound_message: runs one inbound WhatsApp message through the bot runtime
- purge_expired_holds: periodic cleanup of lapsed slot holds
"""

from celery import Celery
from wa_gateway.config import config

# Initialize Celery with Redis broker
celery_app = Celery(
    'wa_gateway',
    broker=config.REDIS_URL,
    backend=config.REDIS_URL
)

# Celery configuration
celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,
    task_track_started=True,
    task_time_limit=60,
    worker_prefetch_multiplier=1,
    task_always_eager=config.CELERY_TASK_ALWAYS_EAGER,
    beat_schedule={
        'purge-expired-holds': {
            'task': 'purge_expired_holds',
            'schedule': float(config.HOLD_PURGE_INTERVAL_SECONDS),
        },
    },
)


@celery_app.task(name='process_inbound_message')
def process_inbound_message_task(message: dict):
    """
    Background task to handle one inbound message.

    Args:
        message: InboundMessage as a dict (tenant_id, instance_name, sender, text, ...)

    Returns:
        dict: status plus the bot and FSM state the conversation ended in
    """
    from wa_gateway.logging_config import logger
    from wa_gateway.models import InboundMessage
    from wa_gateway.wiring import get_services

    try:
        inbound = InboundMessage(**message)
        state = get_services().runtime.handle_inbound(inbound)

        logger.info(
            "inbound_message_processed",
            tenant_id=inbound.tenant_id,
            sender=inbound.sender,
            bot=state.bot_key if state else None,
            fsm=state.fsm if state else None,
        )
        return {
            "status": "success",
            "bot": state.bot_key if state else None,
            "fsm": state.fsm if state else None,
        }

    except Exception as e:
        logger.exception("inbound_message_failed", error=str(e))
        return {"status": "error", "message": str(e)}


@celery_app.task(name='purge_expired_holds')
def purge_expired_holds_task():
    """
    Periodic task: delete held slots whose hold lapsed more than a minute ago.

    Returns:
        dict: number of slot records removed
    """
    from wa_gateway.logging_config import logger
    from wa_gateway.wiring import get_services

    try:
        purged = get_services().ledger.purge_expired()
    except Exception as e:
        logger.error("purge_expired_holds_failed", error=str(e))
        return {"status": "error", "message": str(e)}

    logger.info("expired_holds_purged", purged=purged)
    return {"status": "success", "purged": purged}
