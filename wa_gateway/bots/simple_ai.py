"""AI fallback bot: relays each message to the completion service."""

from wa_gateway.bots.registry import Bot
from wa_gateway.errors import CompletionError
from wa_gateway.logging_config import get_logger

logger = get_logger(__name__)

AI_GREETING = "👋 ¡Hola! Soy tu asistente de IA. ¿En qué puedo ayudarte?"

TECHNICAL_ISSUE_TEXT = (
    "🔧 Lo siento, hay un problema técnico. Por favor intenta de nuevo "
    "o escribe *MENÚ* para ver las opciones disponibles."
)

SYSTEM_PROMPT_TEMPLATE = """Eres un asistente virtual amigable para un negocio de WhatsApp.

INSTRUCCIONES:
- Responde de manera concisa y útil
- Usa emojis apropiadamente
- Si te preguntan sobre reservas, menciona que pueden escribir "MENÚ" y elegir la opción 1
- Si te preguntan sobre el menú, menciona que pueden usar "MENÚ"
- Mantén un tono profesional pero amigable
- Responde en español
- Máximo 2-3 líneas por respuesta

CONTEXTO DEL NEGOCIO:
- Empresa: {tenant_id}
- Ofrecemos servicios de reservas
- Tenemos bots especializados para diferentes funciones"""


def build_system_prompt(tenant_id: str) -> str:
    return SYSTEM_PROMPT_TEMPLATE.format(tenant_id=tenant_id)


class SimpleAIBot(Bot):
    key = "simple-ai"

    def __init__(self, completion):
        self.completion = completion

    def handle(self, ctx) -> None:
        user_message = (ctx.text or "").strip()

        if not user_message:
            ctx.reply(AI_GREETING)
            return

        try:
            answer = self.completion.generate(user_message, build_system_prompt(ctx.tenant_id))
        except CompletionError as e:
            logger.error("ai_reply_failed", state_key=ctx.state_key, error_type=type(e).__name__, error=str(e))
            ctx.reply(TECHNICAL_ISSUE_TEXT)
            return
        except Exception as e:
            logger.exception("ai_reply_unexpected_error", state_key=ctx.state_key, error=str(e))
            ctx.reply(TECHNICAL_ISSUE_TEXT)
            return

        logger.info("ai_reply_generated", state_key=ctx.state_key, chars=len(answer))
        ctx.reply(answer)
