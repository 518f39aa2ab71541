"""Main menu bot. Keeps no state of its own; it only routes to other bots."""

from wa_gateway.bots.registry import Bot, BotRegistry
from wa_gateway.bots.reservations import ReservationsBot
from wa_gateway.bots.simple_ai import SimpleAIBot, AI_GREETING

MENU_TEXT = "\n".join([
    "👋 *Bienvenido*",
    "1) Reservar una cita",
    "2) Consultar/confirmar pago",
    "3) Hablar con un agente",
    "4) Asistente virtual",
    "",
    "Responde con el número de la opción.",
])

PAYMENTS_TEXT = (
    "💳 *Pagos en construcción*\n\n"
    "Esta funcionalidad estará disponible pronto. Responde *MENÚ* para volver al inicio."
)

AGENT_TEXT = (
    "👤 *Conectándote con un agente...*\n\n"
    "En breve te contactaremos. Responde *MENÚ* para volver al inicio."
)


class MenuBot(Bot):
    key = "menu-basic"

    def __init__(self, registry: BotRegistry):
        self.registry = registry

    def handle(self, ctx) -> None:
        text = (ctx.text or "").strip()

        if text == "1":
            ctx.set_state(bot_key=ReservationsBot.key, fsm=ReservationsBot.WELCOME, data={})
            reservations = self.registry.get(ReservationsBot.key)
            if reservations is not self:
                reservations.handle(ctx)
            return

        if text == "2":
            ctx.reply(PAYMENTS_TEXT)
            return

        if text == "3":
            ctx.reply(AGENT_TEXT)
            return

        if text == "4":
            ctx.set_state(bot_key=SimpleAIBot.key, fsm=None, data={})
            ctx.reply(AI_GREETING)
            return

        ctx.reply(MENU_TEXT)
