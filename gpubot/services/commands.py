"""Handlers for the bot's chat commands."""

from collections.abc import Awaitable, Callable

import structlog

from gpubot.core.exceptions import ExternalToolUnavailableError
from gpubot.schemas.telegram import Message
from gpubot.services.report import collect_report
from gpubot.services.report.formatter import render
from gpubot.services.smi.runner import SmiRunner
from gpubot.services.telegram.base import MessageDelivery

logger = structlog.get_logger()

GATED_REPLY = "Sorry this bot is gated"
NO_BINARY_REPLY = "No nvidia-smi binary"


def parse_command(text: str | None, bot_username: str = "") -> str | None:
    """Return the lower-cased command name of ``/cmd`` or ``/cmd@bot``.

    None when the text is not a command, or is addressed to another bot.
    """
    if not text or not text.startswith("/"):
        return None
    head = text.split(maxsplit=1)[0][1:]
    name, _, mention = head.partition("@")
    if mention and bot_username and mention.lower() != bot_username.lower():
        return None
    return name.lower() or None


class CommandHandlers:
    """Command handlers bound to one delivery channel and one allowed chat."""

    def __init__(
        self,
        delivery: MessageDelivery,
        runner: SmiRunner,
        allowed_chat_id: int,
        bot_username: str = "",
    ):
        self._delivery = delivery
        self._runner = runner
        self.allowed_chat_id = allowed_chat_id
        self.bot_username = bot_username
        self._routes: dict[str, Callable[[Message], Awaitable[None]]] = {
            "start": self.start,
            "state": self.state,
            "chat_id": self.show_chat_id,
        }

    @property
    def commands(self) -> list[str]:
        return list(self._routes)

    async def dispatch(self, message: Message) -> bool:
        """Run the handler for a command message. Returns False if none matched."""
        command = parse_command(message.text, self.bot_username)
        handler = self._routes.get(command) if command else None
        if handler is None:
            return False
        logger.info("command_received", command=command, chat_id=message.chat.id)
        await handler(message)
        return True

    async def _reply(self, message: Message, text: str) -> None:
        await self._delivery.send_message(
            message.chat.id, text, reply_to_message_id=message.message_id
        )

    async def start(self, message: Message) -> None:
        await self._reply(
            message,
            f"Hello, I'm @{self.bot_username}. I <b>send</b> information about GPU state "
            "on a server where I am connected to.",
        )

    async def show_chat_id(self, message: Message) -> None:
        await self._reply(message, str(message.chat.id))

    async def state(self, message: Message) -> None:
        """Send the nvidia-smi summary: a header message, then one per GPU."""
        chat_id = message.chat.id
        if chat_id != self.allowed_chat_id:
            logger.info("state_request_gated", chat_id=chat_id)
            await self._reply(message, GATED_REPLY)
            return

        try:
            report = await collect_report(self._runner)
        except ExternalToolUnavailableError as e:
            logger.warning("smi_unavailable", binary=self._runner.binary, reason=e.message)
            await self._reply(message, NO_BINARY_REPLY)
            return

        blocks = render(report)
        for block in blocks:
            await self._delivery.send_message(chat_id, block)
        logger.info("state_delivered", chat_id=chat_id, blocks=len(blocks))
