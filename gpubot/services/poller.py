"""Background long-poll loop that fetches Telegram updates and dispatches commands."""

import asyncio

import structlog

from gpubot.core.exceptions import BotError
from gpubot.schemas.telegram import Update
from gpubot.services.commands import CommandHandlers
from gpubot.services.telegram.client import TelegramBot

logger = structlog.get_logger()


class UpdatePoller:
    """Polls getUpdates and hands each command message to the handlers."""

    def __init__(
        self,
        bot: TelegramBot,
        handlers: CommandHandlers,
        poll_timeout: int = 9,
        drop_pending_updates: bool = True,
        max_concurrent_updates: int = 50,
        retry_interval: float = 3.0,
    ):
        self._bot = bot
        self._handlers = handlers
        self._poll_timeout = poll_timeout
        self._drop_pending_updates = drop_pending_updates
        self._retry_interval = retry_interval
        self._semaphore = asyncio.Semaphore(max_concurrent_updates)
        self._inflight: set[asyncio.Task] = set()
        self._task: asyncio.Task | None = None
        self._running = False
        self.offset: int | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the background polling task."""
        if self._drop_pending_updates:
            await self._bot.delete_webhook(drop_pending_updates=True)
        self._running = True
        self._task = asyncio.create_task(self._poll_loop())
        logger.info("poller_started", poll_timeout=self._poll_timeout)

    async def stop(self) -> None:
        """Stop polling and wait for in-flight updates to finish."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._inflight:
            await asyncio.gather(*self._inflight, return_exceptions=True)
        logger.info("poller_stopped")

    async def run_forever(self) -> None:
        """Poll until cancelled."""
        await self.start()
        try:
            await asyncio.Event().wait()
        finally:
            await self.stop()

    async def _poll_loop(self) -> None:
        """Main polling loop."""
        while self._running:
            try:
                await self.poll_once()
                # Let freshly scheduled handlers start before the next long poll.
                await asyncio.sleep(0)
            except asyncio.CancelledError:
                break
            except BotError as e:
                logger.warning("poll_failed", reason=e.message)
                await asyncio.sleep(self._retry_interval)
            except Exception:
                logger.exception("poller_error")
                await asyncio.sleep(self._retry_interval)

    async def poll_once(self) -> int:
        """Fetch one batch of updates and schedule them. Returns the batch size."""
        updates = await self._bot.get_updates(
            offset=self.offset,
            timeout=self._poll_timeout,
            allowed_updates=["message"],
        )
        for update in updates:
            self.offset = update.update_id + 1
            task = asyncio.create_task(self._handle(update))
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)
        return len(updates)

    async def _handle(self, update: Update) -> None:
        """Handle a single update. Errors stay local to the update."""
        message = update.message
        if message is None:
            return
        async with self._semaphore:
            try:
                await self._handlers.dispatch(message)
            except BotError as e:
                logger.error(
                    "update_handling_failed",
                    update_id=update.update_id,
                    chat_id=message.chat.id,
                    code=e.code,
                    error=e.message,
                    details=e.details,
                )
            except Exception:
                logger.exception("update_handling_crashed", update_id=update.update_id)
