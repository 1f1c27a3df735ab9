import httpx
import structlog

from gpubot.config import Settings, settings
from gpubot.services.commands import CommandHandlers
from gpubot.services.poller import UpdatePoller
from gpubot.services.smi.runner import SmiRunner
from gpubot.services.telegram.client import TelegramBot

_NAME_TO_LEVEL = {
    "debug": 10,
    "info": 20,
    "warning": 30,
    "warn": 30,
    "error": 40,
    "critical": 50,
}

logger = structlog.get_logger()


def configure_logging(level: str = "info") -> None:
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            _NAME_TO_LEVEL.get(level.lower(), 20)
        ),
    )


def build_runner(config: Settings = settings) -> SmiRunner:
    return SmiRunner(binary=config.gpubot_smi_binary, timeout=config.gpubot_smi_timeout)


async def run_bot(config: Settings = settings) -> None:
    """Start the bot and poll for commands until cancelled."""
    http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(
            connect=5.0,
            read=config.gpubot_request_timeout,
            write=5.0,
            pool=5.0,
        )
    )
    bot = TelegramBot(
        token=config.token,
        base_url=config.gpubot_api_base_url,
        http_client=http_client,
        request_timeout=config.gpubot_request_timeout,
    )
    try:
        await bot.get_me()
        handlers = CommandHandlers(
            delivery=bot,
            runner=build_runner(config),
            allowed_chat_id=config.chat_id,
            bot_username=bot.username or "",
        )
        poller = UpdatePoller(
            bot,
            handlers,
            poll_timeout=config.gpubot_poll_timeout,
            drop_pending_updates=config.gpubot_drop_pending_updates,
            max_concurrent_updates=config.gpubot_max_concurrent_updates,
        )
        logger.info(
            "gpubot_starting",
            username=bot.username,
            allowed_chat_id=config.chat_id,
            smi_binary=config.gpubot_smi_binary,
        )
        await poller.run_forever()
    finally:
        await bot.close()
        logger.info("gpubot_stopping")
