import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport

from gpubot.services.telegram.client import TelegramBot
from tests.fixtures.smi import load_xml
from tests.mocks.fake_telegram import VALID_TOKEN, create_app


@pytest.fixture
def two_gpus_xml() -> bytes:
    return load_xml("two_gpus.xml")


@pytest.fixture
def no_gpus_xml() -> bytes:
    return load_xml("no_gpus.xml")


@pytest.fixture
def fake_telegram():
    """Fresh fake Bot API app; inspect ``fake_telegram.state`` for traffic."""
    return create_app()


@pytest_asyncio.fixture
async def telegram_bot(fake_telegram):
    """TelegramBot wired to the fake Bot API via in-process ASGITransport."""
    transport = ASGITransport(app=fake_telegram)
    client = httpx.AsyncClient(transport=transport, base_url="http://fake-telegram")
    bot = TelegramBot(token=VALID_TOKEN, base_url="http://fake-telegram", http_client=client)
    yield bot
    await client.aclose()
