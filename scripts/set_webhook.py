"""
Registers (or removes) the Telegram webhook

Run:
    python scripts/set_webhook.py https://bot.example.org
    python scripts/set_webhook.py --delete

The webhook URL is <base>{API_PREFIX}/telegram/webhook and carries
TELEGRAM_WEBHOOK_SECRET when one is configured.
"""

import argparse
import asyncio
import sys
from pathlib import Path
from dotenv import load_dotenv

sys.path.insert(0, str(Path(__file__).parent.parent))

# Load environment variables
load_dotenv()

import logging

from app.core.config import settings
from app.core.exceptions import ExternalServiceError
from app.services.telegram_service import TelegramClient

logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)


def webhook_url(base_url: str) -> str:
    return f"{base_url.rstrip('/')}{settings.API_PREFIX}/telegram/webhook"


async def main(base_url: str = None, delete: bool = False) -> int:
    client = TelegramClient.from_settings()
    if not client.is_configured():
        logger.error("❌ TELEGRAM_BOT_TOKEN must be set in .env file")
        return 1

    try:
        me = await client.get_me()
        logger.info(f"🤖 Bot: @{me.get('username')}")

        if delete:
            await client.delete_webhook()
            logger.info("✅ Webhook removed")
            return 0

        url = webhook_url(base_url)
        await client.set_webhook(url, secret_token=settings.TELEGRAM_WEBHOOK_SECRET)
        logger.info(f"✅ Webhook set: {url}")
        if not settings.TELEGRAM_WEBHOOK_SECRET:
            logger.warning("⚠️ No TELEGRAM_WEBHOOK_SECRET configured, requests are not authenticated")
        return 0

    except ExternalServiceError as e:
        logger.error(f"❌ {e.message}")
        return 1

    finally:
        await client.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Manage the Telegram webhook")
    parser.add_argument("base_url", nargs="?", help="Public base URL of this service")
    parser.add_argument("--delete", action="store_true", help="Remove the webhook instead")
    args = parser.parse_args()

    if not args.delete and not args.base_url:
        parser.error("base_url is required unless --delete is given")

    sys.exit(asyncio.run(main(args.base_url, args.delete)))
