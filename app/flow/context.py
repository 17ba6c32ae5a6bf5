"""
app/flow/context.py

Purpose: Injected collaborators

- Built once at startup, passed explicitly to every handler
- Replaces module-level bot/store singletons
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from app.core.config import Settings, settings as default_settings
from app.flow.engine import DialogEngine
from app.flow.handlers.join import build_join_wizard
from app.flow.handlers.report import build_report_wizard
from app.services.applicant_service import ApplicantStore
from app.services.notification_service import NotificationRouter
from app.services.telegram_service import TelegramClient
from utils.telegram_utils import main_menu_keyboard


@dataclass
class BotServices:
    store: ApplicantStore
    router: NotificationRouter
    client: TelegramClient
    engine: DialogEngine
    admin_id: int
    version: str = "dev"

    def is_admin(self, user_id: Optional[int]) -> bool:
        return bool(self.admin_id) and user_id == self.admin_id

    def menu_keyboard(self, user_id: int) -> Dict[str, Any]:
        """Main menu; the admin entry is shown to the administrator only."""
        return main_menu_keyboard(is_admin=self.is_admin(user_id))


def build_services(
    store: ApplicantStore,
    client: TelegramClient,
    config: Optional[Settings] = None,
) -> BotServices:
    """
    Wires engine, router and both wizards around a store and a client.
    """
    config = config or default_settings
    router = NotificationRouter(client, config.ADMIN_CHAT_ID, config.ADMIN_HANDLE)

    def menu_keyboard(user_id: int) -> Dict[str, Any]:
        return main_menu_keyboard(is_admin=bool(config.ADMIN_CHAT_ID) and user_id == config.ADMIN_CHAT_ID)

    engine = DialogEngine(
        menu_keyboard,
        session_timeout_minutes=config.SESSION_TIMEOUT_MINUTES,
        max_field_length=config.MAX_FIELD_LENGTH,
    )
    engine.register(build_join_wizard(store, router, menu_keyboard))
    engine.register(build_report_wizard(store, router, menu_keyboard))

    return BotServices(
        store=store,
        router=router,
        client=client,
        engine=engine,
        admin_id=config.ADMIN_CHAT_ID,
        version=config.BOT_VERSION,
    )
