"""
Регистрация игроков, главное меню, часовой пояс и справка.
"""

import logging
from typing import Optional

from aiogram import html

from ..errors import BadData
from ..types import ChatEvent, Player, TimeZoneOffset
from .cards import (
    SIGN_IN_PROMPT_TEXT, ALREADY_REGISTERED_TEXT, SIGNED_IN_TEXT, REGISTER_IN_PRIVATE_TEXT,
    MENU_TEXT, CHOOSE_TIME_ZONE_TEXT, TIME_ZONE_SET_TEXT, FAQ_TEXT,
    sign_in_keyboard, main_menu_keyboard, time_zone_keyboard
)
from .notify import Notifier
from .sessions import SessionStore
from .storage import Storage

logger = logging.getLogger(__name__)


def user_title(event: ChatEvent) -> str:
    return html.quote(event.username or event.first_name or str(event.user_id))


class PlayerService:
    """Обработчики команд, не связанных с конкретной игрой."""

    def __init__(self, storage: Storage, sessions: SessionStore, notifier: Notifier):
        self.storage = storage
        self.sessions = sessions
        self.notifier = notifier

    async def start(self, event: ChatEvent, player: Optional[Player]) -> None:
        """Команда /start: предлагает регистрацию в личном чате."""
        if not event.is_private:
            await self.notifier.send_message(event.chat_id, REGISTER_IN_PRIVATE_TEXT)
            return
        if player is None:
            await self.notifier.send_message(event.chat_id, SIGN_IN_PROMPT_TEXT, sign_in_keyboard())
            return
        await self.notifier.send_message(event.chat_id, ALREADY_REGISTERED_TEXT.format(name=user_title(event)))

    async def sign_in(self, event: ChatEvent) -> Player:
        """Регистрирует игрока по данным профиля Telegram. Повторная регистрация ничего не меняет."""
        player = self.storage.find_player(event.user_id)
        if player is None:
            player = Player(
                telegram_id=event.user_id,
                name=event.first_name,
                surname=event.last_name,
                nickname=event.username,
                utc_offset=None,
                language_code=event.language_code,
            )
            player['id'] = self.storage.add('players', player)
            logger.info(f"🆕 Зарегистрирован игрок {event.user_id} (@{event.username})")

        await self.notifier.edit_message(event.chat_id, event.message_id, SIGNED_IN_TEXT.format(name=user_title(event)))
        return player

    async def menu(self, event: ChatEvent, player: Player) -> None:
        """Главное меню. Прерывает настройку игры, если она идет."""
        self.sessions.end(event.user_id)
        if event.is_callback:
            await self.notifier.edit_message(event.chat_id, event.message_id, MENU_TEXT, main_menu_keyboard())
        else:
            await self.notifier.send_message(event.chat_id, MENU_TEXT, main_menu_keyboard())

    async def time_zone_menu(self, event: ChatEvent, player: Player) -> None:
        await self.notifier.edit_message(event.chat_id, event.message_id, CHOOSE_TIME_ZONE_TEXT, time_zone_keyboard())

    async def set_time_zone(self, event: ChatEvent, player: Player, offset: int) -> None:
        """Сохраняет часовой пояс игрока."""
        try:
            zone = TimeZoneOffset(offset)
        except ValueError:
            raise BadData()
        self.storage.update('players', {'id': player['id'], 'utc_offset': zone.value})
        logger.info(f"Игрок {event.user_id} выбрал часовой пояс {zone.value:+d}")
        await self.notifier.edit_message(
            event.chat_id, event.message_id,
            TIME_ZONE_SET_TEXT.format(zone=zone.description), main_menu_keyboard()
        )

    async def faq(self, event: ChatEvent, player: Player) -> None:
        await self.notifier.send_message(event.chat_id, FAQ_TEXT)
