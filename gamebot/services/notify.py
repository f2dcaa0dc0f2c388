"""
Сервис отправки сообщений в Telegram.
"""

import logging
from typing import Optional
from aiogram import Bot
from aiogram.types import InlineKeyboardMarkup

logger = logging.getLogger(__name__)


class Notifier:
    """Тонкая обертка над Bot: отправка, редактирование, удаление сообщений."""

    def __init__(self, bot: Bot):
        self.bot = bot

    async def send_message(
        self,
        chat_id: int,
        text: str,
        keyboard: Optional[InlineKeyboardMarkup] = None
    ) -> int:
        """Отправляет сообщение. Возвращает его message_id."""
        message = await self.bot.send_message(chat_id=chat_id, text=text, reply_markup=keyboard)
        return message.message_id

    async def edit_message(
        self,
        chat_id: int,
        message_id: int,
        text: str,
        keyboard: Optional[InlineKeyboardMarkup] = None
    ) -> None:
        """Редактирует текст и клавиатуру сообщения."""
        await self.bot.edit_message_text(
            text=text,
            chat_id=chat_id,
            message_id=message_id,
            reply_markup=keyboard
        )

    async def delete_message(self, chat_id: int, message_id: int) -> None:
        await self.bot.delete_message(chat_id=chat_id, message_id=message_id)

    async def get_chat_member_status(self, chat_id: int, user_id: int) -> str:
        """Возвращает статус участника чата: member, left, kicked, restricted и т.д."""
        member = await self.bot.get_chat_member(chat_id=chat_id, user_id=user_id)
        status = member.status
        return getattr(status, 'value', status)
