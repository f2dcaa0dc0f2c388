"""
Обработчики aiogram: переводят сообщения и нажатия кнопок в события диспетчера.
"""

from aiogram import Router, F
from aiogram.types import Message, CallbackQuery

from ..services.dispatcher import CommandDispatcher
from ..services.logger import get_logger
from ..types import ChatEvent

logger = get_logger('handlers')
router = Router()


def event_from_message(message: Message) -> ChatEvent:
    user = message.from_user
    return ChatEvent(
        chat_id=message.chat.id,
        user_id=user.id,
        message_id=message.message_id,
        chat_type=message.chat.type,
        text=message.text or '',
        username=user.username,
        first_name=user.first_name,
        last_name=user.last_name,
        language_code=user.language_code,
    )


def event_from_callback(callback: CallbackQuery) -> ChatEvent:
    user = callback.from_user
    return ChatEvent(
        chat_id=callback.message.chat.id,
        user_id=user.id,
        message_id=callback.message.message_id,
        chat_type=callback.message.chat.type,
        text=callback.data or '',
        username=user.username,
        first_name=user.first_name,
        last_name=user.last_name,
        language_code=user.language_code,
        is_callback=True,
    )


@router.message(F.text)
async def handle_text(message: Message, commands: CommandDispatcher):
    """Все текстовые сообщения: команды, параметры игры, коды игр в групповых чатах."""
    if not message.from_user:
        return
    await commands.dispatch_message(event_from_message(message))


@router.callback_query()
async def handle_callback(callback: CallbackQuery, commands: CommandDispatcher):
    """Все нажатия inline-кнопок."""
    if not callback.from_user or not callback.message:
        logger.debug(f"Callback {callback.data!r} без исходного сообщения пропущен")
        await callback.answer()
        return
    await commands.dispatch_callback(event_from_callback(callback))
    await callback.answer()
