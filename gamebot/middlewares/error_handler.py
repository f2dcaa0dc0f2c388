"""
Middleware aiogram: учёт событий, замер времени обработчиков и перехват
ошибок, которые не обработал диспетчер команд.
"""

import time
from typing import Callable, Dict, Any, Awaitable, NamedTuple, Optional
from aiogram import BaseMiddleware
from aiogram.types import TelegramObject, Message, CallbackQuery

from ..services.cards import COMMAND_FAILED_TEXT
from ..services.logger import get_logger, log_message, log_callback, log_error, log_timing

logger = get_logger('middleware')

Handler = Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]]


class EventInfo(NamedTuple):
    kind: str                   # message, callback или other
    user_id: Optional[int]
    chat_id: Optional[int]
    payload: str                # текст сообщения или данные кнопки


def describe(event: TelegramObject) -> EventInfo:
    user = getattr(event, 'from_user', None)
    user_id = user.id if user else None
    if isinstance(event, Message):
        return EventInfo('message', user_id, event.chat.id, event.text or 'non-text')
    if isinstance(event, CallbackQuery):
        chat_id = event.message.chat.id if event.message else None
        return EventInfo('callback', user_id, chat_id, event.data or 'no-data')
    return EventInfo('other', user_id, None, '')


def handler_name(handler: Handler) -> str:
    callback = getattr(handler, 'callback', handler)
    return getattr(callback, '__name__', 'unknown_handler')


class ErrorHandlerMiddleware(BaseMiddleware):
    """Последний рубеж: ошибка логируется, пользователю уходит общий текст."""

    def __init__(self):
        super().__init__()
        self.error_count = 0

    async def __call__(self, handler: Handler, event: TelegramObject, data: Dict[str, Any]) -> Any:
        info = describe(event)
        name = handler_name(handler)
        if info.kind == 'message':
            log_message(info.user_id or 0, info.chat_id or 0, info.payload, name)
        elif info.kind == 'callback':
            log_callback(info.user_id or 0, info.chat_id or 0, info.payload, name)

        started = time.time()
        try:
            result = await handler(event, data)
        except Exception as e:
            self.error_count += 1
            log_error(e, {
                'handler_name': name,
                'event_type': info.kind,
                'chat_id': info.chat_id,
                'payload': info.payload[:200],
                'duration_ms': (time.time() - started) * 1000,
                'error_count': self.error_count,
            }, info.user_id)
            await self._report(event)
            return None

        log_timing(name, (time.time() - started) * 1000, info.user_id)
        return result

    @staticmethod
    async def _report(event: TelegramObject) -> None:
        try:
            if isinstance(event, Message):
                await event.reply(COMMAND_FAILED_TEXT)
            elif isinstance(event, CallbackQuery):
                await event.answer(COMMAND_FAILED_TEXT, show_alert=True)
        except Exception as reply_error:
            logger.error(f"❌ Не удалось отправить сообщение об ошибке: {reply_error}")


class PerformanceMiddleware(BaseMiddleware):
    """Предупреждает о медленных обработчиках."""

    def __init__(self, slow_threshold_ms: float = 1000):
        super().__init__()
        self.slow_threshold_ms = slow_threshold_ms

    async def __call__(self, handler: Handler, event: TelegramObject, data: Dict[str, Any]) -> Any:
        started = time.time()
        try:
            return await handler(event, data)
        finally:
            elapsed_ms = (time.time() - started) * 1000
            if elapsed_ms > self.slow_threshold_ms:
                logger.warning(
                    f"🐌 Медленная операция: {handler_name(handler)} ({elapsed_ms:.2f}ms)",
                    extra={'duration': elapsed_ms, 'user_id': describe(event).user_id}
                )
