"""
Создание экземпляра бота, диспетчера и настройка middlewares.
"""

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.fsm.storage.memory import MemoryStorage
from aiogram.types import BotCommand

from .config import Settings
from .handlers import chat_events
from .middlewares.error_handler import ErrorHandlerMiddleware, PerformanceMiddleware
from .services.dispatcher import build_dispatcher
from .services.logger import get_logger
from .services.notify import Notifier
from .services.reminders import ReminderScheduler
from .services.storage import Storage

logger = get_logger('bot')

BOT_COMMANDS = [
    BotCommand(command="start", description="🚀 Начать работу с ботом"),
    BotCommand(command="menu", description="📋 Главное меню"),
    BotCommand(command="faq", description="❓ Как пользоваться ботом"),
]


def create_bot(settings: Settings) -> Bot:
    if not settings.bot_token:
        raise ValueError("BOT_TOKEN не найден в переменных окружения")
    return Bot(
        token=settings.bot_token,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML)
    )


def create_dispatcher(bot: Bot, settings: Settings, storage: Storage) -> Dispatcher:
    """
    Собирает диспетчер aiogram: роутер, middlewares и сервисы в workflow data.

    Обработчики получают CommandDispatcher через параметр commands.
    """
    dp = Dispatcher(storage=MemoryStorage())

    scheduler = ReminderScheduler()
    dp['scheduler'] = scheduler
    dp['commands'] = build_dispatcher(
        storage,
        Notifier(bot),
        default_utc_offset=settings.default_utc_offset,
        reminder_lead_minutes=settings.reminder_lead_minutes,
        scheduler=scheduler
    )

    dp.include_router(chat_events.router)

    dp.message.middleware(PerformanceMiddleware(slow_threshold_ms=500))
    dp.callback_query.middleware(PerformanceMiddleware(slow_threshold_ms=500))
    dp.message.middleware(ErrorHandlerMiddleware())
    dp.callback_query.middleware(ErrorHandlerMiddleware())
    logger.info("Handlers и middleware зарегистрированы")

    dp.startup.register(on_startup)
    dp.shutdown.register(on_shutdown)
    return dp


async def on_startup(bot: Bot):
    """Выполняется при запуске бота."""
    logger.info("🚀 Запуск бота...")
    try:
        me = await bot.get_me()
        logger.info(f"✅ Бот подключен: @{me.username} ({me.first_name})")
        await bot.set_my_commands(BOT_COMMANDS)
        logger.info("✅ Команды бота настроены")
    except Exception as e:
        logger.error(f"❌ Ошибка подключения бота: {e}")
        raise
    logger.info("🎉 Бот запущен и готов к работе!")


async def on_shutdown(scheduler: ReminderScheduler):
    """Выполняется при остановке бота."""
    scheduler.stop()
    logger.info("Бот остановлен")
