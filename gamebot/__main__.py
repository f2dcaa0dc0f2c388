"""
Точка входа для запуска бота: python -m gamebot
"""

import asyncio

from aiohttp import web
from aiogram import Bot, Dispatcher
from aiogram.webhook.aiohttp_server import SimpleRequestHandler, setup_application

from .bot import create_bot, create_dispatcher
from .config import Settings
from .services.logger import configure_logging, get_logger
from .services.storage import Storage
from .web.api import setup_api, setup_health

logger = get_logger('main')


async def serve(app: web.Application, port: int) -> web.AppRunner:
    runner = web.AppRunner(app)
    await runner.setup()
    await web.TCPSite(runner, host='0.0.0.0', port=port).start()
    logger.info(f"🌐 HTTP сервер запущен на порту {port}")
    return runner


async def webhook_main(bot: Bot, dp: Dispatcher, settings: Settings, storage: Storage):
    """Запуск бота через webhook: один сервер обслуживает webhook, API и /health."""
    if not settings.webhook_url:
        raise ValueError("WEBHOOK_URL не найден в переменных окружения при USE_WEBHOOK=true")

    app = web.Application()
    SimpleRequestHandler(dispatcher=dp, bot=bot).register(app, path="/webhook")
    if settings.api_enabled:
        setup_api(app, storage)
    else:
        setup_health(app)
    setup_application(app, dp, bot=bot)

    await bot.set_webhook(settings.webhook_url)
    runner = await serve(app, settings.port)
    try:
        await asyncio.Event().wait()
    finally:
        await runner.cleanup()


async def polling_main(bot: Bot, dp: Dispatcher, settings: Settings, storage: Storage):
    """Запуск бота через long polling; API поднимается отдельным сервером."""
    logger.info("📡 Запуск в режиме long polling...")

    runner = None
    if settings.api_enabled:
        app = web.Application()
        setup_api(app, storage)
        runner = await serve(app, settings.port)

    try:
        webhook_info = await bot.get_webhook_info()
        if webhook_info.url:
            logger.info(f"Очищаем webhook: {webhook_info.url}")
            await bot.delete_webhook(drop_pending_updates=True)

        await dp.start_polling(bot)
    finally:
        if runner:
            await runner.cleanup()


async def main():
    """Главная функция запуска."""
    settings = Settings.from_env()
    configure_logging(settings.logs_dir, settings.log_level)
    logger.info(f"🚀 Запуск бота, режим: {'webhook' if settings.use_webhook else 'polling'}")

    storage = Storage(settings.storage_path)
    bot = create_bot(settings)
    dp = create_dispatcher(bot, settings, storage)

    try:
        if settings.use_webhook:
            await webhook_main(bot, dp, settings, storage)
        else:
            await polling_main(bot, dp, settings, storage)
    finally:
        await bot.session.close()
        logger.info("🔴 Бот остановлен")


def run():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("🔴 Получен сигнал прерывания")


if __name__ == '__main__':
    run()
