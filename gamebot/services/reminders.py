"""
Планировщик напоминаний о начале игр.
"""

import asyncio
import logging
from threading import Lock
from typing import Awaitable, Callable, Dict

logger = logging.getLogger(__name__)

ReminderCallback = Callable[[str], Awaitable[None]]


class ReminderScheduler:
    """Одноразовые отложенные задачи, по одной на игру."""

    def __init__(self):
        self._tasks: Dict[str, asyncio.Task] = {}
        self._lock = Lock()

    def arm(self, game_id: str, delay_seconds: float, callback: ReminderCallback) -> bool:
        """
        Планирует callback(game_id) через delay_seconds секунд.

        Returns:
            False, если для игры напоминание уже запланировано
        """
        with self._lock:
            if game_id in self._tasks:
                return False
            task = asyncio.get_running_loop().create_task(
                self._run(game_id, max(delay_seconds, 0), callback)
            )
            self._tasks[game_id] = task
        logger.info(f"⏰ Напоминание для игры {game_id} запланировано через {delay_seconds:.0f}с")
        return True

    def cancel(self, game_id: str) -> bool:
        """Отменяет напоминание. Возвращает True, если оно было запланировано."""
        with self._lock:
            task = self._tasks.get(game_id)
            if task is None:
                return False
            task.cancel()
            del self._tasks[game_id]
        logger.info(f"Напоминание для игры {game_id} отменено")
        return True

    def is_armed(self, game_id: str) -> bool:
        with self._lock:
            return game_id in self._tasks

    def stop(self) -> None:
        """Отменяет все запланированные напоминания."""
        with self._lock:
            tasks = list(self._tasks.values())
            self._tasks.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            logger.info(f"Планировщик напоминаний остановлен, отменено задач: {len(tasks)}")

    def __len__(self) -> int:
        with self._lock:
            return len(self._tasks)

    async def _run(self, game_id: str, delay_seconds: float, callback: ReminderCallback) -> None:
        try:
            await asyncio.sleep(delay_seconds)
        except asyncio.CancelledError:
            return

        # Запись удаляется до вызова, чтобы cancel() из callback не отменил сам себя
        with self._lock:
            if self._tasks.get(game_id) is asyncio.current_task():
                del self._tasks[game_id]

        try:
            await callback(game_id)
        except Exception as e:
            logger.error(f"Ошибка при отправке напоминания для игры {game_id}: {e}", exc_info=True)
