"""
Хранилище сессий настройки игр: какой игрой сейчас занимается пользователь.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from threading import Lock
from typing import Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


class ConfigurationStage(Enum):
    """Этап настройки игры."""
    AWAITING_SPORT = 1
    AWAITING_PRIVACY = 2
    AWAITING_PARAMS = 3


@dataclass
class ConfigurationSession:
    game_id: str
    stage: ConfigurationStage = ConfigurationStage.AWAITING_SPORT


class SessionStore:
    """
    Не более одной сессии настройки на пользователя Telegram.

    Все операции выполняются под одной блокировкой и не ждут ничего,
    кроме нее самой. Сессии живут только в памяти процесса.
    """

    def __init__(self):
        self._sessions: Dict[int, ConfigurationSession] = {}
        self._lock = Lock()

    def begin(self, user_id: int, game_id: str) -> None:
        """Открывает (или перезаписывает) сессию пользователя."""
        with self._lock:
            self._sessions[user_id] = ConfigurationSession(game_id)
        logger.debug(f"Сессия пользователя {user_id} открыта для игры {game_id}")

    def open_or_get(self, user_id: int, create: Callable[[], str]) -> Tuple[str, bool]:
        """
        Возвращает игру из открытой сессии или создает новую через create().

        Returns:
            Кортеж (id игры, создана ли новая игра)
        """
        with self._lock:
            session = self._sessions.get(user_id)
            if session:
                return session.game_id, False
            game_id = create()
            self._sessions[user_id] = ConfigurationSession(game_id)
        logger.debug(f"Сессия пользователя {user_id} открыта для новой игры {game_id}")
        return game_id, True

    def current(self, user_id: int) -> Optional[str]:
        """Возвращает id игры, которую настраивает пользователь."""
        with self._lock:
            session = self._sessions.get(user_id)
            return session.game_id if session else None

    def get(self, user_id: int) -> Optional[ConfigurationSession]:
        with self._lock:
            session = self._sessions.get(user_id)
            return ConfigurationSession(session.game_id, session.stage) if session else None

    def advance(self, user_id: int, stage: ConfigurationStage) -> bool:
        """Переводит сессию на этап stage. False, если сессии нет."""
        with self._lock:
            session = self._sessions.get(user_id)
            if not session:
                return False
            session.stage = stage
            return True

    def end(self, user_id: int) -> bool:
        """Закрывает сессию. Закрытие несуществующей сессии - не ошибка."""
        with self._lock:
            return self._sessions.pop(user_id, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
