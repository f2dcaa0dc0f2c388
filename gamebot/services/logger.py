"""
Централизованная система логирования и счетчики обработки событий бота.

Логи пишутся в консоль и в каталог logs:
    bot_all.log           - все сообщения в текстовом виде
    bot_structured.jsonl  - INFO и выше, по JSON-объекту в строке
    bot_errors.log        - только ошибки, JSON
"""

import json
import logging
import logging.handlers
import sys
import threading
import time
import traceback
from collections import defaultdict, deque
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Deque, Dict, Optional, Set

# Совпадает с именем пакета, чтобы logging.getLogger(__name__) попадал в те же обработчики
ROOT_LOGGER_NAME = 'gamebot'

TEXT_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)-28s | %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Сколько последних замеров времени хранить на обработчик
TIMINGS_WINDOW = 100
SLOW_HANDLER_MS = 1000


class JsonFormatter(logging.Formatter):
    """Запись лога одной строкой JSON с контекстом события."""

    CONTEXT_FIELDS = (
        'user_id', 'chat_id', 'handler_name', 'duration', 'error_type', 'stack_trace', 'callback_data'
    )

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'where': f'{record.module}.{record.funcName}:{record.lineno}',
        }
        payload.update({
            field: getattr(record, field) for field in self.CONTEXT_FIELDS if hasattr(record, field)
        })
        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            payload['exception'] = {
                'type': exc_type.__name__,
                'message': str(exc_value),
                'traceback': traceback.format_exception(*record.exc_info),
            }
        return json.dumps(payload, ensure_ascii=False, default=str)


def _rotating_handler(path: Path, level: int, formatter: logging.Formatter, keep_days: int) -> logging.Handler:
    handler = logging.handlers.TimedRotatingFileHandler(
        path, when='midnight', interval=1, backupCount=keep_days, encoding='utf-8'
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


class BotLogger:
    """Настройка логирования и счетчики для /health."""

    def __init__(self):
        self.main_logger = logging.getLogger(ROOT_LOGGER_NAME)
        self._lock = threading.Lock()
        self._started_at = time.time()
        self._counters: Dict[str, int] = defaultdict(int)
        self._active_users: Set[int] = set()
        self._timings: Dict[str, Deque[float]] = defaultdict(lambda: deque(maxlen=TIMINGS_WINDOW))
        self._last_activity = self._started_at

    def configure(self, logs_dir: str = "logs", level: str = "INFO") -> None:
        """Устанавливает обработчики логов. Повторный вызов заменяет прежние."""
        logs_path = Path(logs_dir)
        logs_path.mkdir(parents=True, exist_ok=True)

        text_formatter = logging.Formatter(TEXT_FORMAT, datefmt=DATE_FORMAT)
        console = logging.StreamHandler(sys.stdout)
        console.setLevel(getattr(logging, level.upper(), logging.INFO))
        console.setFormatter(text_formatter)

        self.main_logger.setLevel(logging.DEBUG)
        self.main_logger.handlers.clear()
        for handler in (
            console,
            _rotating_handler(logs_path / "bot_all.log", logging.DEBUG, text_formatter, keep_days=7),
            _rotating_handler(logs_path / "bot_structured.jsonl", logging.INFO, JsonFormatter(), keep_days=7),
            _rotating_handler(logs_path / "bot_errors.log", logging.ERROR, JsonFormatter(), keep_days=30),
        ):
            self.main_logger.addHandler(handler)

        # Библиотеки слишком подробны на INFO
        for noisy in ('aiogram', 'aiohttp'):
            logging.getLogger(noisy).setLevel(logging.WARNING)

        self.main_logger.info(f"🔧 Логирование настроено, каталог: {logs_path}")

    def get_logger(self, name: str) -> logging.Logger:
        return logging.getLogger(f'{ROOT_LOGGER_NAME}.{name}')

    def _touch(self, counter: str, user_id: int) -> None:
        with self._lock:
            self._counters[counter] += 1
            self._active_users.add(user_id)
            self._last_activity = time.time()

    def log_message_processed(self, user_id: int, chat_id: int, message_text: str, handler_name: str = None):
        self._touch('messages_processed', user_id)
        preview = message_text if len(message_text) <= 50 else message_text[:50] + '...'
        self.get_logger('messages').info(
            f"📩 Сообщение: {preview}",
            extra={'user_id': user_id, 'chat_id': chat_id, 'handler_name': handler_name}
        )

    def log_callback_processed(self, user_id: int, chat_id: int, callback_data: str, handler_name: str = None):
        self._touch('callbacks_processed', user_id)
        self.get_logger('callbacks').info(
            f"🔘 Callback: {callback_data}",
            extra={'user_id': user_id, 'chat_id': chat_id, 'handler_name': handler_name,
                   'callback_data': callback_data}
        )

    def log_error(self, error: Exception, context: Dict[str, Any] = None, user_id: int = None):
        """Логирует ошибку с контекстом и трассировкой."""
        with self._lock:
            self._counters['errors_count'] += 1

        exc_info = (type(error), error, error.__traceback__)
        extra = dict(context or {})
        extra['error_type'] = type(error).__name__
        extra['stack_trace'] = ''.join(traceback.format_exception(*exc_info))
        if user_id:
            extra['user_id'] = user_id

        self.get_logger('errors').error(f"❌ Ошибка: {error}", extra=extra, exc_info=exc_info)

    def log_handler_timing(self, handler_name: str, duration_ms: float, user_id: int = None):
        with self._lock:
            self._timings[handler_name].append(duration_ms)

        if duration_ms > SLOW_HANDLER_MS:
            self.get_logger('performance').warning(
                f"⏱️ Медленный обработчик: {handler_name} ({duration_ms:.2f}ms)",
                extra={'handler_name': handler_name, 'duration': duration_ms, 'user_id': user_id}
            )

    def get_metrics(self) -> Dict[str, Any]:
        """Снимок счетчиков: сообщения, callback-и, ошибки, время обработчиков."""
        with self._lock:
            performance = {
                name: {
                    'avg_ms': sum(timings) / len(timings),
                    'max_ms': max(timings),
                    'count': len(timings),
                }
                for name, timings in self._timings.items() if timings
            }
            return {
                'messages_processed': self._counters['messages_processed'],
                'callbacks_processed': self._counters['callbacks_processed'],
                'errors_count': self._counters['errors_count'],
                'active_users_count': len(self._active_users),
                'last_activity': self._last_activity,
                'handlers_performance': performance,
                'uptime_seconds': time.time() - self._started_at,
            }


# Глобальный экземпляр логгера
bot_logger = BotLogger()


def configure_logging(logs_dir: str = "logs", level: str = "INFO") -> None:
    bot_logger.configure(logs_dir, level)


def get_logger(name: str) -> logging.Logger:
    """Возвращает логгер для указанного модуля."""
    return bot_logger.get_logger(name)


def log_message(user_id: int, chat_id: int, message_text: str, handler_name: str = None):
    bot_logger.log_message_processed(user_id, chat_id, message_text, handler_name)


def log_callback(user_id: int, chat_id: int, callback_data: str, handler_name: str = None):
    bot_logger.log_callback_processed(user_id, chat_id, callback_data, handler_name)


def log_error(error: Exception, context: Optional[Dict[str, Any]] = None, user_id: int = None):
    bot_logger.log_error(error, context, user_id)


def log_timing(handler_name: str, duration_ms: float, user_id: int = None):
    bot_logger.log_handler_timing(handler_name, duration_ms, user_id)


def get_metrics() -> Dict[str, Any]:
    return bot_logger.get_metrics()
