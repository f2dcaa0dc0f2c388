"""
Настройки бота из переменных окружения (.env подхватывается автоматически).
"""

import os
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv

# Загружаем переменные окружения
load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() == 'true'


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} должен быть целым числом, получено: {value!r}")


@dataclass
class Settings:
    bot_token: Optional[str] = None
    storage_path: str = 'data.json'
    use_webhook: bool = False
    webhook_url: Optional[str] = None
    port: int = 3000
    api_enabled: bool = True
    logs_dir: str = 'logs'
    log_level: str = 'INFO'
    default_utc_offset: int = 3
    reminder_lead_minutes: int = 60

    @classmethod
    def from_env(cls) -> 'Settings':
        return cls(
            bot_token=os.getenv('BOT_TOKEN'),
            storage_path=os.getenv('STORAGE_PATH', 'data.json'),
            use_webhook=_env_bool('USE_WEBHOOK', 'false'),
            webhook_url=os.getenv('WEBHOOK_URL'),
            port=_env_int('PORT', 3000),
            api_enabled=_env_bool('API_ENABLED', 'true'),
            logs_dir=os.getenv('LOGS_DIR', 'logs'),
            log_level=os.getenv('LOG_LEVEL', 'INFO'),
            default_utc_offset=_env_int('DEFAULT_UTC_OFFSET', 3),
            reminder_lead_minutes=_env_int('REMINDER_LEAD_MINUTES', 60),
        )
