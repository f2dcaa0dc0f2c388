"""
Тесты настроек и преобразования объектов aiogram в события чата.
"""

from datetime import datetime

import pytest
from aiogram.types import CallbackQuery, Chat, Message, User

from gamebot.config import Settings
from gamebot.handlers.chat_events import event_from_callback, event_from_message

ENV_NAMES = (
    'BOT_TOKEN', 'STORAGE_PATH', 'USE_WEBHOOK', 'WEBHOOK_URL', 'PORT', 'API_ENABLED',
    'LOGS_DIR', 'LOG_LEVEL', 'DEFAULT_UTC_OFFSET', 'REMINDER_LEAD_MINUTES',
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestSettings:
    """Тесты чтения настроек из окружения."""

    def test_defaults(self, clean_env):
        settings = Settings.from_env()
        assert settings.bot_token is None
        assert settings.storage_path == 'data.json'
        assert settings.use_webhook is False
        assert settings.port == 3000
        assert settings.api_enabled is True
        assert settings.default_utc_offset == 3
        assert settings.reminder_lead_minutes == 60

    def test_overrides(self, clean_env):
        clean_env.setenv('BOT_TOKEN', '123:abc')
        clean_env.setenv('USE_WEBHOOK', 'TRUE')
        clean_env.setenv('PORT', '8080')
        clean_env.setenv('API_ENABLED', 'false')
        clean_env.setenv('REMINDER_LEAD_MINUTES', '30')

        settings = Settings.from_env()
        assert settings.bot_token == '123:abc'
        assert settings.use_webhook is True
        assert settings.port == 8080
        assert settings.api_enabled is False
        assert settings.reminder_lead_minutes == 30

    def test_invalid_integer(self, clean_env):
        clean_env.setenv('PORT', 'восемь')
        with pytest.raises(ValueError):
            Settings.from_env()


def make_message(chat_type='private', chat_id=5, text='/start'):
    return Message(
        message_id=10,
        date=datetime(2024, 5, 1, 12, 0),
        chat=Chat(id=chat_id, type=chat_type),
        from_user=User(id=5, is_bot=False, first_name='Иван', last_name='Петров',
                       username='ivan', language_code='ru'),
        text=text,
    )


class TestChatEvents:
    """Тесты преобразования сообщений и нажатий кнопок."""

    def test_event_from_message(self):
        event = event_from_message(make_message())

        assert (event.chat_id, event.user_id, event.message_id) == (5, 5, 10)
        assert event.text == '/start'
        assert event.is_private is True
        assert event.is_callback is False
        assert (event.username, event.first_name, event.last_name) == ('ivan', 'Иван', 'Петров')

    def test_event_from_group_message(self):
        event = event_from_message(make_message(chat_type='group', chat_id=-1001))
        assert event.chat_id == -1001
        assert event.is_private is False

    def test_event_from_callback(self):
        callback = CallbackQuery(
            id='1',
            from_user=User(id=7, is_bot=False, first_name='Пётр'),
            chat_instance='instance',
            message=make_message(chat_type='group', chat_id=-1001),
            data='join-first abc',
        )

        event = event_from_callback(callback)
        assert event.user_id == 7
        assert event.chat_id == -1001
        assert event.message_id == 10
        assert event.text == 'join-first abc'
        assert event.is_callback is True
