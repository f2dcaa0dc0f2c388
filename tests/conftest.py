"""
Общие фикстуры тестов: хранилище во временном файле и записывающий Notifier.
"""

import itertools

import pytest

from gamebot.services.dispatcher import build_dispatcher
from gamebot.services.reminders import ReminderScheduler
from gamebot.services.sessions import SessionStore
from gamebot.services.storage import Storage
from gamebot.types import ChatEvent, Player


class FakeNotifier:
    """Запоминает все обращения к Telegram вместо отправки."""

    def __init__(self):
        self.sent = []
        self.texts = []
        self.edited = []
        self.deleted = []
        # (chat_id, user_id) -> статус участника, по умолчанию 'member'
        self.statuses = {}
        self._message_ids = itertools.count(1000)

    async def send_message(self, chat_id, text, keyboard=None):
        self.sent.append((chat_id, text, keyboard))
        self.texts.append(text)
        return next(self._message_ids)

    async def edit_message(self, chat_id, message_id, text, keyboard=None):
        self.edited.append((chat_id, message_id, text, keyboard))
        self.texts.append(text)

    async def delete_message(self, chat_id, message_id):
        self.deleted.append((chat_id, message_id))

    async def get_chat_member_status(self, chat_id, user_id):
        return self.statuses.get((chat_id, user_id), 'member')

    @property
    def last_text(self):
        """Текст последнего отправленного или отредактированного сообщения."""
        return self.texts[-1] if self.texts else None

    @staticmethod
    def keyboard_data(keyboard):
        """Все callback_data клавиатуры по порядку."""
        if keyboard is None:
            return []
        return [button.callback_data for row in keyboard.inline_keyboard for button in row]


@pytest.fixture
def storage(tmp_path):
    return Storage(str(tmp_path / 'data.json'))


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def sessions():
    return SessionStore()


@pytest.fixture
def scheduler():
    return ReminderScheduler()


@pytest.fixture
def commands(storage, notifier, sessions, scheduler):
    return build_dispatcher(storage, notifier, scheduler=scheduler, sessions=sessions)


@pytest.fixture
def make_player(storage):
    """Регистрирует игрока в хранилище и возвращает его запись."""
    def factory(telegram_id, nickname=None, utc_offset=None, name='Иван', surname='Петров'):
        player = Player(
            telegram_id=telegram_id,
            name=name,
            surname=surname,
            nickname=nickname,
            utc_offset=utc_offset,
            language_code='ru',
        )
        player['id'] = storage.add('players', player)
        return player
    return factory


@pytest.fixture
def private_event():
    """Событие из личного чата пользователя (chat_id совпадает с user_id)."""
    def factory(user_id, text='', is_callback=False, message_id=1):
        return ChatEvent(
            chat_id=user_id,
            user_id=user_id,
            message_id=message_id,
            chat_type='private',
            text=text,
            username=f'user{user_id}',
            first_name='Иван',
            is_callback=is_callback,
        )
    return factory


@pytest.fixture
def group_event():
    """Событие из группового чата."""
    def factory(chat_id, user_id, text='', is_callback=False, message_id=1):
        return ChatEvent(
            chat_id=chat_id,
            user_id=user_id,
            message_id=message_id,
            chat_type='group',
            text=text,
            username=f'user{user_id}',
            first_name='Иван',
            is_callback=is_callback,
        )
    return factory
