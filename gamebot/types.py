"""
Модели данных бота для организации игр.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TypedDict, List, Optional, Generic, TypeVar


class KindOfSport(Enum):
    """Вид спорта."""
    Default = 0
    Football = 1
    Futsal = 2

    @property
    def description(self) -> str:
        return SPORT_DESCRIPTIONS[self]


SPORT_DESCRIPTIONS = {
    KindOfSport.Default: "Не указан",
    KindOfSport.Football: "Футбол",
    KindOfSport.Futsal: "Футзал",
}


class TimeZoneOffset(Enum):
    """Часовые пояса, доступные в меню."""
    Kaliningrad = 2
    Moscow = 3
    Yekaterinburg = 5

    @property
    def description(self) -> str:
        return TIME_ZONE_DESCRIPTIONS[self]


TIME_ZONE_DESCRIPTIONS = {
    TimeZoneOffset.Kaliningrad: "+2 Калининград",
    TimeZoneOffset.Moscow: "+3 Москва",
    TimeZoneOffset.Yekaterinburg: "+5 Екатеринбург, Уфа",
}


class TeamSide(Enum):
    """Сторона игры, к которой присоединяется игрок."""
    FIRST = 'first'
    SECOND = 'second'

    @property
    def other(self) -> 'TeamSide':
        return TeamSide.SECOND if self is TeamSide.FIRST else TeamSide.FIRST


class Player(TypedDict, total=False):
    """Модель игрока. Равенство игроков определяется по telegram_id."""
    id: str
    telegram_id: int
    name: Optional[str]
    surname: Optional[str]
    nickname: Optional[str]
    utc_offset: Optional[int]   # часовой пояс, целые часы
    language_code: Optional[str]


class Game(TypedDict, total=False):
    """Модель игры."""
    id: str
    creator_id: str             # id игрока-создателя в хранилище
    kind_of_sport: str          # имя KindOfSport
    name: Optional[str]
    is_public: bool
    chat_id: int                # 0 - игра не привязана к чату
    start_time: Optional[str]   # наивное ISO-время в часовом поясе создателя
    players_per_team: int       # 0 - размер команд не задан
    first_team_id: Optional[str]
    second_team_id: Optional[str]


class Team(TypedDict):
    """Модель команды. members - telegram id без повторов."""
    id: str
    name: str
    members: List[int]


T = TypeVar('T')


@dataclass
class PagedList(Generic[T]):
    """Постраничная выборка элементов."""
    items: List[T]
    total_items_count: int
    page: int
    page_size: int
    pages_count: int
    has_next: bool
    has_previous: bool


@dataclass
class ChatEvent:
    """Входящее событие чата: текстовое сообщение или нажатие кнопки."""
    chat_id: int
    user_id: int
    message_id: int
    chat_type: str = 'private'
    text: str = ''
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    language_code: Optional[str] = None
    is_callback: bool = False

    @property
    def is_private(self) -> bool:
        return self.chat_type == 'private'


def new_game(creator_id: str) -> Game:
    """Создает запись новой игры со значениями по умолчанию."""
    return Game(
        creator_id=creator_id,
        kind_of_sport=KindOfSport.Default.name,
        name=None,
        is_public=False,
        chat_id=0,
        start_time=None,
        players_per_team=0,
        first_team_id=None,
        second_team_id=None,
    )


def display_name(player: Player) -> str:
    """Возвращает ссылку на игрока (@nickname) или его имя и фамилию."""
    if player.get('nickname'):
        return f"@{player['nickname']}"
    full_name = f"{player.get('name') or ''} {player.get('surname') or ''}".strip()
    return full_name or f"ID:{player.get('telegram_id')}"
