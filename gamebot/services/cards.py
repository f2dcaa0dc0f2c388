"""
Тексты сообщений и клавиатуры бота.
"""

from typing import Dict, List, Optional, Tuple
from aiogram import html
from aiogram.types import InlineKeyboardMarkup

from ..types import Game, Team, Player, KindOfSport, TimeZoneOffset, display_name
from .commands import CallbackCommand
from .navigation import nav
from .util import format_start_time

# Константы для текстов
SIGN_IN_PROMPT_TEXT = "Для начала пользования ботом необходимо зарегистрироваться"
ALREADY_REGISTERED_TEXT = "{name}, Вы уже зарегистрированы"
SIGNED_IN_TEXT = "{name}, Вы успешно зарегистрированы"
REGISTER_IN_PRIVATE_TEXT = ("Перед началом пользования ботом необходимо зарегистрироваться. "
                            "Для регистрации отправьте сообщение /start в личный чат с ботом")
MENU_TEXT = "Выберите действие:"
CHOOSE_SPORT_TEXT = "Выберите вид спорта:"
CHOOSE_PRIVACY_TEXT = "Выберите уровень приватности игры:"
GAME_PARAMS_PROMPT_TEXT = """Введите название, максимальное количество игроков в команде и дату начала игры в соответствии с приведённым ниже примером:
Название игры
5
20:00 06.10.2017"""
GAME_CODE_TEXT = ("Команда для добавления игры в чат. Чтобы добавить игру в чат, "
                  "скопируйте сообщение ниже и отправьте в целевой чат.")
NO_GAMES_TEXT = "У Вас нет незавершённых игр"
GAME_DELETED_TEXT = "Игра удалена"
CHOOSE_TIME_ZONE_TEXT = "Выберите часовой пояс:"
TIME_ZONE_SET_TEXT = "Часовой пояс установлен: {zone}"
REMINDER_TEXT = "⏰ Игра «{name}» начнётся через час!\n{mentions}"
COMMAND_FAILED_TEXT = "Не удалось выполнить команду"

FAQ_TEXT = """Как пользоваться ботом:

1. Зарегистрируйтесь командой /start в личном чате с ботом.
2. Откройте меню командой /menu и нажмите «Создать игру».
3. Выберите вид спорта и приватность игры.
4. Отправьте название, количество игроков в команде и время начала, каждое с новой строки:
Название игры
5
20:00 06.10.2017
5. Скопируйте полученный код игры (/...) и отправьте его в чат, где собираются игроки.
6. Участники выбирают команду кнопками «За А» / «За Б» или отказываются от участия.

Частную игру можно добавить только в один чат. Когда обе команды частной игры
заполнены, бот напомнит о начале игры за час."""

DEFAULT_TEAM_NAMES = {'first': "А", 'second': "Б"}
PRIVACY_NAMES = {True: "Общедоступная", False: "Частная"}


def team_name(team: Optional[Team], side: str) -> str:
    """Название команды или "А"/"Б", если оно не задано."""
    if team and team.get('name'):
        return team['name']
    return DEFAULT_TEAM_NAMES[side]


def is_team_full(team: Optional[Team], players_per_team: int) -> bool:
    return bool(team) and players_per_team > 0 and len(team['members']) >= players_per_team


def sign_in_keyboard() -> InlineKeyboardMarkup:
    return nav.create_simple_keyboard([("Зарегистрироваться", CallbackCommand.SIGN_IN)])


def main_menu_keyboard() -> InlineKeyboardMarkup:
    return nav.create_simple_keyboard([
        ("Создать игру", CallbackCommand.CHOOSE_KIND_OF_SPORT),
        ("Мои игры", CallbackCommand.MY_GAMES),
        ("Часовой пояс", CallbackCommand.TIME_ZONE),
    ])


def sport_menu_keyboard(game_id: str) -> InlineKeyboardMarkup:
    """Меню выбора вида спорта. Кнопка 'Отмена' возвращает в главное меню."""
    pairs = [
        (sport.description, CallbackCommand.CHOOSE_GAME_PRIVACY, sport.name, game_id)
        for sport in KindOfSport if sport is not KindOfSport.Default
    ]
    return nav.create_simple_keyboard(pairs, back_text="Отмена")


def privacy_menu_keyboard(game_id: str) -> InlineKeyboardMarkup:
    return nav.create_keyboard([
        [
            nav.button(PRIVACY_NAMES[False], CallbackCommand.NEW_GAME, 'false', game_id),
            nav.button(PRIVACY_NAMES[True], CallbackCommand.NEW_GAME, 'true', game_id),
        ]
    ], back_text="Отмена")


def finish_keyboard() -> InlineKeyboardMarkup:
    return nav.create_simple_keyboard([("Завершить создание", CallbackCommand.FINISH)])


def time_zone_keyboard() -> InlineKeyboardMarkup:
    pairs = [(zone.description, CallbackCommand.SET_TIME_ZONE, zone.value) for zone in TimeZoneOffset]
    return nav.create_simple_keyboard(pairs, back_text="🔙 Назад")


def game_info_text(game: Game) -> str:
    """Основные параметры игры."""
    sport = KindOfSport[game.get('kind_of_sport') or KindOfSport.Default.name]
    return (
        f"Название: {html.quote(game.get('name') or 'не задано')}\n"
        f"Вид спорта: {sport.description}\n"
        f"Доступность: {PRIVACY_NAMES[bool(game.get('is_public'))]}\n"
        f"Игроков в команде: {game.get('players_per_team') or 0}\n"
        f"Время начала: {format_start_time(game.get('start_time'))}"
    )


def mentions(members: List[int], players: Dict[int, Player]) -> str:
    """Список участников через запятую. Имена экранированы для HTML."""
    return ", ".join(
        html.quote(display_name(players[tg_id])) if tg_id in players else f"ID:{tg_id}"
        for tg_id in members
    )


def game_status_card(
    game: Game,
    first_team: Optional[Team],
    second_team: Optional[Team],
    players: Dict[int, Player]
) -> Tuple[str, InlineKeyboardMarkup]:
    """
    Сообщение со статусом игры в чате и кнопками выбора команды.

    Кнопка присоединения показывается только для незаполненных команд,
    кнопка отказа - всегда.
    """
    first_name = team_name(first_team, 'first')
    second_name = team_name(second_team, 'second')
    lines = [game_info_text(game)]
    for name, team in ((first_name, first_team), (second_name, second_team)):
        lines.append(f"Команда {html.quote(name)}:")
        if team and team['members']:
            lines.append(mentions(team['members'], players))

    capacity = game.get('players_per_team') or 0
    join_buttons = []
    if not is_team_full(first_team, capacity):
        join_buttons.append(nav.button(f"За {first_name}", CallbackCommand.JOIN_FIRST, game['id']))
    if not is_team_full(second_team, capacity):
        join_buttons.append(nav.button(f"За {second_name}", CallbackCommand.JOIN_SECOND, game['id']))

    keyboard = nav.create_keyboard([
        join_buttons,
        [nav.button("Отказаться", CallbackCommand.DECLINE, game['id'])],
    ])
    return "\n".join(lines), keyboard


def game_browser_card(game: Game, number: int, has_previous: bool, has_next: bool) -> Tuple[str, InlineKeyboardMarkup]:
    """Карточка игры в списке 'Мои игры' с навигацией."""
    navigation = []
    if has_previous:
        navigation.append(nav.button("<<", CallbackCommand.TO_FIRST_GAME))
        navigation.append(nav.button("<", CallbackCommand.PREVIOUS_GAME, number - 1))
    if has_next:
        navigation.append(nav.button(">", CallbackCommand.NEXT_GAME, number + 1))
        navigation.append(nav.button(">>", CallbackCommand.TO_LAST_GAME))

    keyboard = nav.create_keyboard([
        [nav.button("Получить код", CallbackCommand.GET_GAME_CODE, game['id'])],
        [nav.button("Редактировать", CallbackCommand.FIX_GAME, game['id'])],
        [nav.button("Удалить", CallbackCommand.DELETE_GAME, game['id'])],
        navigation,
    ], back_text="🔙 Назад")
    return f"{number}.\n{game_info_text(game)}", keyboard


def game_code(game_id: str) -> str:
    return f"/{game_id}"
