"""
Словарь команд бота и разбор данных кнопок.

Данные кнопки имеют вид "<команда> <параметры>", параметры разделяются "|".
"""

from enum import Enum
from typing import List, Optional, Tuple

from ..errors import BadData

PARAMS_SEPARATOR = '|'


class CallbackCommand(Enum):
    """Команды обратного вызова (inline-кнопки)."""
    SIGN_IN = 'sign-in'
    MAIN_MENU = 'main-menu'
    FINISH = 'finish'
    TIME_ZONE = 'time-zone'
    SET_TIME_ZONE = 'set-time-zone'
    CHOOSE_KIND_OF_SPORT = 'choose-kind-of-sport'
    CHOOSE_GAME_PRIVACY = 'choose-game-privacy'
    NEW_GAME = 'new-game'
    JOIN_FIRST = 'join-first'
    JOIN_SECOND = 'join-second'
    DECLINE = 'decline'
    GET_GAME_CODE = 'get-game-code'
    FIX_GAME = 'fix-game'
    DELETE_GAME = 'delete-game'
    MY_GAMES = 'my-games'
    TO_FIRST_GAME = 'to-first-game'
    PREVIOUS_GAME = 'previous-game'
    NEXT_GAME = 'next-game'
    TO_LAST_GAME = 'to-last-game'


class MainCommand(Enum):
    """Текстовые команды чата."""
    START = '/start'
    MENU = '/menu'
    FAQ = '/faq'
    GUIDE = '/guide'


def build_callback_data(command: CallbackCommand, *params) -> str:
    """Собирает данные кнопки из команды и параметров."""
    values = [str(param) for param in params if param is not None]
    if not values:
        return command.value
    return f"{command.value} {PARAMS_SEPARATOR.join(values)}"


def parse_callback_data(data: Optional[str]) -> Tuple[CallbackCommand, List[str]]:
    """
    Разбирает данные кнопки.

    Returns:
        Кортеж (команда, список параметров)

    Raises:
        BadData: если команда неизвестна
    """
    token, _, raw_params = (data or '').strip().partition(' ')
    try:
        command = CallbackCommand(token.lower())
    except ValueError:
        raise BadData()
    raw_params = raw_params.strip()
    params = [param.strip() for param in raw_params.split(PARAMS_SEPARATOR)] if raw_params else []
    return command, params


def match_main_command(text: Optional[str]) -> Optional[MainCommand]:
    """Определяет текстовую команду по префиксу без учета регистра."""
    lowered = (text or '').strip().lower()
    for command in MainCommand:
        if lowered.startswith(command.value):
            return command
    return None


def param(params: List[str], index: int, required: bool = True) -> Optional[str]:
    """Возвращает параметр по номеру; BadData, если обязательного параметра нет."""
    if index < len(params) and params[index]:
        return params[index]
    if required:
        raise BadData()
    return None


def int_param(params: List[str], index: int) -> int:
    try:
        return int(param(params, index))
    except ValueError:
        raise BadData()


def bool_param(params: List[str], index: int) -> bool:
    value = param(params, index).lower()
    if value not in ('true', 'false'):
        raise BadData()
    return value == 'true'
