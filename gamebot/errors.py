"""
Ошибки обработки команд бота. Текст ошибки показывается пользователю.
"""


class CommandProcessingError(Exception):
    """Ошибка при обработке команды."""

    message = "Ошибка обработки команды"

    def __init__(self, message: str = None):
        super().__init__(message or self.message)

    @property
    def text(self) -> str:
        return str(self)


class BadData(CommandProcessingError):
    message = "Некорректные данные"


class BadGameId(CommandProcessingError):
    message = "Некорректный идентификатор игры"


class GameNotExist(CommandProcessingError):
    message = "Игра не существует"


class NotCreatorTryDelete(CommandProcessingError):
    message = "Только создатель игры может удалить игру"


class NotCreatorTryEdit(CommandProcessingError):
    message = "Только создатель игры может редактировать игру"


class PrivateGameAlreadyBoundElsewhere(CommandProcessingError):
    message = "Частная игра уже добавлена в другой чат"


class SessionNotActive(CommandProcessingError):
    message = "Нет игры в процессе настройки. Откройте меню командой /menu"


class GameNotConfigured(CommandProcessingError):
    message = "Игра ещё не настроена: не задано количество игроков в команде"


class PlayerNotRegistered(CommandProcessingError):
    message = ("Перед началом пользования ботом необходимо зарегистрироваться. "
               "Для регистрации отправьте сообщение /start в личный чат с ботом")
