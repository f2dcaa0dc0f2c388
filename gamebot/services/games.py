"""
Список игр игрока: просмотр, код для добавления в чат, редактирование, удаление.
"""

import logging

from ..errors import BadGameId, GameNotExist, NotCreatorTryDelete
from ..types import ChatEvent, Game, Player
from .cards import (
    NO_GAMES_TEXT, GAME_CODE_TEXT, GAME_DELETED_TEXT, game_browser_card, game_code
)
from .game_flow import GameConfigurator
from .notify import Notifier
from .reminders import ReminderScheduler
from .storage import Storage
from .teams import TeamAssignment
from .util import is_record_id

logger = logging.getLogger(__name__)


class GameCatalog:
    """Меню 'Мои игры'."""

    def __init__(
        self,
        storage: Storage,
        notifier: Notifier,
        configurator: GameConfigurator,
        teams: TeamAssignment,
        scheduler: ReminderScheduler
    ):
        self.storage = storage
        self.notifier = notifier
        self.configurator = configurator
        self.teams = teams
        self.scheduler = scheduler

    async def show_games(self, event: ChatEvent, player: Player, number: int) -> None:
        """
        Показывает игру номер number из созданных игроком (0 - последняя).

        Номера вне диапазона приводятся к первой или последней игре.
        """
        total = self.storage.find('games', {'creator_id': player['id']}, page=1, page_size=1).total_items_count
        if total == 0:
            await self.notifier.edit_message(event.chat_id, event.message_id, NO_GAMES_TEXT)
            return

        if number <= 0 or number > total:
            number = total
        page = self.storage.find('games', {'creator_id': player['id']}, page=number, page_size=1)
        text, keyboard = game_browser_card(page.items[0], number, page.has_previous, page.has_next)
        await self.notifier.edit_message(event.chat_id, event.message_id, text, keyboard)

    async def send_game_code(self, event: ChatEvent, player: Player, game_id: str) -> None:
        self._load_game(game_id)
        await self.notifier.send_message(event.chat_id, GAME_CODE_TEXT)
        await self.notifier.send_message(event.chat_id, game_code(game_id))

    async def fix_game(self, event: ChatEvent, player: Player, game_id: str) -> None:
        """Начинает редактирование игры с выбора вида спорта."""
        await self.configurator.choose_kind_of_sport(event, player, game_id)

    async def delete_game(self, event: ChatEvent, player: Player, game_id: str) -> None:
        """Удаляет игру вместе с командами и отменяет напоминание о ней."""
        game = self._load_game(game_id)
        if game.get('creator_id') != player['id']:
            raise NotCreatorTryDelete()

        self.scheduler.cancel(game_id)
        async with self.teams.game_lock(game_id):
            for field in ('first_team_id', 'second_team_id'):
                if game.get(field):
                    self.storage.delete('teams', game[field])
            self.storage.delete('games', game_id)
        self.teams.forget_game(game_id)
        logger.info(f"🗑 Игра {game_id} удалена пользователем {event.user_id}")

        await self.notifier.edit_message(event.chat_id, event.message_id, GAME_DELETED_TEXT)

    def _load_game(self, game_id: str) -> Game:
        if not is_record_id(game_id):
            raise BadGameId()
        game = self.storage.get('games', game_id)
        if game is None:
            raise GameNotExist()
        return game
