"""
Распределение игроков по командам игры: присоединение, отказ, показ статуса в чате.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple

from aiogram import html

from ..errors import (
    BadGameId, GameNotExist, GameNotConfigured, PrivateGameAlreadyBoundElsewhere
)
from ..types import ChatEvent, Game, Team, Player, TeamSide
from .cards import REMINDER_TEXT, game_status_card, is_team_full, mentions
from .notify import Notifier
from .reminders import ReminderScheduler
from .storage import Storage
from .util import is_record_id, to_utc, utc_now

logger = logging.getLogger(__name__)

# Статусы участников чата, которые больше не могут играть за команду
INACTIVE_MEMBER_STATUSES = frozenset({'left', 'kicked', 'restricted'})

TEAM_FIELDS = {TeamSide.FIRST: 'first_team_id', TeamSide.SECOND: 'second_team_id'}


class TeamAssignment:
    """
    Присоединение к командам и отказ от участия.

    Изменения команд одной игры выполняются под блокировкой игры, поэтому
    два одновременных нажатия на последнее место не переполнят команду.
    """

    def __init__(
        self,
        storage: Storage,
        notifier: Notifier,
        scheduler: ReminderScheduler,
        default_utc_offset: int = 3,
        reminder_lead: timedelta = timedelta(hours=1),
        clock: Callable[[], datetime] = utc_now
    ):
        self.storage = storage
        self.notifier = notifier
        self.scheduler = scheduler
        self.default_utc_offset = default_utc_offset
        self.reminder_lead = reminder_lead
        self.clock = clock
        self._game_locks: Dict[str, asyncio.Lock] = {}

    def game_lock(self, game_id: str) -> asyncio.Lock:
        """
        Блокировка изменений команд конкретной игры.

        Блокировка создается только для существующей игры, иначе
        BadGameId или GameNotExist.
        """
        lock = self._game_locks.get(game_id)
        if lock is None:
            self._load_game(game_id)
            lock = self._game_locks.setdefault(game_id, asyncio.Lock())
        return lock

    def forget_game(self, game_id: str) -> None:
        self._game_locks.pop(game_id, None)

    async def add_game(self, event: ChatEvent, code: str) -> Game:
        """
        Добавляет игру в чат по коду "/<id игры>" и публикует сообщение со статусом.

        Частная игра привязывается к первому чату, в который ее добавили.
        """
        game_id = code.strip().lstrip('/').split('@', 1)[0].strip()
        if not is_record_id(game_id):
            raise BadGameId()

        async with self.game_lock(game_id):
            game = self._load_game(game_id)
            if not game.get('is_public'):
                bound_chat = game.get('chat_id') or 0
                if bound_chat == 0:
                    game['chat_id'] = event.chat_id
                    self.storage.update('games', {'id': game_id, 'chat_id': event.chat_id})
                    logger.info(f"🔗 Частная игра {game_id} привязана к чату {event.chat_id}")
                elif bound_chat != event.chat_id:
                    raise PrivateGameAlreadyBoundElsewhere()

        await self.render_status(game, event.chat_id)
        return game

    async def join(self, event: ChatEvent, game_id: str, side: TeamSide, player: Player) -> bool:
        """
        Присоединяет игрока к команде side, убирая его из другой команды.

        Присоединение к заполненной команде ничего не меняет.

        Returns:
            True, если состав команд изменился
        """
        tg_id = player['telegram_id']
        async with self.game_lock(game_id):
            game = self._load_game(game_id)
            self._check_chat(game, event.chat_id)
            if (game.get('players_per_team') or 0) < 1:
                raise GameNotConfigured()

            teams = self._ensure_teams(game)
            target, other = teams[side], teams[side.other]

            changed = False
            if tg_id not in target['members']:
                if is_team_full(target, game['players_per_team']):
                    logger.info(f"Команда {side.value} игры {game_id} заполнена, {tg_id} не добавлен")
                else:
                    if tg_id in other['members']:
                        other['members'].remove(tg_id)
                        self.storage.update('teams', {'id': other['id'], 'members': other['members']})
                    target['members'].append(tg_id)
                    self.storage.update('teams', {'id': target['id'], 'members': target['members']})
                    changed = True
                    logger.info(f"👥 Игрок {tg_id} присоединился к команде {side.value} игры {game_id}")

        await self.render_status(game, event.chat_id, event.message_id)
        return changed

    async def decline(self, event: ChatEvent, game_id: str, player: Player) -> bool:
        """
        Убирает игрока из команды игры, если он в ней состоит.

        Returns:
            True, если игрок был удален из команды
        """
        tg_id = player['telegram_id']
        async with self.game_lock(game_id):
            game = self._load_game(game_id)
            self._check_chat(game, event.chat_id)

            removed = False
            for team in self._load_teams(game):
                if team and tg_id in team['members']:
                    team['members'].remove(tg_id)
                    self.storage.update('teams', {'id': team['id'], 'members': team['members']})
                    removed = True
            if removed:
                logger.info(f"🚪 Игрок {tg_id} отказался от игры {game_id}")

        await self.render_status(game, event.chat_id, event.message_id)
        return removed

    async def render_status(self, game: Game, chat_id: int, message_id: Optional[int] = None) -> Optional[int]:
        """
        Показывает статус игры в чате: новым сообщением или правкой message_id.

        Перед показом из команд частной игры убираются участники, покинувшие ее чат.
        После показа, если обе команды частной игры заполнены, планируется напоминание.
        """
        first_team, second_team = self._load_teams(game)
        if not game.get('is_public'):
            await self._purge_inactive_members(game['id'], chat_id, (first_team, second_team))

        members = [tg_id for team in (first_team, second_team) if team for tg_id in team['members']]
        players = self.storage.find_players(members)
        text, keyboard = game_status_card(game, first_team, second_team, players)

        if message_id is None:
            message_id = await self.notifier.send_message(chat_id, text, keyboard)
        else:
            await self.notifier.edit_message(chat_id, message_id, text, keyboard)

        self._arm_reminder_if_ready(game, first_team, second_team)
        return message_id

    async def send_reminder(self, game_id: str) -> bool:
        """
        Отправляет напоминание о начале игры в привязанный чат.

        Состав команд перечитывается из хранилища. Если в командах никого нет,
        напоминание не отправляется.
        """
        game = self.storage.get('games', game_id)
        if game is None:
            logger.info(f"Игра {game_id} удалена, напоминание не отправлено")
            return False
        if game.get('is_public') or not game.get('chat_id'):
            logger.info(f"Игра {game_id} не привязана к чату, напоминание не отправлено")
            return False

        members = [
            tg_id for team in self._load_teams(game) if team for tg_id in team['members']
        ]
        if not members:
            logger.info(f"В командах игры {game_id} никого нет, напоминание не отправлено")
            return False

        text = REMINDER_TEXT.format(
            name=html.quote(game.get('name') or ''),
            mentions=mentions(members, self.storage.find_players(members))
        )
        await self.notifier.send_message(game['chat_id'], text)
        logger.info(f"⏰ Напоминание об игре {game_id} отправлено в чат {game['chat_id']}")
        return True

    def reschedule_reminder(self, game: Game) -> None:
        """Отменяет напоминание об игре и планирует его заново по текущим параметрам."""
        self.scheduler.cancel(game['id'])
        first_team, second_team = self._load_teams(game)
        self._arm_reminder_if_ready(game, first_team, second_team)

    def start_time_utc(self, game: Game) -> Optional[datetime]:
        """Время начала игры в UTC с учетом часового пояса создателя."""
        if not game.get('start_time'):
            return None
        creator = self.storage.get('players', game.get('creator_id'))
        offset = creator.get('utc_offset') if creator else None
        if offset is None:
            offset = self.default_utc_offset
        return to_utc(datetime.fromisoformat(game['start_time']), offset)

    def _arm_reminder_if_ready(self, game: Game, first_team: Optional[Team], second_team: Optional[Team]) -> None:
        if game.get('is_public') or not game.get('chat_id'):
            return
        if self.scheduler.is_armed(game['id']):
            return
        capacity = game.get('players_per_team') or 0
        if not (is_team_full(first_team, capacity) and is_team_full(second_team, capacity)):
            return
        start = self.start_time_utc(game)
        if start is None:
            return
        remaining = start - self.clock()
        if remaining <= self.reminder_lead:
            return
        delay = (remaining - self.reminder_lead).total_seconds()
        self.scheduler.arm(game['id'], delay, self.send_reminder)

    async def _purge_inactive_members(
        self,
        game_id: str,
        chat_id: int,
        teams: Tuple[Optional[Team], Optional[Team]]
    ) -> None:
        """Убирает из команд участников, которые покинули чат или ограничены в нем."""
        inactive: Dict[str, List[int]] = {}
        for team in teams:
            if not team:
                continue
            for tg_id in list(team['members']):
                try:
                    status = await self.notifier.get_chat_member_status(chat_id, tg_id)
                except Exception as e:
                    logger.warning(f"Не удалось проверить участника {tg_id} в чате {chat_id}: {e}")
                    continue
                if status in INACTIVE_MEMBER_STATUSES:
                    inactive.setdefault(team['id'], []).append(tg_id)

        if not inactive:
            return

        async with self.game_lock(game_id):
            for team in teams:
                if not team or team['id'] not in inactive:
                    continue
                stored = self.storage.get('teams', team['id']) or team
                stored['members'] = [m for m in stored['members'] if m not in inactive[team['id']]]
                team['members'] = stored['members']
                self.storage.update('teams', {'id': team['id'], 'members': stored['members']})
                logger.info(f"🧹 Из команды {team['id']} удалены покинувшие чат: {inactive[team['id']]}")

    def _ensure_teams(self, game: Game) -> Dict[TeamSide, Team]:
        """Создает недостающие команды игры."""
        teams = dict(zip(TeamSide, self._load_teams(game)))
        for side, team in teams.items():
            if team is None:
                team = Team(id='', name='', members=[])
                team['id'] = self.storage.add('teams', team)
                game[TEAM_FIELDS[side]] = team['id']
                self.storage.update('games', {'id': game['id'], TEAM_FIELDS[side]: team['id']})
                teams[side] = team
        return teams

    def _load_teams(self, game: Game) -> Tuple[Optional[Team], Optional[Team]]:
        return (
            self.storage.get('teams', game.get('first_team_id')),
            self.storage.get('teams', game.get('second_team_id')),
        )

    def _load_game(self, game_id: str) -> Game:
        if not is_record_id(game_id):
            raise BadGameId()
        game = self.storage.get('games', game_id)
        if game is None:
            raise GameNotExist()
        return game

    @staticmethod
    def _check_chat(game: Game, chat_id: int) -> None:
        """Частная игра доступна только в чате, к которому привязана."""
        if not game.get('is_public') and game.get('chat_id') != chat_id:
            raise PrivateGameAlreadyBoundElsewhere()
