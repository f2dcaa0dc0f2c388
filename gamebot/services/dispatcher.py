"""
Диспетчер команд: сопоставляет входящие события обработчикам и превращает
ошибки обработки в сообщения пользователю.
"""

import logging
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Dict, List, Optional

from ..errors import CommandProcessingError, PlayerNotRegistered
from ..types import ChatEvent, Player, TeamSide
from .cards import COMMAND_FAILED_TEXT
from .commands import (
    CallbackCommand, MainCommand, parse_callback_data, match_main_command,
    param, int_param, bool_param
)
from .game_flow import GameConfigurator
from .games import GameCatalog
from .logger import log_error
from .notify import Notifier
from .players import PlayerService
from .reminders import ReminderScheduler
from .sessions import SessionStore
from .storage import Storage
from .teams import TeamAssignment

logger = logging.getLogger(__name__)

CallbackHandler = Callable[[ChatEvent, Player, List[str]], Awaitable[None]]


class CommandDispatcher:
    """
    Точка входа для всех событий чата.

    Никогда не пробрасывает исключения наружу: ошибки обработки команд
    показываются пользователю, остальные логируются и заменяются общим текстом.
    """

    def __init__(
        self,
        storage: Storage,
        notifier: Notifier,
        players: PlayerService,
        configurator: GameConfigurator,
        teams: TeamAssignment,
        catalog: GameCatalog
    ):
        self.storage = storage
        self.notifier = notifier
        self.players = players
        self.configurator = configurator
        self.teams = teams
        self.catalog = catalog

        self.callback_handlers: Dict[CallbackCommand, CallbackHandler] = {
            CallbackCommand.MAIN_MENU: self._main_menu,
            CallbackCommand.FINISH: self._finish,
            CallbackCommand.TIME_ZONE: self._time_zone,
            CallbackCommand.SET_TIME_ZONE: self._set_time_zone,
            CallbackCommand.CHOOSE_KIND_OF_SPORT: self._choose_kind_of_sport,
            CallbackCommand.CHOOSE_GAME_PRIVACY: self._choose_game_privacy,
            CallbackCommand.NEW_GAME: self._set_privacy,
            CallbackCommand.JOIN_FIRST: self._join_first,
            CallbackCommand.JOIN_SECOND: self._join_second,
            CallbackCommand.DECLINE: self._decline,
            CallbackCommand.GET_GAME_CODE: self._get_game_code,
            CallbackCommand.FIX_GAME: self._fix_game,
            CallbackCommand.DELETE_GAME: self._delete_game,
            CallbackCommand.MY_GAMES: self._first_game,
            CallbackCommand.TO_FIRST_GAME: self._first_game,
            CallbackCommand.PREVIOUS_GAME: self._game_by_number,
            CallbackCommand.NEXT_GAME: self._game_by_number,
            CallbackCommand.TO_LAST_GAME: self._last_game,
        }

    async def dispatch_callback(self, event: ChatEvent) -> None:
        """Обрабатывает нажатие inline-кнопки."""
        await self._guarded(event, self._handle_callback)

    async def dispatch_message(self, event: ChatEvent) -> None:
        """Обрабатывает текстовое сообщение."""
        await self._guarded(event, self._handle_message)

    async def _guarded(self, event: ChatEvent, handler: Callable[[ChatEvent], Awaitable[None]]) -> None:
        try:
            await handler(event)
        except CommandProcessingError as e:
            logger.warning(f"⚠️ Команда '{event.text[:50]}' от {event.user_id} отклонена: {e.text}")
            await self._reply(event, e.text)
        except Exception as e:
            log_error(e, {'chat_id': event.chat_id, 'command': event.text[:200]}, event.user_id)
            await self._reply(event, COMMAND_FAILED_TEXT)

    async def _reply(self, event: ChatEvent, text: str) -> None:
        try:
            await self.notifier.send_message(event.chat_id, text)
        except Exception as e:
            logger.error(f"❌ Не удалось отправить сообщение об ошибке в чат {event.chat_id}: {e}")

    async def _handle_callback(self, event: ChatEvent) -> None:
        command, params = parse_callback_data(event.text)
        if command is CallbackCommand.SIGN_IN:
            await self.players.sign_in(event)
            return

        player = self.storage.find_player(event.user_id)
        if player is None:
            raise PlayerNotRegistered()

        await self.callback_handlers[command](event, player, params)

    async def _handle_message(self, event: ChatEvent) -> None:
        text = (event.text or '').strip()
        command = match_main_command(text)
        player = self.storage.find_player(event.user_id)

        if command is MainCommand.START:
            await self.players.start(event, player)
            return

        if not event.is_private and not text.startswith('/'):
            # Обычная переписка в групповом чате боту не адресована
            return

        if player is None:
            raise PlayerNotRegistered()

        if command in (MainCommand.FAQ, MainCommand.GUIDE):
            await self.players.faq(event, player)
        elif command is MainCommand.MENU:
            if event.is_private:
                await self.players.menu(event, player)
        elif event.is_private:
            await self.configurator.submit_params(event, player)
        else:
            await self.teams.add_game(event, text)

    async def _main_menu(self, event: ChatEvent, player: Player, params: List[str]) -> None:
        await self.players.menu(event, player)

    async def _finish(self, event: ChatEvent, player: Player, params: List[str]) -> None:
        await self.configurator.finish(event, player)

    async def _time_zone(self, event: ChatEvent, player: Player, params: List[str]) -> None:
        await self.players.time_zone_menu(event, player)

    async def _set_time_zone(self, event: ChatEvent, player: Player, params: List[str]) -> None:
        await self.players.set_time_zone(event, player, int_param(params, 0))

    async def _choose_kind_of_sport(self, event: ChatEvent, player: Player, params: List[str]) -> None:
        await self.configurator.choose_kind_of_sport(event, player, param(params, 0, required=False))

    async def _choose_game_privacy(self, event: ChatEvent, player: Player, params: List[str]) -> None:
        await self.configurator.choose_game_privacy(
            event, player, param(params, 0), param(params, 1, required=False)
        )

    async def _set_privacy(self, event: ChatEvent, player: Player, params: List[str]) -> None:
        await self.configurator.set_privacy(
            event, player, bool_param(params, 0), param(params, 1, required=False)
        )

    async def _join_first(self, event: ChatEvent, player: Player, params: List[str]) -> None:
        await self.teams.join(event, param(params, 0), TeamSide.FIRST, player)

    async def _join_second(self, event: ChatEvent, player: Player, params: List[str]) -> None:
        await self.teams.join(event, param(params, 0), TeamSide.SECOND, player)

    async def _decline(self, event: ChatEvent, player: Player, params: List[str]) -> None:
        await self.teams.decline(event, param(params, 0), player)

    async def _get_game_code(self, event: ChatEvent, player: Player, params: List[str]) -> None:
        await self.catalog.send_game_code(event, player, param(params, 0))

    async def _fix_game(self, event: ChatEvent, player: Player, params: List[str]) -> None:
        await self.catalog.fix_game(event, player, param(params, 0))

    async def _delete_game(self, event: ChatEvent, player: Player, params: List[str]) -> None:
        await self.catalog.delete_game(event, player, param(params, 0))

    async def _first_game(self, event: ChatEvent, player: Player, params: List[str]) -> None:
        await self.catalog.show_games(event, player, 1)

    async def _game_by_number(self, event: ChatEvent, player: Player, params: List[str]) -> None:
        await self.catalog.show_games(event, player, max(int_param(params, 0), 1))

    async def _last_game(self, event: ChatEvent, player: Player, params: List[str]) -> None:
        await self.catalog.show_games(event, player, 0)


def build_dispatcher(
    storage: Storage,
    notifier: Notifier,
    default_utc_offset: int = 3,
    reminder_lead_minutes: int = 60,
    scheduler: Optional[ReminderScheduler] = None,
    sessions: Optional[SessionStore] = None,
    clock: Optional[Callable[[], datetime]] = None
) -> CommandDispatcher:
    """Собирает диспетчер со всеми сервисами."""
    # Пустые планировщик и хранилище сессий ложны из-за __len__
    if scheduler is None:
        scheduler = ReminderScheduler()
    if sessions is None:
        sessions = SessionStore()
    team_kwargs = {'clock': clock} if clock else {}

    teams = TeamAssignment(
        storage, notifier, scheduler,
        default_utc_offset=default_utc_offset,
        reminder_lead=timedelta(minutes=reminder_lead_minutes),
        **team_kwargs
    )
    configurator = GameConfigurator(storage, sessions, notifier, teams)
    return CommandDispatcher(
        storage=storage,
        notifier=notifier,
        players=PlayerService(storage, sessions, notifier),
        configurator=configurator,
        teams=teams,
        catalog=GameCatalog(storage, notifier, configurator, teams, scheduler)
    )
