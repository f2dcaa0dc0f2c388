"""
Пошаговая настройка игры: вид спорта -> приватность -> параметры текстом.
"""

import logging
from typing import Optional, Tuple

from ..errors import (
    BadData, BadGameId, GameNotExist, NotCreatorTryEdit, SessionNotActive
)
from ..types import ChatEvent, Game, Player, KindOfSport, new_game
from .cards import (
    CHOOSE_SPORT_TEXT, CHOOSE_PRIVACY_TEXT, GAME_PARAMS_PROMPT_TEXT, GAME_CODE_TEXT,
    sport_menu_keyboard, privacy_menu_keyboard, finish_keyboard, game_code
)
from .notify import Notifier
from .sessions import SessionStore, ConfigurationSession, ConfigurationStage
from .storage import Storage
from .teams import TeamAssignment
from .util import is_record_id, parse_start_time

logger = logging.getLogger(__name__)


class GameConfigurator:
    """
    Машина состояний настройки игры.

    Порядок шагов строгий: вид спорта должен быть выбран до приватности,
    приватность - до ввода параметров. Сессия закрывается после успешного
    ввода параметров или по кнопке 'Завершить'.

    Если задан teams, после смены приватности или параметров напоминание
    об игре перепланируется.
    """

    def __init__(
        self,
        storage: Storage,
        sessions: SessionStore,
        notifier: Notifier,
        teams: Optional[TeamAssignment] = None
    ):
        self.storage = storage
        self.sessions = sessions
        self.notifier = notifier
        self.teams = teams

    async def choose_kind_of_sport(self, event: ChatEvent, player: Player, game_id: Optional[str] = None) -> str:
        """
        Открывает меню выбора вида спорта.

        Без game_id переиспользует игру из открытой сессии или создает новую.
        С game_id (редактирование) открывает сессию на существующей игре.

        Returns:
            id настраиваемой игры
        """
        if game_id is not None:
            game = self._load_game(game_id)
            if game.get('creator_id') != player['id']:
                raise NotCreatorTryEdit()
            self.sessions.begin(event.user_id, game_id)
            logger.info(f"✏️ Пользователь {event.user_id} редактирует игру {game_id}")
        else:
            game_id, created = self.sessions.open_or_get(
                event.user_id,
                lambda: self.storage.add('games', new_game(player['id']))
            )
            if created:
                logger.info(f"🆕 Пользователь {event.user_id} создал игру {game_id}")
            else:
                self.sessions.advance(event.user_id, ConfigurationStage.AWAITING_SPORT)

        await self.notifier.edit_message(
            event.chat_id, event.message_id, CHOOSE_SPORT_TEXT, sport_menu_keyboard(game_id)
        )
        return game_id

    async def choose_game_privacy(
        self,
        event: ChatEvent,
        player: Player,
        sport_name: str,
        game_id: Optional[str] = None
    ) -> None:
        """Сохраняет вид спорта и открывает меню выбора приватности."""
        session, game = self._resolve(event, game_id)
        try:
            sport = KindOfSport[sport_name]
        except KeyError:
            raise BadData()
        if sport is KindOfSport.Default:
            raise BadData()

        self.storage.update('games', {'id': game['id'], 'kind_of_sport': sport.name})
        self.sessions.advance(event.user_id, ConfigurationStage.AWAITING_PRIVACY)

        await self.notifier.edit_message(
            event.chat_id, event.message_id, CHOOSE_PRIVACY_TEXT, privacy_menu_keyboard(game['id'])
        )

    async def set_privacy(
        self,
        event: ChatEvent,
        player: Player,
        is_public: bool,
        game_id: Optional[str] = None
    ) -> None:
        """Сохраняет приватность и просит ввести параметры игры текстом."""
        session, game = self._resolve(event, game_id)
        if game.get('kind_of_sport', KindOfSport.Default.name) == KindOfSport.Default.name:
            raise BadData("Сначала выберите вид спорта")

        game['is_public'] = is_public
        if is_public:
            # Общедоступная игра не привязывается к чату
            game['chat_id'] = 0
        self.storage.replace('games', game)
        self.sessions.advance(event.user_id, ConfigurationStage.AWAITING_PARAMS)
        self._reschedule_reminder(game)

        await self.notifier.edit_message(
            event.chat_id, event.message_id, GAME_PARAMS_PROMPT_TEXT, finish_keyboard()
        )

    async def submit_params(self, event: ChatEvent, player: Player) -> Game:
        """
        Принимает параметры игры из трех строк: название, игроков в команде, время начала.

        При ошибке разбора сессия остается открытой для повторной попытки.
        """
        session = self.sessions.get(event.user_id)
        if session is None:
            raise SessionNotActive()
        if session.stage is not ConfigurationStage.AWAITING_PARAMS:
            raise BadData("Сначала выберите вид спорта и приватность игры")

        name, players_per_team, start_time = self.parse_params(event.text)

        game = self._load_game(session.game_id)
        game['name'] = name
        game['players_per_team'] = players_per_team
        game['start_time'] = start_time.isoformat()
        self.storage.replace('games', game)
        self.sessions.end(event.user_id)
        self._reschedule_reminder(game)
        logger.info(f"✅ Игра {game['id']} настроена пользователем {event.user_id}")

        await self.notifier.send_message(event.chat_id, GAME_CODE_TEXT)
        await self.notifier.send_message(event.chat_id, game_code(game['id']))
        return game

    async def finish(self, event: ChatEvent, player: Player) -> None:
        """Закрывает сессию настройки и удаляет сообщение с меню."""
        self.sessions.end(event.user_id)
        try:
            await self.notifier.delete_message(event.chat_id, event.message_id)
        except Exception as e:
            # Сообщение могло быть уже удалено
            logger.warning(f"Не удалось удалить сообщение {event.message_id}: {e}")

    @staticmethod
    def parse_params(text: str):
        """
        Разбирает параметры игры.

        Returns:
            Кортеж (название, игроков в команде, время начала)

        Raises:
            BadData: если параметры некорректны
        """
        lines = [line.strip() for line in (text or '').splitlines() if line.strip()]
        if len(lines) != 3:
            raise BadData()
        name = lines[0]
        try:
            players_per_team = int(lines[1])
            start_time = parse_start_time(lines[2])
        except ValueError:
            raise BadData()
        if players_per_team < 1:
            raise BadData()
        return name, players_per_team, start_time

    def _reschedule_reminder(self, game: Game) -> None:
        if self.teams is not None:
            self.teams.reschedule_reminder(game)

    def _resolve(self, event: ChatEvent, game_id: Optional[str]) -> Tuple[ConfigurationSession, Game]:
        """Находит сессию пользователя и настраиваемую в ней игру."""
        session = self.sessions.get(event.user_id)
        if session is None:
            raise SessionNotActive()
        if game_id is not None:
            if not is_record_id(game_id):
                raise BadGameId()
            if game_id != session.game_id:
                # Кнопка из устаревшего меню другой игры
                raise SessionNotActive()
        return session, self._load_game(session.game_id)

    def _load_game(self, game_id: str) -> Game:
        if not is_record_id(game_id):
            raise BadGameId()
        game = self.storage.get('games', game_id)
        if game is None:
            raise GameNotExist()
        return game
