"""
Тесты распределения игроков по командам.
"""

import asyncio

import pytest

from gamebot.errors import (
    PrivateGameAlreadyBoundElsewhere, GameNotConfigured, BadGameId, GameNotExist
)
from gamebot.services.teams import TeamAssignment
from gamebot.types import TeamSide, new_game

CHAT_ID = -1001
OTHER_CHAT_ID = -1002


@pytest.fixture
def teams(storage, notifier, scheduler):
    return TeamAssignment(storage, notifier, scheduler)


@pytest.fixture
def creator(make_player):
    return make_player(1, nickname='creator')


@pytest.fixture
def make_game(storage, creator):
    """Настроенная игра, по умолчанию частная и привязанная к CHAT_ID."""
    def factory(players_per_team=2, is_public=False, chat_id=CHAT_ID, start_time='2017-10-06T20:00:00'):
        game = new_game(creator['id'])
        game.update(
            name='Матч',
            kind_of_sport='Football',
            is_public=is_public,
            chat_id=chat_id,
            players_per_team=players_per_team,
            start_time=start_time,
        )
        return storage.add('games', game)
    return factory


def members(storage, game_id, side):
    game = storage.get('games', game_id)
    team = storage.get('teams', game['first_team_id' if side is TeamSide.FIRST else 'second_team_id'])
    return team['members'] if team else []


class TestJoin:
    """Тесты присоединения к команде."""

    def test_join_creates_teams(self, teams, storage, make_game, make_player, group_event):
        """Первое присоединение создает обе команды игры."""
        game_id = make_game()
        player = make_player(10)

        changed = asyncio.run(teams.join(group_event(CHAT_ID, 10, is_callback=True), game_id, TeamSide.FIRST, player))

        game = storage.get('games', game_id)
        assert changed is True
        assert game['first_team_id'] and game['second_team_id']
        assert members(storage, game_id, TeamSide.FIRST) == [10]
        assert members(storage, game_id, TeamSide.SECOND) == []

    def test_switch_side(self, teams, storage, make_game, make_player, group_event):
        """Переход в другую команду убирает игрока из прежней."""
        game_id = make_game()
        player = make_player(10)

        async def scenario():
            await teams.join(group_event(CHAT_ID, 10, is_callback=True), game_id, TeamSide.FIRST, player)
            await teams.join(group_event(CHAT_ID, 10, is_callback=True), game_id, TeamSide.SECOND, player)

        asyncio.run(scenario())

        assert members(storage, game_id, TeamSide.FIRST) == []
        assert members(storage, game_id, TeamSide.SECOND) == [10]

    def test_repeat_join_is_noop(self, teams, storage, make_game, make_player, group_event):
        """Повторное нажатие на свою команду ничего не меняет."""
        game_id = make_game()
        player = make_player(10)

        async def scenario():
            await teams.join(group_event(CHAT_ID, 10, is_callback=True), game_id, TeamSide.FIRST, player)
            return await teams.join(group_event(CHAT_ID, 10, is_callback=True), game_id, TeamSide.FIRST, player)

        assert asyncio.run(scenario()) is False
        assert members(storage, game_id, TeamSide.FIRST) == [10]

    def test_full_team_is_noop(self, teams, storage, make_game, make_player, group_event, monkeypatch):
        """Присоединение к заполненной команде не меняет хранилище и не вызывает ошибку."""
        game_id = make_game(players_per_team=1)
        first, second = make_player(10), make_player(11)

        asyncio.run(teams.join(group_event(CHAT_ID, 10, is_callback=True), game_id, TeamSide.FIRST, first))

        updates = []
        real_update = storage.update
        monkeypatch.setattr(storage, 'update', lambda *args: updates.append(args) or real_update(*args))

        changed = asyncio.run(teams.join(group_event(CHAT_ID, 11, is_callback=True), game_id, TeamSide.FIRST, second))

        assert changed is False
        assert updates == []
        assert members(storage, game_id, TeamSide.FIRST) == [10]

    def test_last_slot_race(self, teams, storage, make_game, make_player, group_event):
        """Одновременные нажатия на последнее место не переполняют команду."""
        game_id = make_game(players_per_team=1)
        players = [make_player(tg_id) for tg_id in (10, 11, 12)]

        async def scenario():
            return await asyncio.gather(*[
                teams.join(group_event(CHAT_ID, p['telegram_id'], is_callback=True), game_id, TeamSide.FIRST, p)
                for p in players
            ])

        results = asyncio.run(scenario())

        assert results.count(True) == 1
        assert len(members(storage, game_id, TeamSide.FIRST)) == 1

    def test_unconfigured_game(self, teams, make_game, make_player, group_event):
        """К игре без размера команд присоединиться нельзя."""
        game_id = make_game(players_per_team=0)
        with pytest.raises(GameNotConfigured):
            asyncio.run(teams.join(group_event(CHAT_ID, 10, is_callback=True), game_id, TeamSide.FIRST, make_player(10)))

    def test_private_game_in_other_chat(self, teams, make_game, make_player, group_event):
        """Кнопки частной игры работают только в ее чате."""
        game_id = make_game()
        with pytest.raises(PrivateGameAlreadyBoundElsewhere):
            asyncio.run(teams.join(
                group_event(OTHER_CHAT_ID, 10, is_callback=True), game_id, TeamSide.FIRST, make_player(10)
            ))

    def test_public_game_in_any_chat(self, teams, storage, make_game, make_player, group_event):
        """Общедоступная игра доступна из любого чата."""
        game_id = make_game(is_public=True, chat_id=0)
        asyncio.run(teams.join(group_event(OTHER_CHAT_ID, 10, is_callback=True), game_id, TeamSide.SECOND, make_player(10)))
        assert members(storage, game_id, TeamSide.SECOND) == [10]

    def test_status_message_is_edited(self, teams, notifier, make_game, make_player, group_event):
        """После нажатия кнопки редактируется сообщение со статусом."""
        game_id = make_game()
        asyncio.run(teams.join(
            group_event(CHAT_ID, 10, is_callback=True, message_id=55), game_id, TeamSide.FIRST, make_player(10, nickname='ivan')
        ))

        chat_id, message_id, text, _ = notifier.edited[-1]
        assert (chat_id, message_id) == (CHAT_ID, 55)
        assert '@ivan' in text

    def test_status_escapes_user_values(self, teams, storage, notifier, make_game, make_player, group_event):
        """Название игры и имена игроков в статусе экранируются для HTML."""
        game_id = make_game()
        storage.update('games', {'id': game_id, 'name': 'Tom & Jerry <3'})
        asyncio.run(teams.join(
            group_event(CHAT_ID, 10, is_callback=True), game_id, TeamSide.FIRST, make_player(10, name='<Вася>')
        ))

        text = notifier.edited[-1][2]
        assert text.splitlines()[0] == 'Название: Tom &amp; Jerry &lt;3'
        assert '&lt;Вася&gt; Петров' in text

    def test_bad_game(self, teams, make_player, group_event):
        player = make_player(10)
        with pytest.raises(BadGameId):
            asyncio.run(teams.join(group_event(CHAT_ID, 10), 'not-an-id', TeamSide.FIRST, player))
        with pytest.raises(GameNotExist):
            asyncio.run(teams.join(group_event(CHAT_ID, 10), 'f' * 24, TeamSide.FIRST, player))

    def test_no_lock_for_unknown_game(self, teams, make_game, make_player, group_event):
        """Блокировки заводятся только для существующих игр."""
        with pytest.raises(GameNotExist):
            asyncio.run(teams.join(group_event(CHAT_ID, 10), 'f' * 24, TeamSide.FIRST, make_player(10)))
        assert teams._game_locks == {}

        game_id = make_game()

        async def scenario():
            return teams.game_lock(game_id) is teams.game_lock(game_id)

        assert asyncio.run(scenario()) is True
        assert list(teams._game_locks) == [game_id]


class TestDecline:
    """Тесты отказа от участия."""

    def test_decline_removes_member(self, teams, storage, make_game, make_player, group_event):
        game_id = make_game()
        player = make_player(10)

        async def scenario():
            await teams.join(group_event(CHAT_ID, 10, is_callback=True), game_id, TeamSide.SECOND, player)
            return await teams.decline(group_event(CHAT_ID, 10, is_callback=True), game_id, player)

        assert asyncio.run(scenario()) is True
        assert members(storage, game_id, TeamSide.SECOND) == []

    def test_decline_when_not_member(self, teams, storage, make_game, make_player, group_event, monkeypatch):
        """Отказ игрока, который не состоит в команде, не обновляет хранилище."""
        game_id = make_game()
        asyncio.run(teams.join(group_event(CHAT_ID, 10, is_callback=True), game_id, TeamSide.FIRST, make_player(10)))
        outsider = make_player(11)

        updates = []
        monkeypatch.setattr(storage, 'update', lambda *args: updates.append(args))

        removed = asyncio.run(teams.decline(group_event(CHAT_ID, 11, is_callback=True), game_id, outsider))

        assert removed is False
        assert updates == []


class TestAddGameToChat:
    """Тесты добавления игры в чат по коду."""

    def test_private_game_binds_to_first_chat(self, teams, storage, make_game, group_event, notifier):
        """Частная игра привязывается к первому чату; второй чат получает ошибку."""
        game_id = make_game(chat_id=0)

        asyncio.run(teams.add_game(group_event(CHAT_ID, 1, f'/{game_id}'), f'/{game_id}'))
        assert storage.get('games', game_id)['chat_id'] == CHAT_ID
        assert notifier.sent[-1][0] == CHAT_ID

        with pytest.raises(PrivateGameAlreadyBoundElsewhere):
            asyncio.run(teams.add_game(group_event(OTHER_CHAT_ID, 1, f'/{game_id}'), f'/{game_id}'))
        assert storage.get('games', game_id)['chat_id'] == CHAT_ID

    def test_repeat_add_to_same_chat(self, teams, storage, make_game, group_event, notifier):
        """Повторное добавление в тот же чат снова показывает статус."""
        game_id = make_game(chat_id=0)

        async def scenario():
            await teams.add_game(group_event(CHAT_ID, 1), f'/{game_id}')
            await teams.add_game(group_event(CHAT_ID, 1), f'/{game_id}@game_bot')

        asyncio.run(scenario())
        assert len(notifier.sent) == 2
        assert storage.get('games', game_id)['chat_id'] == CHAT_ID

    def test_public_game_is_not_bound(self, teams, storage, make_game, group_event):
        """Общедоступную игру можно добавить в несколько чатов."""
        game_id = make_game(is_public=True, chat_id=0)

        async def scenario():
            await teams.add_game(group_event(CHAT_ID, 1), f'/{game_id}')
            await teams.add_game(group_event(OTHER_CHAT_ID, 1), f'/{game_id}')

        asyncio.run(scenario())
        assert storage.get('games', game_id)['chat_id'] == 0

    def test_bad_code(self, teams, group_event):
        with pytest.raises(BadGameId):
            asyncio.run(teams.add_game(group_event(CHAT_ID, 1), '/hello'))


class TestInactiveMembers:
    """Тесты очистки команд от покинувших чат."""

    def test_left_member_is_purged(self, teams, storage, notifier, make_game, make_player, group_event):
        """Участник, покинувший чат, удаляется из команды при показе статуса."""
        game_id = make_game(players_per_team=3)

        async def scenario():
            await teams.join(group_event(CHAT_ID, 10, is_callback=True), game_id, TeamSide.FIRST, make_player(10))
            await teams.join(group_event(CHAT_ID, 11, is_callback=True), game_id, TeamSide.FIRST, make_player(11))
            notifier.statuses[(CHAT_ID, 10)] = 'left'
            await teams.render_status(storage.get('games', game_id), CHAT_ID)

        asyncio.run(scenario())
        assert members(storage, game_id, TeamSide.FIRST) == [11]

    def test_status_lookup_failure_keeps_member(self, teams, storage, notifier, make_game, make_player, group_event):
        """Если статус участника не удалось получить, участник остается в команде."""
        game_id = make_game()

        async def failing_status(chat_id, user_id):
            raise RuntimeError('telegram недоступен')

        async def scenario():
            await teams.join(group_event(CHAT_ID, 10, is_callback=True), game_id, TeamSide.FIRST, make_player(10))
            notifier.get_chat_member_status = failing_status
            await teams.render_status(storage.get('games', game_id), CHAT_ID)

        asyncio.run(scenario())
        assert members(storage, game_id, TeamSide.FIRST) == [10]
