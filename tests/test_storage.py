"""
Unit-тесты для JSON-хранилища.
"""

import json

import pytest

from gamebot.services.storage import Storage
from gamebot.services.util import is_record_id


class TestStorageCrud:
    """Тесты базовых операций с записями."""

    def test_add_assigns_record_id(self, storage):
        """Новая запись получает 24-символьный шестнадцатеричный id."""
        record_id = storage.add('games', {'name': 'Матч'})
        assert is_record_id(record_id)
        assert storage.get('games', record_id) == {'name': 'Матч', 'id': record_id}

    def test_get_missing_record(self, storage):
        """Отсутствующая запись возвращается как None."""
        assert storage.get('games', 'a' * 24) is None
        assert storage.get('games', None) is None

    def test_unknown_collection(self, storage):
        """Неизвестная коллекция - ошибка."""
        with pytest.raises(ValueError):
            storage.add('matches', {})

    def test_update_skips_none_fields(self, storage):
        """Частичное обновление не затирает поля значениями None."""
        record_id = storage.add('games', {'name': 'Матч', 'players_per_team': 5})
        storage.update('games', {'id': record_id, 'name': None, 'players_per_team': 7})

        record = storage.get('games', record_id)
        assert record['name'] == 'Матч'
        assert record['players_per_team'] == 7

    def test_update_missing_record(self, storage):
        """Обновление несуществующей записи - KeyError."""
        with pytest.raises(KeyError):
            storage.update('games', {'id': 'b' * 24, 'name': 'x'})

    def test_replace_overwrites_all_fields(self, storage):
        """Полная замена удаляет поля, которых нет в новой записи."""
        record_id = storage.add('games', {'name': 'Матч', 'chat_id': 10})
        storage.replace('games', {'id': record_id, 'name': 'Реванш'})

        assert storage.get('games', record_id) == {'id': record_id, 'name': 'Реванш'}

    def test_replace_without_id_creates_record(self, storage):
        """Замена записи без id создает новую запись."""
        record_id = storage.replace('teams', {'name': '', 'members': []})
        assert is_record_id(record_id)
        assert storage.get('teams', record_id)['members'] == []

    def test_delete(self, storage):
        """Удаление возвращает True только для существующей записи."""
        record_id = storage.add('teams', {'members': [1]})
        assert storage.delete('teams', record_id) is True
        assert storage.delete('teams', record_id) is False
        assert storage.get('teams', record_id) is None

    def test_data_survives_reopen(self, tmp_path):
        """Данные сохраняются в файл и читаются новым экземпляром."""
        path = str(tmp_path / 'data.json')
        record_id = Storage(path).add('players', {'telegram_id': 42})

        assert Storage(path).find_player(42)['id'] == record_id
        with open(path, encoding='utf-8') as f:
            assert record_id in json.load(f)['players']

    def test_creates_missing_directories(self, tmp_path):
        """Файл хранилища создается вместе с каталогами."""
        path = tmp_path / 'nested' / 'dir' / 'data.json'
        Storage(str(path))
        assert path.exists()


class TestStorageFind:
    """Тесты выборки с фильтром и постраничным выводом."""

    def test_filter_by_fields(self, storage):
        """Возвращаются только записи, у которых совпадают все поля фильтра."""
        storage.add('games', {'creator_id': 'x', 'is_public': True})
        storage.add('games', {'creator_id': 'x', 'is_public': False})
        storage.add('games', {'creator_id': 'y', 'is_public': True})

        result = storage.find('games', {'creator_id': 'x', 'is_public': True})
        assert result.total_items_count == 1
        assert result.items[0]['creator_id'] == 'x'

    def test_paging(self, storage):
        """Страницы считаются с 1, число страниц округляется вверх."""
        for i in range(5):
            storage.add('games', {'creator_id': 'x', 'name': str(i)})

        first = storage.find('games', {'creator_id': 'x'}, page=1, page_size=2)
        assert len(first.items) == 2
        assert first.total_items_count == 5
        assert first.pages_count == 3
        assert first.has_next is True
        assert first.has_previous is False

        last = storage.find('games', {'creator_id': 'x'}, page=3, page_size=2)
        assert len(last.items) == 1
        assert last.has_next is False
        assert last.has_previous is True

    def test_paging_preserves_insertion_order(self, storage):
        """Записи выдаются в порядке добавления."""
        names = ['a', 'b', 'c']
        for name in names:
            storage.add('games', {'name': name})

        pages = [storage.find('games', page=i, page_size=1).items[0]['name'] for i in (1, 2, 3)]
        assert pages == names

    def test_empty_result(self, storage):
        """Пустая выборка: ноль страниц, без переходов."""
        result = storage.find('games', {'creator_id': 'nobody'}, page=1, page_size=1)
        assert result.items == []
        assert result.pages_count == 0
        assert result.has_next is False

    @pytest.mark.parametrize('page, page_size', [(0, 1), (1, 0), (-1, 5)])
    def test_invalid_paging(self, storage, page, page_size):
        """Номер страницы и ее размер должны быть положительными."""
        with pytest.raises(ValueError):
            storage.find('games', page=page, page_size=page_size)

    def test_find_players_by_telegram_ids(self, storage, make_player):
        """Игроки выбираются по списку telegram id."""
        make_player(1, nickname='one')
        make_player(2, nickname='two')
        make_player(3, nickname='three')

        players = storage.find_players([1, 3, 99])
        assert set(players) == {1, 3}
        assert players[3]['nickname'] == 'three'
