"""
JSON-хранилище записей бота (игроки, игры, команды) с атомарной записью.
"""

import json
import logging
import math
from typing import Any, Dict, List, Optional
from threading import RLock

from ..types import PagedList, Player
from .util import atomic_write, ensure_file_exists, new_record_id

logger = logging.getLogger(__name__)

COLLECTIONS = ('players', 'games', 'teams')


class Storage:
    """Репозиторий поверх JSON-файла: get/find/add/update/replace/delete."""

    def __init__(self, file_path: str = 'data.json'):
        self.file_path = file_path
        self._lock = RLock()
        self._ensure_initialized()

    def _ensure_initialized(self) -> None:
        """Инициализирует файл хранилища, если он не существует."""
        ensure_file_exists(self.file_path, {name: {} for name in COLLECTIONS})

    def load(self) -> Dict[str, Dict[str, dict]]:
        """Загружает данные из файла."""
        try:
            with open(self.file_path, 'r', encoding='utf-8') as f:
                store = json.load(f)
        except FileNotFoundError:
            self._ensure_initialized()
            return self.load()
        except json.JSONDecodeError:
            logger.error(f"Файл хранилища {self.file_path} поврежден, начинаем с пустого")
            store = {}
        for name in COLLECTIONS:
            store.setdefault(name, {})
        return store

    def save(self, store: Dict[str, Dict[str, dict]]) -> None:
        """Сохраняет данные в файл атомарно."""
        with self._lock:
            atomic_write(self.file_path, store)

    @staticmethod
    def _collection(store: dict, collection: str) -> Dict[str, dict]:
        if collection not in COLLECTIONS:
            raise ValueError(f"Неизвестная коллекция: {collection}")
        return store[collection]

    def get(self, collection: str, record_id: Optional[str]) -> Optional[dict]:
        """Получает запись по идентификатору."""
        if not record_id:
            return None
        store = self.load()
        return self._collection(store, collection).get(record_id)

    def find(
        self,
        collection: str,
        filter: Optional[Dict[str, Any]] = None,
        page: int = 1,
        page_size: Optional[int] = None
    ) -> PagedList:
        """
        Возвращает записи, у которых все поля фильтра совпадают.

        Args:
            collection: Имя коллекции
            filter: Словарь поле -> значение
            page: Номер страницы, начиная с 1
            page_size: Количество элементов на странице (None - все на одной странице)
        """
        if page < 1:
            raise ValueError("Номер страницы должен быть больше нуля")
        if page_size is not None and page_size < 1:
            raise ValueError("Количество элементов на страницу должно быть больше нуля")

        store = self.load()
        records = [
            record for record in self._collection(store, collection).values()
            if all(record.get(key) == value for key, value in (filter or {}).items())
        ]
        total = len(records)

        if page_size is None:
            return PagedList(
                items=records,
                total_items_count=total,
                page=1,
                page_size=total,
                pages_count=1,
                has_next=False,
                has_previous=False
            )

        pages_count = math.ceil(total / page_size)
        start = (page - 1) * page_size
        return PagedList(
            items=records[start:start + page_size],
            total_items_count=total,
            page=page,
            page_size=page_size,
            pages_count=pages_count,
            has_next=page < pages_count,
            has_previous=page > 1
        )

    def add(self, collection: str, record: dict) -> str:
        """Добавляет запись. Возвращает ее новый идентификатор."""
        with self._lock:
            store = self.load()
            records = self._collection(store, collection)
            record_id = new_record_id()
            while record_id in records:
                record_id = new_record_id()
            records[record_id] = {**record, 'id': record_id}
            self.save(store)
        logger.debug(f"Добавлена запись {collection}/{record_id}")
        return record_id

    def update(self, collection: str, record: dict) -> None:
        """Частично обновляет запись: записываются только поля, отличные от None."""
        record_id = record.get('id')
        with self._lock:
            store = self.load()
            records = self._collection(store, collection)
            if record_id not in records:
                raise KeyError(f"Запись {collection}/{record_id} не найдена")
            changes = {key: value for key, value in record.items() if key != 'id' and value is not None}
            records[record_id].update(changes)
            self.save(store)

    def replace(self, collection: str, record: dict) -> str:
        """Полностью заменяет запись (или создает ее, если ее нет)."""
        record_id = record.get('id') or new_record_id()
        with self._lock:
            store = self.load()
            self._collection(store, collection)[record_id] = {**record, 'id': record_id}
            self.save(store)
        return record_id

    def delete(self, collection: str, record_id: str) -> bool:
        """Удаляет запись. Возвращает True, если запись была удалена."""
        with self._lock:
            store = self.load()
            records = self._collection(store, collection)
            if record_id not in records:
                return False
            del records[record_id]
            self.save(store)
        logger.debug(f"Удалена запись {collection}/{record_id}")
        return True

    def find_player(self, telegram_id: int) -> Optional[Player]:
        """Находит игрока по идентификатору Telegram."""
        players = self.find('players', {'telegram_id': telegram_id}).items
        return players[0] if players else None

    def find_players(self, telegram_ids: List[int]) -> Dict[int, Player]:
        """Возвращает игроков по списку идентификаторов Telegram."""
        wanted = set(telegram_ids)
        return {
            player['telegram_id']: player
            for player in self.find('players').items
            if player.get('telegram_id') in wanted
        }
