"""
HTTP API поверх хранилища: CRUD для игр, игроков и команд и проверка здоровья.

    GET    /games?field=value&page=1&page_size=20
    GET    /games/{id}
    POST   /game
    PUT    /game
    DELETE /game/{id}

То же для /players, /player и /teams, /team.
"""

import json
import time
from dataclasses import asdict
from typing import Any, Dict, Optional

import psutil
from aiohttp import web

from ..services.logger import get_logger, get_metrics
from ..services.storage import Storage

logger = get_logger('api')

STORAGE_KEY = web.AppKey('storage', Storage)
STARTED_AT_KEY = web.AppKey('started_at', float)

# коллекция -> путь для операций с одной записью
RESOURCES = {
    'games': 'game',
    'players': 'player',
    'teams': 'team',
}

DEFAULT_PAGE_SIZE = 20

# Поля, которые хранятся не строками; остальные значения фильтра сравниваются как есть
TYPED_FIELDS = {
    'is_public': bool,
    'chat_id': int,
    'players_per_team': int,
    'telegram_id': int,
    'utc_offset': int,
}
PAGING_PARAMS = ('page', 'page_size')


def _error(status: int, message: str) -> web.Response:
    return web.json_response({'error': message}, status=status)


def _query_value(field: str, raw: str) -> Any:
    """Приводит значение из query string к типу, в котором хранится поле."""
    kind = TYPED_FIELDS.get(field)
    if kind is bool and raw in ('true', 'false'):
        return raw == 'true'
    if kind is int:
        try:
            return int(raw)
        except ValueError:
            return raw
    return raw


def _positive_int(raw: Optional[str], default: int) -> int:
    if raw is None:
        return default
    value = int(raw)
    if value < 1:
        raise ValueError(raw)
    return value


async def _read_record(request: web.Request) -> Optional[Dict[str, Any]]:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    return body if isinstance(body, dict) else None


def _collection_handlers(collection: str):
    async def list_records(request: web.Request) -> web.Response:
        query = request.rel_url.query
        try:
            page = _positive_int(query.get('page'), 1)
            page_size = _positive_int(query.get('page_size'), DEFAULT_PAGE_SIZE)
        except ValueError:
            return _error(400, 'page и page_size должны быть положительными целыми числами')

        filter = {key: _query_value(key, value) for key, value in query.items() if key not in PAGING_PARAMS}
        result = request.app[STORAGE_KEY].find(collection, filter, page=page, page_size=page_size)
        return web.json_response(asdict(result))

    async def get_record(request: web.Request) -> web.Response:
        record = request.app[STORAGE_KEY].get(collection, request.match_info['id'])
        if record is None:
            return _error(404, 'Запись не найдена')
        return web.json_response(record)

    async def create_record(request: web.Request) -> web.Response:
        record = await _read_record(request)
        if record is None:
            return _error(400, 'Ожидается JSON-объект')
        record.pop('id', None)
        record_id = request.app[STORAGE_KEY].add(collection, record)
        logger.info(f"API: создана запись {collection}/{record_id}")
        return web.json_response({'id': record_id}, status=201)

    async def replace_record(request: web.Request) -> web.Response:
        record = await _read_record(request)
        if record is None:
            return _error(400, 'Ожидается JSON-объект')
        if not record.get('id'):
            return _error(400, 'Не указан id записи')
        record_id = request.app[STORAGE_KEY].replace(collection, record)
        logger.info(f"API: заменена запись {collection}/{record_id}")
        return web.json_response({'id': record_id})

    async def delete_record(request: web.Request) -> web.Response:
        record_id = request.match_info['id']
        if not request.app[STORAGE_KEY].delete(collection, record_id):
            return _error(404, 'Запись не найдена')
        logger.info(f"API: удалена запись {collection}/{record_id}")
        return web.json_response({'id': record_id, 'deleted': True})

    return list_records, get_record, create_record, replace_record, delete_record


async def health_check(request: web.Request) -> web.Response:
    process = psutil.Process()
    memory = process.memory_info()
    return web.json_response({
        'status': 'ok',
        'uptime_seconds': time.time() - request.app[STARTED_AT_KEY],
        'memory': {
            'rss_mb': round(memory.rss / 1024 / 1024, 2),
            'percent': round(process.memory_percent(), 2),
        },
        'metrics': get_metrics(),
    })


def setup_health(app: web.Application) -> None:
    app[STARTED_AT_KEY] = time.time()
    app.router.add_get('/health', health_check)


def setup_api(app: web.Application, storage: Storage) -> None:
    """Регистрирует маршруты API в существующем приложении (например, рядом с webhook)."""
    app[STORAGE_KEY] = storage

    for collection, item in RESOURCES.items():
        list_records, get_record, create_record, replace_record, delete_record = _collection_handlers(collection)
        app.router.add_get(f'/{collection}', list_records)
        app.router.add_get(f'/{collection}/{{id}}', get_record)
        app.router.add_post(f'/{item}', create_record)
        app.router.add_put(f'/{item}', replace_record)
        app.router.add_delete(f'/{item}/{{id}}', delete_record)

    setup_health(app)


def create_api_app(storage: Storage) -> web.Application:
    app = web.Application()
    setup_api(app, storage)
    return app
