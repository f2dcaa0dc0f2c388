"""
Утилиты для работы с файлами, идентификаторами и датами.
"""

import os
import json
import re
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from pathlib import Path

# Формат времени начала игры: "20:00 06.10.2017"
START_TIME_FORMAT = "%H:%M %d.%m.%Y"

_RECORD_ID_RE = re.compile(r'^[0-9a-f]{24}$')


def atomic_write(file_path: str, data: Any) -> None:
    """
    Атомарная запись в JSON файл через временный файл.

    Args:
        file_path: Путь к целевому файлу
        data: Данные для записи
    """
    tmp_path = file_path + '.tmp'
    try:
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, file_path)
    except Exception:
        # Удаляем временный файл в случае ошибки
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


def ensure_file_exists(file_path: str, default_content: Any = None) -> None:
    """
    Убеждается, что файл существует. Если нет - создает с дефолтным содержимым.
    """
    if not os.path.exists(file_path):
        Path(file_path).parent.mkdir(parents=True, exist_ok=True)
        atomic_write(file_path, default_content or {})


def new_record_id() -> str:
    """Генерирует идентификатор записи: 24 шестнадцатеричных символа."""
    return secrets.token_hex(12)


def is_record_id(value: Optional[str]) -> bool:
    """Проверяет, что строка похожа на идентификатор записи."""
    return bool(value) and bool(_RECORD_ID_RE.match(value))


def parse_start_time(value: str) -> datetime:
    """Парсит время начала игры в формате 'H:mm d.MM.yyyy'. ValueError при ошибке."""
    return datetime.strptime(value.strip(), START_TIME_FORMAT)


def format_start_time(value: Optional[str]) -> str:
    """Форматирует сохраненное ISO-время начала игры для показа пользователю."""
    if not value:
        return "не задано"
    moment = datetime.fromisoformat(value)
    return f"{moment.hour}:{moment.minute:02d} {moment.day}.{moment.month:02d}.{moment.year}"


def to_utc(naive_local: datetime, utc_offset_hours: int) -> datetime:
    """Переводит наивное локальное время с заданным смещением в UTC."""
    tz = timezone(timedelta(hours=utc_offset_hours))
    return naive_local.replace(tzinfo=tz).astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
