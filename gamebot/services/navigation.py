"""
Сервис для создания inline-клавиатур и кнопок "Назад".
"""

from typing import List, Optional
from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton

from .commands import CallbackCommand, build_callback_data


class NavigationService:
    """Сервис для создания клавиатур с кнопками навигации."""

    @staticmethod
    def button(text: str, command: CallbackCommand, *params) -> InlineKeyboardButton:
        """Кнопка, нажатие которой отправляет команду с параметрами."""
        return InlineKeyboardButton(text=text, callback_data=build_callback_data(command, *params))

    @staticmethod
    def add_back_button(
        buttons: List[List[InlineKeyboardButton]],
        text: str = "🔙 Назад",
        back_command: CallbackCommand = CallbackCommand.MAIN_MENU
    ) -> List[List[InlineKeyboardButton]]:
        """Добавляет кнопку 'Назад' в конец списка кнопок."""
        result = buttons.copy()
        result.append([NavigationService.button(text, back_command)])
        return result

    @staticmethod
    def create_keyboard(
        buttons: List[List[InlineKeyboardButton]],
        back_text: Optional[str] = None
    ) -> InlineKeyboardMarkup:
        """Создает клавиатуру; если задан back_text, добавляет возврат в главное меню."""
        rows = [row for row in buttons if row]
        if back_text:
            rows = NavigationService.add_back_button(rows, back_text)
        return InlineKeyboardMarkup(inline_keyboard=rows)

    @staticmethod
    def create_simple_keyboard(
        text_command_pairs: List[tuple],
        back_text: Optional[str] = None
    ) -> InlineKeyboardMarkup:
        """Создает клавиатуру из пар (текст, команда[, параметры...]) по кнопке в ряд."""
        buttons = []
        for text, command, *params in text_command_pairs:
            buttons.append([NavigationService.button(text, command, *params)])

        return NavigationService.create_keyboard(buttons, back_text)


# Глобальный экземпляр сервиса навигации
nav = NavigationService()
