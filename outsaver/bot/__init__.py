"""
Telegram-бот: триггер по сообщениям и подтверждение загрузки
"""
from .confirmation import ConfirmationGate

__all__ = ['ConfirmationGate']
