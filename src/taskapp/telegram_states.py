"""Conversation states for Telegram bot."""

from enum import IntEnum, auto


class AddTaskStates(IntEnum):
    """States for the natural-language add-task conversation."""

    CONFIRM = auto()
