"""Update handling: normalization and command/inquiry dispatch."""

from chatrelay.bot.dispatcher import Dispatcher
from chatrelay.bot.update import Update, normalize

__all__ = ["Dispatcher", "Update", "normalize"]
