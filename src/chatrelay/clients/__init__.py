from chatrelay.clients.gemini import GeminiClient, GenerationOutcome, GenerationResult
from chatrelay.clients.telegram import DeliveryResult, TelegramClient

__all__ = [
    "DeliveryResult",
    "GeminiClient",
    "GenerationOutcome",
    "GenerationResult",
    "TelegramClient",
]
