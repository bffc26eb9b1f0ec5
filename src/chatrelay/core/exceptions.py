"""Exception types shared across the relay."""


class ChatRelayError(Exception):
    """Base class for relay errors."""


class ConfigurationMissingError(ChatRelayError):
    """Raised when a required configuration key is not set."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Configuration key '{key}' not found in environment.")
        self.key = key
