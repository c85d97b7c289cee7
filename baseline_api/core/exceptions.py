"""Cross-layer exceptions. Typed, no HTTP."""


class ConfigurationError(Exception):
    """Base for programming/configuration errors (bad entity metadata, unserializable fields).

    Never retried; surfaced to the caller as an internal failure.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)
