class ConfigurationError(Exception):
    """Raised when a batch run cannot start: missing file, sheet, column or option."""

    def __init__(self, message: str, *, hint: list[str] | None = None):
        super().__init__(message)
        self.hint = hint or []


class SheetNotFoundError(ConfigurationError):
    def __init__(self, sheet: str, available: list[str]):
        super().__init__(f"Sheet '{sheet}' not found.", hint=available)
        self.sheet = sheet
        self.available = available
