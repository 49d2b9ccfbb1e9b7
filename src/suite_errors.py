class SuiteError(Exception):
    """Base class for errors raised by the UI suite."""


class EngineLaunchError(SuiteError):
    """Browser engine could not be started (unsupported variant or launch failure)."""


class NotInitializedError(SuiteError):
    """A session handle was requested before initialize() or after close()."""


class ElementTimeoutError(SuiteError):
    def __init__(self, selector: str, timeout_ms: float, detail: str = ""):
        self.selector = selector
        self.timeout_ms = timeout_ms
        message = f"Selector '{selector}' not satisfied within {timeout_ms:.0f}ms"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class DataLoadError(SuiteError):
    def __init__(self, path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot load test data from {path}: {reason}")


class ConfigurationError(SuiteError):
    """Configuration file is malformed or a value has the wrong type."""


class CompletionStateError(SuiteError):
    """register()/complete() called out of order for a group."""
