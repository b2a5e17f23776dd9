"""Domain-specific errors for podstat."""


class PodstatError(Exception):
    """Base error for podstat."""


class ProfileValidationError(PodstatError):
    """Raised when a layout profile does not conform to schema or semantics."""


class ProfileLoadError(PodstatError):
    """Raised when loading layout profile sources fails."""


class LayoutSelectionError(PodstatError):
    """Raised when a requested layout profile is not loaded."""


class UnknownModelError(PodstatError):
    """Raised when a model code is not present in the model table."""

    def __init__(self, code: bytes) -> None:
        super().__init__(f"Unknown model code {code.hex()}")
        self.code = code


class ScanSessionError(PodstatError):
    """Raised when a scan controller is run more than once."""


class ScanError(PodstatError):
    """Base error for BLE scan failures."""


class ScanAlreadyActiveError(ScanError):
    """Raised when the adapter already has a scan in progress."""


class AdapterUnavailableError(ScanError):
    """Raised when no usable Bluetooth adapter or BLE stack is available."""


class PayloadFormatError(PodstatError):
    """Raised when a captured payload cannot be parsed."""
