from __future__ import annotations


class ConclaveError(Exception):
    """Base exception for all Conclave errors."""


# ── Lookup Errors ────────────────────────────────────────────────────

class NotFoundError(ConclaveError):
    """A required entity or model handler is not available."""


class EntityNotFoundError(NotFoundError):
    """Entity does not exist in the storage adapter."""


class ModelNotFoundError(NotFoundError):
    """No model handler is registered for the requested model type."""

    def __init__(self, model_type: str) -> None:
        super().__init__(f"No handler found for model type: {model_type}")
        self.model_type = model_type


# ── Setup Errors ─────────────────────────────────────────────────────

class SetupError(ConclaveError):
    """Agent bootstrap failed; the runtime is not operational."""


class PluginLoadError(SetupError):
    """A plugin could not be imported by name."""


# ── Config Errors ────────────────────────────────────────────────────

class ConfigError(ConclaveError):
    """Invalid or missing configuration."""
