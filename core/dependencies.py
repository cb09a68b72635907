from core.settings import Settings

# Settings singleton
_settings = None


def get_settings() -> Settings:
    """Provide the process settings, loading them from the environment on first use."""
    if _settings is None:
        init_settings()
    return _settings


def init_settings(**overrides):
    """Initialize settings singleton."""
    global _settings
    _settings = Settings(**overrides)


def clear_settings():
    """Clear settings singleton."""
    global _settings
    _settings = None
