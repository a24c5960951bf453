"""Runtime configuration."""

from .settings import DEFAULT_BOT_NAME, Settings, Timeouts, reset_cfg

__all__ = ["DEFAULT_BOT_NAME", "Settings", "Timeouts", "reset_cfg"]
