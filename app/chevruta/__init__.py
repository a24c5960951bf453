"""chevruta -- multi-bot Slack study assistant runtime."""

__version__ = "1.0.0"
