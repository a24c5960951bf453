"""Collaborator implementations behind the workflow protocols."""

from .claude import ClaudeService
from .console import ConsolePlatform
from .research import SefariaResearchAgent
from .slack import SlackClient, SlackClients

__all__ = [
    "ClaudeService",
    "ConsolePlatform",
    "SefariaResearchAgent",
    "SlackClient",
    "SlackClients",
]
