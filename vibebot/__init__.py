"""Event log, character memory and scene orchestration for roleplay bots."""

__version__ = "0.1.0"