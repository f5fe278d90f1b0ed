"""switchboard: interaction dispatcher for slash commands and UI components."""

__version__ = "1.0.0"
