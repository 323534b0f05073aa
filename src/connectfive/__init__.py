"""connectfive — two-player five-in-a-row match server (C5P protocol)."""

__version__ = "0.1.0"
