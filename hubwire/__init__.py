"""Building blocks for the SignalR hub protocol: messages, JSON framing, hub connections and hub lifetime management."""

__version__ = "0.1.0"