"""codepilot: a tool-using coding assistant loop over chat-completion endpoints."""

__version__ = "0.1.0"
