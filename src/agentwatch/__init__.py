"""agentwatch — live activity status for terminal-hosted coding agents."""

__version__ = "0.1.0"
