"""Adapters for external systems: the OpenRouter chat-completions API."""
