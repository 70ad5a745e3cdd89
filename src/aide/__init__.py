"""aide: personal-assistant relay with long-term memory."""
