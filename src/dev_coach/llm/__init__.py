"""Chat clients implementing core.ports.ChatClient."""
