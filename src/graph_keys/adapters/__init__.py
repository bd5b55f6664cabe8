"""Host UI adapters for the keymap engine."""
