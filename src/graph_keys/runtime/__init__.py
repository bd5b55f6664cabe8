"""Runtime services shared by the keymap engine: telemetry and timers."""
