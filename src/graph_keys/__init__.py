"""Vim-style keybinding resolution for the graph view."""

__all__ = [
    "adapters",
    "commands",
    "keymaps",
    "runtime",
]

__version__ = "0.1.0"
