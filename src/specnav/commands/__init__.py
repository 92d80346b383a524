"""Built-in specnav sub-commands."""
