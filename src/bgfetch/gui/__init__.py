"""NiceGUI front end, runners and observer state."""
