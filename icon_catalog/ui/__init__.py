"""Qt-side consumers of the icon catalog."""
