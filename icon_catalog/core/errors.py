"""Exceptions raised while building the icon catalog."""


class IconCatalogError(Exception):
    """Base class for icon catalog failures"""


class ItemResolutionError(IconCatalogError):
    """A single icon name could not be resolved to a file"""

    def __init__(self, name, reason=""):
        self.name = name
        self.reason = reason
        message = f"Could not resolve icon '{name}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class ProviderUnavailableError(IconCatalogError):
    """The icon theme provider cannot enumerate any icons"""


class BuildCancelledError(IconCatalogError):
    """A catalog build was torn down before it produced a result"""
