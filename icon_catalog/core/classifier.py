"""
Classify resolved icon files by the category folder they live in.

Icon themes group files as ``<theme>/<size>/<category>/<name>`` or
``<theme>/<category>/<size>/<name>``; the category folder name decides the
group shown in the picker.
"""

import re

from icon_catalog.models.icon_model import Category

DISTRO_PREFIX = "distro"

# Order matters: the first token found in the path wins.
# "scalable" is a size folder, not a category, so it is matched only as the
# optional size segment and never assigned on its own.
CATEGORY_TOKENS = (
    ("actions", Category.ACTIONS),
    ("apps", Category.APPS),
    ("categories", Category.CATEGORIES),
    ("devices", Category.DEVICES),
    ("emblems", Category.EMBLEMS),
    ("emotes", Category.EMOTES),
    ("mimetypes", Category.MIMETYPES),
    ("places", Category.PLACES),
    ("status", Category.STATUS),
)

_SIZE_SEGMENT = r"(?:\d+(?:x\d+)?(?:@\d+x?)?|scalable)"

_TOKEN_PATTERNS = tuple(
    (re.compile(rf"/{token}(?:/{_SIZE_SEGMENT})?/", re.IGNORECASE), category)
    for token, category in CATEGORY_TOKENS
)


def classify(resolved_path: str) -> Category:
    """Return the category for a resolved icon path, ``Category.OTHER`` if none matches."""
    if not resolved_path:
        return Category.OTHER

    path = resolved_path.replace("\\", "/")
    for pattern, category in _TOKEN_PATTERNS:
        if pattern.search(path):
            return category
    return Category.OTHER


def classify_bundled(name: str) -> Category:
    """Icons shipped with the catalog are either distro logos or custom artwork."""
    return Category.DISTRO if name.startswith(DISTRO_PREFIX) else Category.CUSTOM
