"""
Icon theme access for the catalog builder.

The builder never talks to Qt's icon machinery directly: it receives an
IconThemeProvider and takes an IconThemeSnapshot of it for each build.
FreedesktopIconTheme implements the provider on top of the freedesktop.org
Icon Theme layout (index.theme files below the theme search paths), which is
what Qt's own theme lookup reads on Linux desktops.
"""

from __future__ import annotations

import configparser
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from PyQt6.QtCore import QMutex, QMutexLocker
from PyQt6.QtGui import QIcon

from icon_catalog.core.errors import ItemResolutionError, ProviderUnavailableError

ICON_EXTENSIONS = (".png", ".svg", ".xpm")
DEFAULT_THEME = "hicolor"
DEFAULT_ICON_SIZE = 48
BUNDLED_ICON_SUBDIR = Path("scalable") / "actions"
UNTHEMED_FALLBACK_DIRS = ("/usr/share/pixmaps",)


def _unique_paths(paths: Iterable[str]) -> List[str]:
    seen = set()
    unique = []
    for path in paths:
        if not path:
            continue
        normalized = os.path.normpath(os.path.expanduser(str(path)))
        if normalized not in seen:
            seen.add(normalized)
            unique.append(normalized)
    return unique


def _is_within(path: str, root: str) -> bool:
    try:
        root = os.path.abspath(root)
        return os.path.commonpath([os.path.abspath(path), root]) == root
    except ValueError:
        # Different drives on Windows
        return False


def default_search_paths() -> List[str]:
    """Theme base directories in lookup order, Qt's own list first."""
    paths = [path for path in QIcon.themeSearchPaths() if not path.startswith(":")]

    home = os.path.expanduser("~")
    paths.append(os.path.join(home, ".icons"))
    data_home = os.environ.get("XDG_DATA_HOME", os.path.join(home, ".local", "share"))
    paths.append(os.path.join(data_home, "icons"))
    data_dirs = os.environ.get("XDG_DATA_DIRS") or "/usr/local/share:/usr/share"
    for data_dir in data_dirs.split(os.pathsep):
        if data_dir:
            paths.append(os.path.join(data_dir, "icons"))
    return _unique_paths(paths)


def default_fallback_paths() -> List[str]:
    """Directories holding unthemed icons, consulted after every theme."""
    paths = [path for path in QIcon.fallbackSearchPaths() if not path.startswith(":")]
    paths.extend(UNTHEMED_FALLBACK_DIRS)
    return _unique_paths(paths)


@dataclass(frozen=True)
class ThemeDirectory:
    """One ``[subdir]`` section of an index.theme file."""
    subdir: str
    size: int
    scale: int = 1
    type: str = "Threshold"
    min_size: int = 0
    max_size: int = 0
    threshold: int = 2

    def size_distance(self, size: int) -> int:
        """0 when the directory serves ``size``, else how far off it is."""
        if self.type == "Fixed":
            return abs(self.size * self.scale - size)

        if self.type == "Scalable":
            low = self.min_size or self.size
            high = self.max_size or self.size
        else:
            low = self.size - self.threshold
            high = self.size + self.threshold

        if size < low:
            return low - size
        if size > high:
            return size - high
        return 0


@dataclass(frozen=True)
class ThemeIndex:
    name: str
    directories: Tuple[ThemeDirectory, ...] = ()
    inherits: Tuple[str, ...] = ()


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _read_int(section, key: str, default: int) -> int:
    try:
        return int(section.get(key, default))
    except (TypeError, ValueError):
        return default


def read_theme_index(index_path: str, theme_name: str) -> ThemeIndex:
    """Parse an index.theme file. Raises configparser.Error on malformed input."""
    parser = configparser.ConfigParser(interpolation=None, strict=False)
    parser.optionxform = str
    with open(index_path, "r", encoding="utf-8", errors="replace") as fh:
        parser.read_file(fh)

    if not parser.has_section("Icon Theme"):
        raise configparser.NoSectionError("Icon Theme")

    header = parser["Icon Theme"]
    subdirs = _split_list(header.get("Directories", ""))
    for subdir in _split_list(header.get("ScaledDirectories", "")):
        if subdir not in subdirs:
            subdirs.append(subdir)

    directories = []
    for subdir in subdirs:
        if not parser.has_section(subdir):
            continue
        section = parser[subdir]
        size = _read_int(section, "Size", 0)
        directories.append(ThemeDirectory(
            subdir=subdir,
            size=size,
            scale=_read_int(section, "Scale", 1),
            type=section.get("Type", "Threshold"),
            min_size=_read_int(section, "MinSize", size),
            max_size=_read_int(section, "MaxSize", size),
            threshold=_read_int(section, "Threshold", 2),
        ))

    return ThemeIndex(
        name=theme_name,
        directories=tuple(directories),
        inherits=tuple(_split_list(header.get("Inherits", ""))),
    )


def _scan_icon_files(folder: str) -> List[Tuple[str, str]]:
    try:
        entries = list(os.scandir(folder))
    except (FileNotFoundError, NotADirectoryError):
        return []
    except OSError as e:
        logging.debug(f"Skipping unreadable icon folder {folder}: {e}")
        return []

    found = []
    for entry in entries:
        stem, ext = os.path.splitext(entry.name)
        if ext.lower() in ICON_EXTENSIONS and entry.is_file():
            found.append((stem, entry.path))
    return found


def _extension_rank(path: str) -> int:
    ext = os.path.splitext(path)[1].lower()
    return ICON_EXTENSIONS.index(ext) if ext in ICON_EXTENSIONS else len(ICON_EXTENSIONS)


class IconThemeProvider:
    """Capability the catalog needs from the desktop's icon theme.

    Subclasses implement icon_names(), lookup_icon() and with_search_paths();
    tests substitute in-memory fakes. Providers that cache what they read
    override refreshed() and index_steps().
    """

    def __init__(self, theme_name: str, search_paths: Iterable[str] = (), fallback_paths: Iterable[str] = ()):
        self.theme_name = theme_name
        self.search_paths = tuple(search_paths)
        self.fallback_paths = tuple(fallback_paths)

    def icon_names(self) -> List[str]:
        raise NotImplementedError

    def lookup_icon(self, name: str, size: int) -> Optional[str]:
        raise NotImplementedError

    def with_search_paths(self, search_paths: Iterable[str], fallback_paths: Iterable[str]) -> "IconThemeProvider":
        raise NotImplementedError

    def refreshed(self) -> "IconThemeProvider":
        """Provider that reads the theme again instead of reusing cached state."""
        return self

    def index_steps(self) -> Iterator[int]:
        """Prepare icon_names() in small steps; yields the files read per step."""
        return iter(())

    def excluding(self, root: Optional[str]) -> "IconThemeProvider":
        """Return a provider that no longer sees anything below ``root``."""
        if not root:
            return self

        search_paths = [path for path in self.search_paths if not _is_within(path, root)]
        fallback_paths = [path for path in self.fallback_paths if not _is_within(path, root)]
        if len(search_paths) == len(self.search_paths) and len(fallback_paths) == len(self.fallback_paths):
            return self
        return self.with_search_paths(search_paths, fallback_paths)


IndexEntry = Tuple[int, Optional[ThemeDirectory], str]


class FreedesktopIconTheme(IconThemeProvider):
    """Icon theme read from index.theme files on disk.

    The theme chain and the name index are read once per instance; use
    refreshed() for a provider that sees later changes on disk.
    """

    def __init__(self, theme_name: Optional[str] = None,
                 search_paths: Optional[Iterable[str]] = None,
                 fallback_paths: Optional[Iterable[str]] = None):
        super().__init__(
            theme_name or QIcon.themeName() or DEFAULT_THEME,
            default_search_paths() if search_paths is None else _unique_paths(search_paths),
            default_fallback_paths() if fallback_paths is None else _unique_paths(fallback_paths),
        )
        self._mutex = QMutex()
        self._chain: Optional[List[ThemeIndex]] = None
        self._index: Optional[Dict[str, List[IndexEntry]]] = None

    def __repr__(self):
        return f"FreedesktopIconTheme({self.theme_name!r}, {len(self.search_paths)} search paths)"

    def with_search_paths(self, search_paths, fallback_paths=None):
        if fallback_paths is None:
            fallback_paths = self.fallback_paths
        return FreedesktopIconTheme(self.theme_name, search_paths, fallback_paths)

    def refreshed(self) -> "FreedesktopIconTheme":
        return FreedesktopIconTheme(self.theme_name, self.search_paths, self.fallback_paths)

    def icon_names(self) -> List[str]:
        return sorted(self._ensure_index())

    def lookup_icon(self, name: str, size: int = DEFAULT_ICON_SIZE) -> Optional[str]:
        candidates = self._ensure_index().get(name)
        if not candidates:
            return None

        # Closest theme in the inheritance chain wins, size only breaks ties within it
        best_depth = min(depth for depth, _, _ in candidates)
        level = [c for c in candidates if c[0] == best_depth]
        best = min(
            level,
            key=lambda c: (c[1].size_distance(size) if c[1] is not None else 0, _extension_rank(c[2])),
        )
        return best[2]

    def index_steps(self) -> Iterator[int]:
        """Build the name index one icon folder at a time.

        Yields the number of icon files found in each scanned folder. Raises
        ProviderUnavailableError on the first step when neither the theme, its
        parents, hicolor nor any fallback folder exists.
        """
        with QMutexLocker(self._mutex):
            if self._index is not None:
                return
            chain = self._load_chain()

        folders = self._index_folders(chain)
        index: Dict[str, List[IndexEntry]] = {}
        for depth, directory, folder in folders:
            entries = _scan_icon_files(folder)
            for name, path in entries:
                index.setdefault(name, []).append((depth, directory, path))
            yield len(entries)

        logging.debug(f"Indexed {len(index)} icon names from {len(folders)} folders of themes "
                      f"{[theme.name for theme in chain]}")
        with QMutexLocker(self._mutex):
            if self._index is None:
                self._index = index

    def _ensure_index(self) -> Dict[str, List[IndexEntry]]:
        for _ in self.index_steps():
            pass
        with QMutexLocker(self._mutex):
            return self._index

    def _theme_dirs(self, theme_name: str) -> List[str]:
        dirs = []
        for base in self.search_paths:
            theme_dir = os.path.join(base, theme_name)
            if os.path.isdir(theme_dir):
                dirs.append(theme_dir)
        return dirs

    def _read_theme(self, theme_name: str) -> Optional[ThemeIndex]:
        for theme_dir in self._theme_dirs(theme_name):
            index_path = os.path.join(theme_dir, "index.theme")
            if not os.path.isfile(index_path):
                continue
            try:
                return read_theme_index(index_path, theme_name)
            except (configparser.Error, OSError) as e:
                logging.warning(f"Ignoring malformed theme index {index_path}: {e}")
        return None

    def _load_chain(self) -> List[ThemeIndex]:
        if self._chain is not None:
            return self._chain

        chain: List[ThemeIndex] = []
        visited = {DEFAULT_THEME}

        def visit(theme_name):
            if theme_name in visited:
                return
            visited.add(theme_name)
            theme = self._read_theme(theme_name)
            if theme is None:
                logging.debug(f"Icon theme '{theme_name}' not found in search paths")
                return
            chain.append(theme)
            for parent in theme.inherits:
                visit(parent)

        visit(self.theme_name)
        hicolor = self._read_theme(DEFAULT_THEME)
        if hicolor is not None:
            chain.append(hicolor)

        self._chain = chain
        return chain

    def _index_folders(self, chain: List[ThemeIndex]) -> List[IndexEntry]:
        """(depth, directory, folder) for every folder to scan, in lookup order."""
        folders: List[IndexEntry] = []
        for depth, theme in enumerate(chain):
            for theme_dir in self._theme_dirs(theme.name):
                for directory in theme.directories:
                    folders.append((depth, directory, os.path.join(theme_dir, directory.subdir)))

        fallback_found = False
        for folder in self.fallback_paths:
            if os.path.isdir(folder):
                fallback_found = True
                folders.append((len(chain), None, folder))

        if not chain and not fallback_found:
            raise ProviderUnavailableError(
                f"No icon theme '{self.theme_name}' found in {len(self.search_paths)} search paths"
            )
        return folders


@dataclass(frozen=True)
class IconHandle:
    name: str
    path: str
    display_icon: str


@dataclass(frozen=True)
class IconThemeSnapshot:
    """A provider view for one build, with the catalog's own icons removed.

    The name list is read once; refreshed() gives a snapshot that reads the
    theme again.
    """
    provider: IconThemeProvider
    bundled_root: Optional[str] = None
    icon_size: int = DEFAULT_ICON_SIZE
    _names: Optional[Tuple[str, ...]] = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self):
        if self.bundled_root:
            object.__setattr__(self, "bundled_root", str(self.bundled_root))
        object.__setattr__(self, "provider", self.provider.excluding(self.bundled_root))

    def refreshed(self) -> "IconThemeSnapshot":
        return IconThemeSnapshot(self.provider.refreshed(), self.bundled_root, self.icon_size)

    def index_steps(self) -> Iterator[int]:
        return self.provider.index_steps()

    def names(self) -> Tuple[str, ...]:
        if self._names is None:
            try:
                names = tuple(self.provider.icon_names())
            except OSError as e:
                raise ProviderUnavailableError(f"Icon enumeration failed: {e}") from e
            object.__setattr__(self, "_names", names)
        return self._names

    def resolve(self, name: str) -> IconHandle:
        try:
            path = self.provider.lookup_icon(name, self.icon_size)
        except OSError as e:
            raise ItemResolutionError(name, str(e)) from e
        if not path:
            raise ItemResolutionError(name, "no matching file in theme")
        return IconHandle(name=name, path=path, display_icon=name)

    def bundled_entries(self) -> List[Tuple[str, str]]:
        """(name, display_icon) for every SVG shipped in the bundled icon folder."""
        if not self.bundled_root:
            return []

        folder = Path(self.bundled_root) / BUNDLED_ICON_SUBDIR
        try:
            files = sorted(folder.iterdir())
        except OSError as e:
            logging.warning(f"No bundled icons found under {folder}: {e}")
            return []

        return [(path.stem, str(path)) for path in files if path.suffix == ".svg" and path.is_file()]
