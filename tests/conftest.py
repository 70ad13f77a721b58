"""
Pytest configuration and fixtures for icon-catalog tests.
"""

import os
import sys
import tempfile
import shutil
from pathlib import Path

import pytest

# Qt must not try to reach a display server while testing
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PyQt6.QtWidgets import QApplication

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from icon_catalog.core.errors import ProviderUnavailableError
from icon_catalog.core.icon_theme import IconThemeProvider, IconThemeSnapshot
from icon_catalog.core.scheduler import ScheduledStep


class ManualScheduler:
    """Collects scheduled steps and runs them only when a test asks for it."""

    def __init__(self):
        self.tasks = []

    @property
    def pending(self):
        return [task for task in self.tasks if task.active]

    def schedule(self, step, name=""):
        task = ScheduledStep(step, name)
        self.tasks.append(task)
        return task

    def run_once(self):
        """One event-loop tick: every active task runs one step."""
        for task in self.pending:
            task.run_once()
        return bool(self.pending)

    def run_until_idle(self, max_ticks=10000):
        ticks = 0
        while self.pending and ticks < max_ticks:
            self.run_once()
            ticks += 1
        return ticks


class FakeIconTheme(IconThemeProvider):
    """In-memory icon theme: name -> resolved file path."""

    def __init__(self, icons, failing=(), extra_names=(), unavailable=False,
                 search_paths=("/fake/share/icons",), fallback_paths=()):
        super().__init__("FakeTheme", search_paths, fallback_paths)
        self.icons = dict(icons)
        self.failing = set(failing)
        self.extra_names = list(extra_names)
        self.unavailable = unavailable
        self.names_calls = 0
        self.lookups = []

    def icon_names(self):
        self.names_calls += 1
        if self.unavailable:
            raise ProviderUnavailableError("fake icon theme is offline")
        return sorted(list(self.icons) + list(self.failing)) + self.extra_names

    def lookup_icon(self, name, size):
        self.lookups.append(name)
        if name in self.failing:
            raise OSError(f"cannot read {name}")
        return self.icons.get(name)

    def with_search_paths(self, search_paths, fallback_paths):
        clone = FakeIconTheme(self.icons, self.failing, self.extra_names, self.unavailable,
                              search_paths, fallback_paths)
        clone.lookups = self.lookups
        return clone


SAMPLE_ICONS = {
    "document-save": "/usr/share/icons/Adwaita/scalable/actions/document-save.svg",
    "edit-copy": "/usr/share/icons/Adwaita/16x16/actions/edit-copy.png",
    "firefox": "/usr/share/icons/hicolor/48x48/apps/firefox.png",
    "Terminal": "/usr/share/icons/hicolor/scalable/apps/Terminal.svg",
    "folder": "/usr/share/icons/Adwaita/scalable/places/folder.svg",
    "battery-full": "/usr/share/icons/Adwaita/symbolic/status/battery-full-symbolic.svg",
    "audio-card": "/usr/share/icons/Adwaita/48x48/devices/audio-card.png",
    "text-x-generic": "/usr/share/icons/Adwaita/32x32/mimetypes/text-x-generic.png",
    "face-smile": "/usr/share/icons/Adwaita/scalable/emotes/face-smile.svg",
    "steam": "/usr/share/pixmaps/steam.png",
}


def write_icon_theme(base_dir, name, directories, inherits=None):
    """Create a freedesktop icon theme on disk.

    ``directories`` maps a subdir to (size, type, [icon file names]).
    """
    theme_dir = Path(base_dir) / name
    theme_dir.mkdir(parents=True, exist_ok=True)

    lines = ["[Icon Theme]", f"Name={name}", f"Directories={','.join(directories)}"]
    if inherits:
        lines.append(f"Inherits={','.join(inherits)}")
    lines.append("")
    for subdir, (size, kind, files) in directories.items():
        lines.extend([f"[{subdir}]", f"Size={size}", f"Type={kind}", ""])
        folder = theme_dir / subdir
        folder.mkdir(parents=True, exist_ok=True)
        for file_name in files:
            (folder / file_name).write_text("<svg/>" if file_name.endswith(".svg") else "png")

    (theme_dir / "index.theme").write_text("\n".join(lines))
    return theme_dir


@pytest.fixture(scope="session")
def qapp():
    """Create a QApplication instance for testing Qt components."""
    if not QApplication.instance():
        app = QApplication([])
    else:
        app = QApplication.instance()
    yield app
    # Don't quit the app here as it might affect other tests


@pytest.fixture(autouse=True)
def isolated_user_dirs(tmp_path, monkeypatch):
    """Keep config files and logs written by the code under test out of $HOME."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path / "state"))


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def manual_scheduler():
    return ManualScheduler()


@pytest.fixture
def fake_theme():
    return FakeIconTheme(SAMPLE_ICONS)


@pytest.fixture
def bundled_dir(temp_dir):
    """Bundled icon folder with two distro logos, one custom icon and a stray file."""
    root = Path(temp_dir) / "bundled"
    actions = root / "scalable" / "actions"
    actions.mkdir(parents=True)
    for name in ("distro-ubuntu.svg", "distro-fedora.svg", "custom-gear.svg"):
        (actions / name).write_text("<svg/>")
    (actions / "README.txt").write_text("not an icon")
    return str(root)


@pytest.fixture
def snapshot(fake_theme, bundled_dir):
    return IconThemeSnapshot(fake_theme, bundled_dir)


@pytest.fixture
def icon_theme_dir(temp_dir):
    """On-disk icon themes: TestTheme inheriting hicolor, plus a pixmaps folder."""
    base = Path(temp_dir) / "icons"
    write_icon_theme(base, "TestTheme", {
        "16x16/actions": (16, "Fixed", ["edit-copy.png", "document-save.png"]),
        "48x48/actions": (48, "Fixed", ["edit-copy.png"]),
        "scalable/apps": (48, "Scalable", ["terminal.svg"]),
        "48x48/places": (48, "Fixed", ["folder.png"]),
    }, inherits=["hicolor"])
    write_icon_theme(base, "hicolor", {
        "48x48/apps": (48, "Threshold", ["firefox.png", "terminal.png"]),
        "scalable/status": (48, "Scalable", ["battery-full.svg"]),
    })

    pixmaps = Path(temp_dir) / "pixmaps"
    pixmaps.mkdir()
    (pixmaps / "steam.png").write_text("png")
    return {"base": str(base), "pixmaps": str(pixmaps)}


@pytest.fixture
def sample_config(temp_dir, icon_theme_dir, bundled_dir):
    """Configuration pointing at the on-disk test themes only."""
    return {
        "log_path": os.path.join(temp_dir, "logs", "icon-catalog.log"),
        "log_level": "DEBUG",
        "icon_theme": {
            "theme_name": "TestTheme",
            "search_paths": [icon_theme_dir["base"]],
            "use_system_paths": False,
            "icon_size": 48,
            "bundled_icon_dir": bundled_dir,
        },
        "catalog": {
            "chunk_size": 2,
            "step_interval_ms": 0,
            "prewarm": False,
        },
    }


@pytest.fixture
def temp_config_file(temp_dir, sample_config):
    """Create a temporary config file for testing."""
    import yaml
    config_path = os.path.join(temp_dir, "config.yml")

    with open(config_path, 'w') as f:
        yaml.dump(sample_config, f)

    return config_path
