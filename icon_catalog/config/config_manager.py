import os
import sys
import yaml
import logging
import platform
from PyQt6.QtCore import QDir

from icon_catalog.core.builder import DEFAULT_CHUNK_SIZE
from icon_catalog.core.icon_theme import DEFAULT_ICON_SIZE

APP_NAME = "icon-catalog"


def _is_running_from_executable():
    """Check if we're running from a .exe file (portable mode) vs python script"""
    return getattr(sys, 'frozen', False) or sys.executable.endswith('.exe') and not sys.executable.endswith('python.exe')


def _is_path_accessible(path):
    """Check if a path exists and is accessible"""
    try:
        return bool(path) and os.path.exists(path) and os.access(path, os.R_OK)
    except (OSError, TypeError):
        return False


def _get_windows_config_path(app_name):
    """Windows config location: APPDATA, then next to the exe (portable), then the user profile"""
    appdata = os.environ.get("APPDATA")
    if appdata and _is_path_accessible(appdata):
        return os.path.join(appdata, app_name, "config.yml")

    if _is_running_from_executable():
        return os.path.join(os.path.dirname(sys.executable), app_name, "config.yml")

    user_profile = os.environ.get("USERPROFILE") or get_default_user_dir()
    return os.path.join(user_profile, f".{app_name}", "config.yml")


def get_default_user_dir():
    return str(QDir.homePath())


def get_config_path():
    """Get the platform-specific configuration file path"""
    system = platform.system()

    if system == "Windows":
        return _get_windows_config_path(APP_NAME)
    elif system == "Darwin":  # macOS
        return os.path.expanduser(f"~/Library/Application Support/{APP_NAME}/config.yml")
    else:  # Linux/Unix like systems
        xdg_config_home = os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config"))
        return os.path.join(xdg_config_home, APP_NAME, "config.yml")


def get_default_log_path():
    system = platform.system()

    if system == "Windows":
        log_base = os.environ.get("LOCALAPPDATA") or os.environ.get("APPDATA") or get_default_user_dir()
        return os.path.join(log_base, APP_NAME, "logs", f"{APP_NAME}.log")
    elif system == "Darwin":
        return os.path.expanduser(f"~/Library/Logs/{APP_NAME}/{APP_NAME}.log")
    else:
        xdg_state_home = os.environ.get("XDG_STATE_HOME", os.path.expanduser("~/.local/state"))
        return os.path.join(xdg_state_home, APP_NAME, "logs", f"{APP_NAME}.log")


def ensure_dir_exists(file_path):
    if not file_path:
        # Logging might not be set up when this is first called by load_config for default log path
        print("Warning (ensure_dir_exists): Called with empty file_path.", file=sys.stderr)
        return False

    try:
        dir_name = os.path.dirname(file_path)
        if not dir_name:
            return False

        os.makedirs(dir_name, exist_ok=True)

        if os.path.exists(dir_name) and os.access(dir_name, os.W_OK):
            return True
        else:
            print(f"Warning (ensure_dir_exists): Directory {dir_name} exists but is not writable", file=sys.stderr)
            return False

    except PermissionError as e:
        print(f"Warning (ensure_dir_exists): Permission denied creating directory for {file_path}: {e}", file=sys.stderr)
        return False
    except OSError as e:
        print(f"Warning (ensure_dir_exists): OS error creating directory for {file_path}: {e}", file=sys.stderr)
        return False


def get_default_config():
    return {
        "log_path": get_default_log_path(),
        "log_level": "INFO",

        # Where icons come from
        "icon_theme": {
            "theme_name": None,          # None = whatever Qt reports, else hicolor
            "search_paths": [],          # Extra theme base directories, searched first
            "use_system_paths": True,    # Also search Qt's and the XDG icon directories
            "icon_size": DEFAULT_ICON_SIZE,
            "bundled_icon_dir": None,    # None = icons shipped in the package
        },

        # How the catalog is built
        "catalog": {
            "chunk_size": DEFAULT_CHUNK_SIZE,   # Icon names resolved per idle step
            "step_interval_ms": 0,              # Delay between steps
            "prewarm": True,                    # Start building on the first idle tick
        },
    }


def _positive_int(value):
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _merge_config(defaults, user_config):
    final_config = {key: (dict(value) if isinstance(value, dict) else value) for key, value in defaults.items()}
    for key, value in user_config.items():
        if isinstance(final_config.get(key), dict) and isinstance(value, dict):
            final_config[key].update(value)  # Sections are merged key by key
        elif isinstance(final_config.get(key), dict) and value is not None:
            print(f"Warning (load_config): Section '{key}' should be a mapping, using defaults", file=sys.stderr)
        else:
            final_config[key] = value
    return final_config


def _validate_config(final_config, default_config_data):
    catalog = final_config["catalog"]
    if not _positive_int(catalog.get("chunk_size")):
        print(f"Warning (load_config): Invalid catalog.chunk_size '{catalog.get('chunk_size')}'. "
              f"Using default: {DEFAULT_CHUNK_SIZE}", file=sys.stderr)
        catalog["chunk_size"] = DEFAULT_CHUNK_SIZE

    interval = catalog.get("step_interval_ms")
    if not isinstance(interval, int) or isinstance(interval, bool) or interval < 0:
        catalog["step_interval_ms"] = 0
    catalog["prewarm"] = bool(catalog.get("prewarm", True))

    icon_theme = final_config["icon_theme"]
    icon_theme["use_system_paths"] = bool(icon_theme.get("use_system_paths", True))
    if not _positive_int(icon_theme.get("icon_size")):
        print(f"Warning (load_config): Invalid icon_theme.icon_size '{icon_theme.get('icon_size')}'. "
              f"Using default: {DEFAULT_ICON_SIZE}", file=sys.stderr)
        icon_theme["icon_size"] = DEFAULT_ICON_SIZE

    search_paths = icon_theme.get("search_paths") or []
    if isinstance(search_paths, str):
        search_paths = [search_paths]
    icon_theme["search_paths"] = [os.path.expanduser(str(path)) for path in search_paths if path]

    if icon_theme.get("bundled_icon_dir"):
        icon_theme["bundled_icon_dir"] = os.path.expanduser(str(icon_theme["bundled_icon_dir"]))

    if final_config.get("log_path") is None:
        final_config["log_path"] = default_config_data["log_path"]
        print(f"Info (load_config): Path key 'log_path' was null, reverted to default: {final_config['log_path']}",
              file=sys.stderr)
    else:
        final_config["log_path"] = os.path.expanduser(str(final_config["log_path"]))


def load_config(config_path_override=None):
    preferred_config_path = get_config_path()
    default_config_data = get_default_config()

    paths_to_check = []
    if config_path_override:
        paths_to_check.append(os.path.expanduser(config_path_override))
    paths_to_check.append(preferred_config_path)

    loaded_user_config = None
    for path_to_try in paths_to_check:
        if path_to_try and os.path.exists(path_to_try):
            try:
                with open(path_to_try, "r", encoding="utf-8") as f:
                    content = f.read()
                    if not content.strip():  # Handle truly empty file
                        loaded_user_config = {}
                    else:
                        loaded_user_config = yaml.safe_load(content)
                        if loaded_user_config is None:  # Only comments
                            loaded_user_config = {}
                if not isinstance(loaded_user_config, dict):
                    raise ValueError(f"top level must be a mapping, got {type(loaded_user_config).__name__}")
                # Use print here as logging might not be set up yet
                print(f"INFO (load_config): Loaded configuration from {path_to_try}", file=sys.stderr)
                break
            except (OSError, ValueError, yaml.YAMLError) as e:
                print(f"Warning (load_config): Could not load/parse config from {path_to_try}: {e}", file=sys.stderr)
                loaded_user_config = None  # Ensure reset

    final_config = _merge_config(default_config_data, loaded_user_config or {})
    _validate_config(final_config, default_config_data)

    if loaded_user_config is None:  # No config file found or loaded successfully
        print(f"INFO (load_config): No existing config found. Creating default at: {preferred_config_path}", file=sys.stderr)
        config_created = False

        if ensure_dir_exists(preferred_config_path):
            try:
                with open(preferred_config_path, "w", encoding="utf-8") as f:
                    yaml.safe_dump(final_config, f, sort_keys=False, allow_unicode=True)
                config_created = True
            except OSError as e:
                print(f"ERROR (load_config): Could not create default config at {preferred_config_path}: {e}", file=sys.stderr)
        else:
            print(f"ERROR (load_config): Could not create dir for default config: {os.path.dirname(preferred_config_path)}. Using in-memory defaults.", file=sys.stderr)

        final_config['_config_issues'] = {
            'created_successfully': config_created,
            'preferred_path': preferred_config_path,
            'using_memory_only': not config_created
        }

    return final_config


def setup_logging(log_path_from_config, log_level_str_from_config):
    log_level_str = str(log_level_str_from_config).upper()
    log_level = getattr(logging, log_level_str, None)
    if not isinstance(log_level, int):
        log_level = logging.INFO  # Default to INFO if invalid

    logger = logging.getLogger()  # Get root logger
    logger.setLevel(log_level)

    if logger.hasHandlers():  # Clear any existing handlers from previous runs or calls
        logger.handlers.clear()

    # Always add StreamHandler for console output
    stream_handler = logging.StreamHandler(sys.stderr)
    stream_formatter = logging.Formatter("%(asctime)s [%(levelname)-7.7s] %(message)s")
    stream_handler.setFormatter(stream_formatter)
    logger.addHandler(stream_handler)

    if not log_path_from_config:
        logging.error("Log path not configured. File logging disabled. Logging to stderr only.")
        return

    if not ensure_dir_exists(log_path_from_config):
        logging.error(f"Could not create log directory for {log_path_from_config}. File logging disabled. Logging to stderr only.")
        return

    try:
        # mode="w" truncates log on each run. Use mode="a" to append.
        file_handler = logging.FileHandler(log_path_from_config, mode="w", encoding="utf-8")
        file_formatter = logging.Formatter("%(asctime)s [%(levelname)-5.5s] %(name)s (%(module)s.%(funcName)s:%(lineno)d): %(message)s")
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)
        logging.info(f"File logging initialized. Level: {log_level_str}. Output to: {log_path_from_config}")
    except OSError as e:
        # If FileHandler fails, logging will still go to StreamHandler
        logging.error(f"Could not set up file logger at {log_path_from_config}: {e}. Logging to stderr only.")
