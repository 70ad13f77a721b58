# CLI entry point for icon-catalog and python -m icon_catalog

import sys
from typing import List, Optional

import typer
from PyQt6.QtCore import QCoreApplication, QEventLoop, QTimer

from icon_catalog.config.catalog_setup import create_catalog_cache
from icon_catalog.config.config_manager import load_config, setup_logging
from icon_catalog.core.classifier import classify
from icon_catalog.core.filtering import filter_catalog
from icon_catalog.models.icon_model import Category, FilterQuery

app_cli = typer.Typer(help="Inspect the icon catalog built from the desktop icon theme")

CONFIG_OPTION = typer.Option(None, "--config", help="Configuration file to use")
THEME_OPTION = typer.Option(None, "--theme", "-t", help="Icon theme name (default: current theme)")
SEARCH_PATH_OPTION = typer.Option(None, "--search-path", "-s", help="Extra icon theme base directory")
NO_SYSTEM_PATHS_OPTION = typer.Option(False, "--no-system-paths", help="Only search the given --search-path directories")
TIMEOUT_OPTION = typer.Option(120, "--timeout", help="Seconds to wait for the catalog")
VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Log build progress to stderr")

_qt_app = None


def _wait_for_future(future, timeout_s):
    """Spin a Qt event loop until ``future`` is done or the timeout expires."""
    if future.done():
        return
    loop = QEventLoop()
    future.add_done_callback(lambda _: loop.quit())
    QTimer.singleShot(int(timeout_s * 1000), loop.quit)
    loop.exec()


def _build_catalog(config_path, theme, search_paths, no_system_paths, timeout, verbose):
    config = load_config(config_path)
    if verbose:
        setup_logging(config.get("log_path"), "DEBUG")

    theme_config = config["icon_theme"]
    if theme:
        theme_config["theme_name"] = theme
    if search_paths:
        theme_config["search_paths"] = list(search_paths) + list(theme_config["search_paths"])
    if no_system_paths:
        theme_config["use_system_paths"] = False
    config["catalog"]["prewarm"] = False

    global _qt_app
    if QCoreApplication.instance() is None:
        # The idle scheduler needs an application object for its event loop
        _qt_app = QCoreApplication(sys.argv[:1])
    cache = create_catalog_cache(config)
    try:
        future = cache.get()
        _wait_for_future(future, timeout)
        if not future.done():
            typer.echo(f"Icon catalog was not ready after {timeout}s", err=True)
            raise typer.Exit(code=1)
        return future.result()
    finally:
        cache.close()


@app_cli.command("list")
def list_icons(
    category: Category = typer.Option(Category.ALL, "--category", "-c", case_sensitive=False, help="Only this category"),
    search: str = typer.Option("", "--search", "-q", help="Case-insensitive substring of the icon name"),
    config: Optional[str] = CONFIG_OPTION,
    theme: Optional[str] = THEME_OPTION,
    search_path: Optional[List[str]] = SEARCH_PATH_OPTION,
    no_system_paths: bool = NO_SYSTEM_PATHS_OPTION,
    timeout: int = TIMEOUT_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Print matching icons as NAME<TAB>CATEGORY."""
    catalog = _build_catalog(config, theme, search_path, no_system_paths, timeout, verbose)
    for record in filter_catalog(catalog, FilterQuery(category, search)):
        typer.echo(f"{record.name}\t{record.category.value}")


@app_cli.command()
def stats(
    config: Optional[str] = CONFIG_OPTION,
    theme: Optional[str] = THEME_OPTION,
    search_path: Optional[List[str]] = SEARCH_PATH_OPTION,
    no_system_paths: bool = NO_SYSTEM_PATHS_OPTION,
    timeout: int = TIMEOUT_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Print the number of icons per category."""
    catalog = _build_catalog(config, theme, search_path, no_system_paths, timeout, verbose)
    counts = catalog.count_by_category()
    for category in Category:
        if category in counts:
            typer.echo(f"{category.label}\t{counts[category]}")
    typer.echo(f"Total\t{len(catalog)}")


@app_cli.command("classify")
def classify_paths(paths: List[str] = typer.Argument(..., help="Icon file paths")):
    """Print the category each icon path would be filed under."""
    for path in paths:
        typer.echo(f"{path}\t{classify(path).value}")


if __name__ == "__main__":
    app_cli()
