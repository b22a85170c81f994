"""bgfetch GUI entry point.

One page with two ways of running the same slow paginated fetch (background
thread vs. async/await), a shared Cancel button, a progress bar, the
processing-time status, the log (newest first) and the fetched items.

Run with:
    python -m bgfetch.gui.app
"""

from __future__ import annotations

import os
from dataclasses import fields
from typing import List, Optional, Tuple

from nicegui import ui

from bgfetch.core.utils.logging import get_logger, setup_logging
from bgfetch.gui.app_config import AppConfig
from bgfetch.gui.fetch_controller import FetchController
from bgfetch.gui.state import FetchState, LogEntry

logger = get_logger(__name__)


def _env_bool(name: str, default: bool) -> bool:
    """Parse env var as bool; if unset/invalid returns default."""
    raw = os.getenv(name)
    if raw is None:
        return default
    v = raw.strip().lower()
    if v in {"1", "true", "yes", "on"}:
        return True
    if v in {"0", "false", "no", "off"}:
        return False
    return default


def _env_int(name: str, default: int) -> int:
    """Parse env var as int; if unset/invalid returns default."""
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def format_log_entry(entry: LogEntry) -> str:
    timestamp, message = entry
    return f"{timestamp:%H:%M:%S}  {message}"


def settings_rows(config: AppConfig) -> List[Tuple[str, str]]:
    """``(label, value)`` pairs for the editable config fields."""
    rows = []
    for f in fields(config.data):
        if f.name == "schema_version":
            continue
        label = config.get_field_metadata(f.name).get("label", f.name)
        rows.append((label, str(config.get_attribute(f.name))))
    return rows


def build_page(controller: FetchController, config: Optional[AppConfig] = None) -> None:
    """Create the widgets for ``controller`` and bind them to its state."""
    state = controller.state
    fetch_range = controller.fetch_range

    with ui.column().classes("w-full max-w-4xl mx-auto gap-3"):
        ui.label("Background Processing").classes("text-xl font-semibold")
        ui.label(
            f"Fetching {fetch_range.count} items from offset {fetch_range.offset}, "
            f"{fetch_range.page_size} per page."
        ).classes("text-sm")

        if config is not None:
            with ui.expansion("Settings").classes("w-full text-sm"):
                with ui.grid(columns=2).classes("gap-x-4 gap-y-0"):
                    for label, value in settings_rows(config):
                        ui.label(label)
                        ui.label(value)
                ui.label(f"Edit {config.path} and reload the page to change them.").classes("text-xs")

        with ui.row().classes("gap-2"):
            thread_btn = ui.button("Start (thread)", color="primary")
            async_btn = ui.button("Start (async / await)", color="primary")
            cancel_btn = ui.button("Cancel", color="warning")

        with ui.row().classes("items-center gap-2"):
            ui.label("Processing time:").classes("text-sm font-semibold")
            status = ui.label(state.processing_time or "").classes("text-sm")

        progress = ui.linear_progress(value=0, show_value=False).classes("w-full")
        progress.props("instant-feedback")
        progress.visible = False

        with ui.row().classes("w-full gap-3 no-wrap"):
            with ui.card().classes("w-1/2"):
                ui.label("Log").classes("font-semibold")
                log_column = ui.column().classes("gap-0 text-xs")
            with ui.card().classes("w-1/2"):
                ui.label("Data").classes("font-semibold")
                data_column = ui.column().classes("gap-0 text-xs")

    def _sync_buttons() -> None:
        running = controller.is_running()
        thread_btn.enabled = not running
        async_btn.enabled = not running

    def _on_log(entry: LogEntry) -> None:
        with log_column:
            label = ui.label(format_log_entry(entry))
        label.move(log_column, target_index=0)

    def _on_data(batch) -> None:
        with data_column:
            for item in batch:
                ui.label(item)

    def _on_progress(value: int, visible: bool) -> None:
        progress.value = value / 100.0
        progress.visible = visible
        _sync_buttons()

    def _on_processing_time(value) -> None:
        status.text = value or ""

    state.on_log_changed(_on_log)
    state.on_data_changed(_on_data)
    state.on_progress_changed(_on_progress)
    state.on_processing_time_changed(_on_processing_time)

    def _start_thread() -> None:
        if controller.start_thread_style() is None:
            ui.notify("A fetch is already running.", type="warning")
        _sync_buttons()

    async def _start_async() -> None:
        if controller.is_running():
            ui.notify("A fetch is already running.", type="warning")
            return
        await controller.start_async_style()
        _sync_buttons()

    thread_btn.on_click(_start_thread)
    async_btn.on_click(_start_async)
    cancel_btn.on_click(controller.cancel)


@ui.page("/")
def home() -> None:
    """Each client gets its own state and controller."""
    ui.page_title("bgfetch")
    config = AppConfig.load()
    config.ensure_exists()
    controller = FetchController.from_config(FetchState(), config)
    build_page(controller, config)


def main(*, reload: bool | None = None, native_bool: bool | None = None) -> None:
    """Start the bgfetch GUI.

    Env vars (used only when arg is None):
      - BGFETCH_GUI_NATIVE: 1/0 (default 0, browser mode)
      - BGFETCH_GUI_RELOAD: 1/0 (default 0)
      - BGFETCH_LOG_LEVEL: console log level (default INFO)
      - HOST: bind host
      - PORT: bind port (default 8080)
    """
    setup_logging(level=os.getenv("BGFETCH_LOG_LEVEL", "INFO"))

    native_bool = _env_bool("BGFETCH_GUI_NATIVE", False) if native_bool is None else native_bool
    reload = _env_bool("BGFETCH_GUI_RELOAD", False) if reload is None else reload
    port = _env_int("PORT", 8080)
    host = os.getenv("HOST", "127.0.0.1")

    logger.info("Starting bgfetch GUI: host=%s port=%s reload=%s native=%s", host, port, reload, native_bool)

    ui.run(
        host=host,
        port=port,
        reload=reload,
        native=native_bool,
        title="bgfetch",
    )


if __name__ in {"__main__", "__mp_main__"}:
    main()
