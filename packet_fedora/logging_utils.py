from __future__ import annotations

import logging
from pathlib import Path

FILE_HANDLER = "packet_fedora.file"
CONSOLE_HANDLER = "packet_fedora.console"

_FORMAT = logging.Formatter(
    fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S%z",
)


def _open_log(path: str) -> logging.Handler:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(path)


def configure_logging(log_path: str, *, fallback_path: str, verbose: bool = False) -> str:
    """Send the run log to log_path and progress to stderr.

    The file always records DEBUG (every command with its output), so a
    failed run can be diagnosed after the fact. The console shows INFO, or
    DEBUG with --verbose. When log_path (usually from the config file) cannot
    be opened, the log goes to fallback_path in the work directory.

    Calling it again replaces the handlers from the previous call.

    Returns the log file path in use.
    """

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in root.handlers[:]:
        if h.get_name() in {FILE_HANDLER, CONSOLE_HANDLER}:
            root.removeHandler(h)
            h.close()

    chosen_path = log_path
    open_error = None
    try:
        file_handler = _open_log(log_path)
    except OSError as e:
        chosen_path = fallback_path
        open_error = e
        file_handler = _open_log(fallback_path)
    file_handler.set_name(FILE_HANDLER)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(_FORMAT)

    console = logging.StreamHandler()
    console.set_name(CONSOLE_HANDLER)
    console.setLevel(logging.DEBUG if verbose else logging.INFO)
    console.setFormatter(_FORMAT)

    root.addHandler(file_handler)
    root.addHandler(console)

    if open_error is not None:
        logging.getLogger(__name__).warning("Cannot log to %s (%s); using %s", log_path, open_error, fallback_path)
    return chosen_path
