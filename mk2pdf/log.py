"""
Colored console logging shared by the conversion stages.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

import threading

from colorama import init, Fore, Style

# Initialize colorama for cross-platform colored output
init(autoreset=True)


class ConsoleLogger:
    """Prints tagged, colored log lines to stdout."""

    def __init__(self, debug: bool = False):
        self.debug = debug
        self._lock = threading.Lock()

    def _emit(self, color: str, tag: str, message: str) -> None:
        with self._lock:
            print(f"{color}[{tag}]{Style.RESET_ALL} {message}")

    def log_debug(self, message: str) -> None:
        """Log debug message with color (only if debug mode is enabled)."""
        if self.debug:
            self._emit(Fore.CYAN, "DEBUG", message)

    def log_info(self, message: str) -> None:
        """Log info message with color."""
        self._emit(Fore.GREEN, "INFO", message)

    def log_warning(self, message: str) -> None:
        """Log warning message with color."""
        self._emit(Fore.YELLOW, "WARNING", message)

    def log_error(self, message: str) -> None:
        """Log error message with color."""
        self._emit(Fore.RED, "ERROR", message)

    def log_success(self, message: str) -> None:
        """Log success message with color."""
        self._emit(Fore.GREEN, "OK", message)
