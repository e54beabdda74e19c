# shared/logutil.py
from datetime import datetime, UTC
from typing import Any, Dict, Optional, TextIO
import os
import sys

STATUS_EMOJI = {
    "INFO": "ℹ️",
    "WARN": "⚠️",
    "ERROR": "❌",
    "DEBUG": "🔍",
    "OK": "✅",
}

# Lower number = more severe
LOG_LEVELS = {
    "ERROR": 0,
    "WARN": 1,
    "WARNING": 1,
    "INFO": 2,
    "OK": 2,
    "DEBUG": 3,
}

_CANONICAL = {0: "ERROR", 1: "WARN", 2: "INFO", 3: "DEBUG"}


def _is_true(value: Any) -> bool:
    return str(value or "false").lower() == "true"


class LogUtil:
    """
    Two-phase service logger:
      - Bootstrap phase: LOG_LEVEL / DEBUG_<SERVICE> from the environment
      - Configured phase: same keys from the loaded config

    Output line: [ts][service][LEVEL]emoji message
    Logging must NEVER raise.
    """

    def __init__(self, service_name: str, stream: Optional[TextIO] = None):
        self.service_name = service_name
        self._stream = stream
        self._debug_key = f"DEBUG_{service_name.upper()}"

        env_level = os.getenv("LOG_LEVEL", "INFO").upper()
        self.log_level = LOG_LEVELS.get(env_level, LOG_LEVELS["INFO"])
        if _is_true(os.getenv(self._debug_key)):
            self.log_level = LOG_LEVELS["DEBUG"]

        self._configured = False

    @property
    def debug_enabled(self) -> bool:
        return self.log_level >= LOG_LEVELS["DEBUG"]

    @property
    def level_name(self) -> str:
        return _CANONICAL[self.log_level]

    # -------------------------------------------------
    # Configuration phase
    # -------------------------------------------------

    def configure_from_config(self, config: Dict[str, Any]) -> None:
        if self._configured:
            return

        try:
            cfg_level = str(config.get("LOG_LEVEL", "")).upper()
            if cfg_level in LOG_LEVELS:
                self.log_level = LOG_LEVELS[cfg_level]

            if _is_true(config.get(self._debug_key)):
                self.log_level = LOG_LEVELS["DEBUG"]

            self._configured = True
            self.info(
                f"[LOG CONFIGURED] level={self.level_name}",
                emoji="🧪" if self.debug_enabled else "🔊",
            )
        except Exception:
            # Logging must never break the process
            pass

    # -------------------------------------------------
    # Internal formatting
    # -------------------------------------------------

    def _stamp(self, level: str, message: str, emoji: str) -> str:
        now = datetime.now(UTC).isoformat(timespec="seconds")
        symbol = emoji or STATUS_EMOJI.get(level, "")
        return f"[{now}][{self.service_name}][{level}]{symbol} {message}"

    def _emit(self, level: str, message: str, emoji: str = ""):
        try:
            if LOG_LEVELS.get(level, LOG_LEVELS["INFO"]) > self.log_level:
                return
            print(self._stamp(level, message, emoji), file=self._stream or sys.stdout, flush=True)
        except Exception:
            pass

    # -------------------------------------------------
    # Public API
    # -------------------------------------------------

    def info(self, message: str, emoji: str = STATUS_EMOJI["INFO"]):
        self._emit("INFO", message, emoji)

    def warn(self, message: str, emoji: str = STATUS_EMOJI["WARN"]):
        self._emit("WARN", message, emoji)

    def warning(self, message: str, emoji: str = STATUS_EMOJI["WARN"]):
        self.warn(message, emoji)

    def error(self, message: str, emoji: str = STATUS_EMOJI["ERROR"]):
        self._emit("ERROR", message, emoji)

    def debug(self, message: str, emoji: str = STATUS_EMOJI["DEBUG"]):
        self._emit("DEBUG", message, emoji)

    def ok(self, message: str, emoji: str = STATUS_EMOJI["OK"]):
        self._emit("OK", message, emoji)
