"""Logging module for GeoChat."""

import json
from datetime import datetime
from typing import Optional, Callable


class Logger:
    """Session event log.

    Records route requests and responses, simulator start and stop, user
    commands and rejected messages. Each line is a timestamp, a message and
    JSON data. Lines go to stdout unless `echo` is off, to `log_path` if set,
    and to `callback` so the debug GUI can show them.
    """

    def __init__(self, log_path: Optional[str] = None, callback: Optional[Callable] = None,
                 echo: bool = True):
        self.log_path = log_path
        self.callback = callback
        self.echo = echo
        self.file = None
        if log_path:
            self.file = open(log_path, "a")
            self._write_header()

    def _write_header(self):
        self.file.write(f"\n{'='*60}\n")
        self.file.write(f"GeoChat Session Log - {datetime.now().isoformat()}\n")
        self.file.write(f"{'='*60}\n\n")
        self.file.flush()

    def log(self, message: str, data: Optional[dict] = None):
        """Log a message with optional structured data"""
        line = f"[{datetime.now().isoformat()}] {message}"
        if data:
            line += f" | {json.dumps(data, default=str)}"
        if self.echo:
            print(line)
        if self.file:
            self.file.write(line + "\n")
            self.file.flush()
        if self.callback:
            self.callback(message, data)

    def close(self):
        if self.file:
            self.file.close()
            self.file = None
