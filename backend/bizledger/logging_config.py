# Overview: Log level and optional JSON formatting for the Flask application logger.

from __future__ import annotations

import json
import logging

from flask import Flask


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_logging(app: Flask) -> None:
    level = logging.getLevelName(str(app.config.get("LOG_LEVEL", "INFO")).upper())
    if not isinstance(level, int):
        level = logging.INFO

    app.logger.setLevel(level)
    logging.getLogger("bizledger").setLevel(level)

    if not app.config.get("LOG_JSON"):
        return

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter(datefmt="%Y-%m-%d %H:%M:%S"))
    handler.setLevel(level)

    root = logging.getLogger()
    # Replace rather than stack formatters when the factory runs twice
    root.handlers = [h for h in root.handlers if not isinstance(h.formatter, JsonFormatter)]
    root.addHandler(handler)
    root.setLevel(level)
