"""Shared logging utilities."""

import json
import logging
import re
import shutil
from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from uuid import uuid4

LOG_ROOT = Path.cwd() / "logs"
CLI_LOG_FILE = LOG_ROOT / "proxy.log"

# Query parameters never written to disk in clear
REDACTED_PARAMS = {"signature"}
_SAFE_SEGMENT = re.compile(r"[^A-Za-z0-9.-]")


def write_request_log(
    method: str,
    path: str,
    query: dict[str, str],
    headers: dict[str, str],
    *,
    status: int | None = None,
    target_url: str | None = None,
    log_root: Path | None = None,
) -> Path:
    """Write a single proxied request log entry."""
    log_root = log_root or LOG_ROOT
    payload = {
        "timestamp": _utc_now(),
        "method": method,
        "path": path,
        "query": _redact_query(query),
        "headers": _redact_headers(headers),
        "status": status,
        "target": target_url,
    }
    shop = _SAFE_SEGMENT.sub("_", query.get("shop") or "").strip("._")
    folder = log_root / "requests" / shop if shop else log_root / "requests"
    return _write_json(folder, payload)


def write_cli_log(
    level: str,
    message: str,
    *,
    log_file: Path | None = None,
    **extra: Any,
) -> None:
    """Append a line to the rolling CLI log file."""
    log_file = log_file or CLI_LOG_FILE
    log_file.parent.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S")
    extra_str = " ".join(f"{k}={v}" for k, v in extra.items()) if extra else ""
    line = f"[{timestamp}] {level}: {message}"
    if extra_str:
        line += f" {extra_str}"
    line += "\n"
    with log_file.open("a") as f:
        f.write(line)


def clear_logs(log_root: Path = LOG_ROOT) -> None:
    """Remove logs left over from a previous run."""
    if log_root.exists():
        shutil.rmtree(log_root, ignore_errors=True)


class CliLogHandler(logging.Handler):
    """Route stdlib log records into the CLI log file."""

    def __init__(self, log_file: Path | None = None, level: int = logging.INFO) -> None:
        super().__init__(level)
        self.log_file = log_file

    def emit(self, record: logging.LogRecord) -> None:
        try:
            write_cli_log(
                record.levelname,
                self.format(record),
                log_file=self.log_file,
                logger=record.name,
            )
        except OSError:
            self.handleError(record)


def install_cli_log_handler(log_file: Path | None = None) -> CliLogHandler:
    """Attach a CliLogHandler to the root logger."""
    handler = CliLogHandler(log_file)
    root = logging.getLogger()
    root.addHandler(handler)
    if root.level == logging.NOTSET or root.level > logging.INFO:
        root.setLevel(logging.INFO)
    return handler


def _write_json(folder: Path, payload: dict[str, Any]) -> Path:
    """Write payload to a unique JSON file in the given folder."""
    folder.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%S.%fZ")
    file_path = folder / f"{timestamp}_{uuid4().hex}.json"
    file_path.write_text(json.dumps(payload, indent=2, default=str))
    return file_path


def _redact_query(query: dict[str, str]) -> dict[str, str]:
    return {k: _mask(v) if k in REDACTED_PARAMS else v for k, v in query.items()}


def _redact_headers(headers: dict[str, str]) -> dict[str, str]:
    """Redact sensitive headers."""
    redacted = {}
    for key, value in headers.items():
        lowered = key.lower()
        if "key" in lowered or "authorization" in lowered or lowered == "cookie":
            redacted[key] = _mask(value)
        else:
            redacted[key] = value
    return redacted


def _mask(value: str) -> str:
    if len(value) <= 10:
        return "***"
    return value[:6] + "..." + value[-4:]


def _utc_now() -> str:
    return datetime.now(UTC).isoformat()
