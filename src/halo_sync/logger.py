import json
import logging
import os
import sys

DEFAULT_MCP_LOG_FILE = "/tmp/halo-sync-mcp.log"
_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Loggers of HTTP libraries that are chatty at INFO/DEBUG
_NOISY_LOGGERS = ("urllib3", "requests", "httpx", "httpcore")


class JsonFormatter(logging.Formatter):
    """Single-line JSON formatter for structured debug output.

    Produces one JSON object per log record with fields: ts, level, logger, msg.
    Exception info is included as an "exc" field when present.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _formatter(debug_format: str, with_name: bool) -> logging.Formatter:
    if debug_format == "json":
        return JsonFormatter(datefmt=_DATEFMT)
    fmt = "[%(asctime)s] [%(levelname)s] "
    fmt += "%(name)s %(message)s" if with_name else "%(message)s"
    return logging.Formatter(fmt, datefmt=_DATEFMT)


def setup_logging(
    mode: str = "cli",
    debug: bool = False,
    log_file: str | None = None,
    debug_format: str = "text",
    level: str | None = None,
) -> None:
    """
    Configure logging based on execution mode.

    Args:
        mode: "mcp" for file logging (never stdout), "cli" for stderr logging.
        debug: If True, overrides every other level setting with DEBUG.
        log_file: Custom log file path (overrides LOG_FILE env var).
        debug_format: "text" (default) or "json" for structured output.
        level: Level name from the YAML ``logging`` section, used when
            LOG_LEVEL is unset.

    Environment variables:
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR).
                   Default: WARNING for MCP mode, INFO for CLI mode.
        LOG_FILE: Custom log file path for MCP mode.
                  Default: /tmp/halo-sync-mcp.log
    """
    default_level = "WARNING" if mode == "mcp" else "INFO"
    level_name = (os.getenv("LOG_LEVEL") or level or default_level).upper()

    if debug:
        log_level = logging.DEBUG
    else:
        log_level = getattr(logging, level_name, logging.INFO)

    handlers: list[logging.Handler] = []
    if mode == "mcp":
        # stdout carries the JSON-RPC stream; log to a file only
        target = log_file or os.getenv("LOG_FILE", DEFAULT_MCP_LOG_FILE)
        mcp_handler = logging.FileHandler(target, mode="a")
        mcp_handler.setFormatter(_formatter(debug_format, with_name=True))
        handlers.append(mcp_handler)
    else:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(_formatter(debug_format, with_name=False))
        handlers.append(stderr_handler)

        if log_file:
            file_handler = logging.FileHandler(log_file, mode="a")
            file_handler.setFormatter(_formatter(debug_format, with_name=True))
            handlers.append(file_handler)

    logging.basicConfig(level=log_level, handlers=handlers)

    if log_level != logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
