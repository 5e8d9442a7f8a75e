"""
Hierarchical structured logger for the shop backend.

Features:
- Logger name derived from the caller (module + class), computed once
- Structured fields: log.info("Message", key=value) renders as [key=value]
- Console output always, rotating file output when a log directory is set

Usage:
    from pcshop.logging import getLogger

    class UserStore:
        def __init__(self):
            self.log = getLogger()  # 'server.userStore.UserStore'

        def register(self, email):
            self.log.info("[UserStore] Registered", email=email)
"""

import inspect
import logging
import logging.handlers
import socket
from pathlib import Path
from typing import Optional
from datetime import datetime, timezone as tz

from .context import RequestContextFilter


_hostname = socket.gethostname()
_configured = False
_fileHandlers = {}  # logPath -> handler
_contextFilter = RequestContextFilter()
_config = {
    'logDir': None,
    'maxBytes': 10_000_000,
    'backupCount': 5,
    'console': True,
    'level': logging.INFO,
    'utc': False
}

# LogRecord attributes that are not structured fields
_RESERVED = {
    'name', 'msg', 'args', 'created', 'filename', 'funcName',
    'levelname', 'levelno', 'lineno', 'module', 'msecs',
    'message', 'pathname', 'process', 'processName',
    'relativeCreated', 'thread', 'threadName', 'exc_info',
    'exc_text', 'stack_info', 'hostname', 'asctime', 'taskName'
}

# Attributes every LogRecord already carries; makeRecord refuses extras that shadow them
_RECORD_ATTRS = set(logging.LogRecord('', logging.INFO, '', 0, '', None, None).__dict__) | {'message', 'asctime'}


def configureLogging(logDir: Optional[str] = None, level: str = 'INFO',
                     maxBytes: int = 10_000_000, backupCount: int = 5,
                     console: bool = True, utc: bool = False):
    """
    Configure global logging settings (call once at startup).

    Args:
        logDir: Directory for rotating log files (None: console only)
        level: Minimum log level name
        maxBytes: Size per log file before rotation
        backupCount: Rotated files kept per log
        console: Also log to stderr
        utc: Use UTC timestamps
    """
    global _configured

    levelNo = getattr(logging, str(level).upper(), logging.INFO)
    _config.update({'logDir': logDir, 'maxBytes': maxBytes, 'backupCount': backupCount,
                    'console': console, 'level': levelNo, 'utc': utc})

    if logDir:
        Path(logDir).mkdir(parents=True, exist_ok=True)

    # Loggers created before reconfiguration (module-level ones) follow along
    fileHandler = _getFileHandler()
    for logger in logging.Logger.manager.loggerDict.values():
        if isinstance(logger, logging.Logger) and getattr(logger, '_configured_by_shop', False):
            logger.setLevel(levelNo)
            for handler in logger.handlers:
                handler.setLevel(levelNo)
            if fileHandler is not None and fileHandler not in logger.handlers:
                logger.addHandler(fileHandler)

    _configured = True


def _getFileHandler() -> Optional[logging.Handler]:
    """Singleton rotating handler for the configured log directory, if any"""
    if not _config['logDir']:
        return None

    logPath = str(Path(_config['logDir']) / 'pcshop.log')
    if logPath not in _fileHandlers:
        fileHandler = logging.handlers.RotatingFileHandler(
            logPath,
            maxBytes=_config['maxBytes'],
            backupCount=_config['backupCount'],
            encoding='utf-8'
        )
        fileHandler.setLevel(_config['level'])
        fileHandler.addFilter(_contextFilter)
        fileHandler.setFormatter(StructuredFormatter(
            '%(asctime)s - %(hostname)s - %(name)s - %(levelname)s - %(message)s',
            utc=_config['utc']
        ))
        _fileHandlers[logPath] = fileHandler
    return _fileHandlers[logPath]


def _autoDetectName() -> str:
    """Detect logger name from the call stack, e.g. 'server.auth.SessionIssuer'"""
    frame = inspect.currentframe()
    try:
        current = frame
        while current is not None:
            current = current.f_back
            if current is None:
                break

            module = inspect.getmodule(current)
            if module is None:
                continue

            moduleName = module.__name__
            if moduleName.startswith('pcshop.logging'):
                continue
            if moduleName.startswith('importlib') or moduleName == '__main__':
                continue

            parts = moduleName.split('.')
            # Package prefix carries no information
            if parts and parts[0] == 'pcshop' and len(parts) > 1:
                parts = parts[1:]

            className = None
            if 'self' in current.f_locals:
                className = current.f_locals['self'].__class__.__name__
            elif 'cls' in current.f_locals:
                className = current.f_locals['cls'].__name__

            hierarchy = '.'.join(parts)
            if className:
                hierarchy = f"{hierarchy}.{className}"
            return hierarchy or 'unknown'

        return 'unknown'
    finally:
        del frame


class StructuredFormatter(logging.Formatter):
    """Format: timestamp - hostname - name - level - message [field=value, ...]"""

    def __init__(self, fmt=None, datefmt=None, utc=False):
        super().__init__(fmt, datefmt)
        self.utc = utc

    def formatTime(self, record, datefmt=None):
        if self.utc:
            ct = datetime.fromtimestamp(record.created, tz=tz.utc)
        else:
            ct = datetime.fromtimestamp(record.created)
        if datefmt:
            return ct.strftime(datefmt)
        return f"{ct.strftime('%Y-%m-%d %H:%M:%S')},{int(record.msecs):03d}"

    def format(self, record):
        record.hostname = _hostname

        fields = [f"{key}={value}" for key, value in record.__dict__.items()
                  if key not in _RESERVED and not key.startswith('_')]

        originalMsg = record.msg
        if fields:
            record.msg = f"{originalMsg} [{', '.join(fields)}]"
        try:
            return super().format(record)
        finally:
            record.msg = originalMsg


def getLogger(name: Optional[str] = None) -> logging.Logger:
    """
    Get or create a logger, auto-detecting its name when not given.

    The returned logger accepts structured keyword fields on every level
    method: log.warning("Login failed", email=email).
    """
    if not _configured:
        configureLogging()

    if name is None:
        name = _autoDetectName()

    logger = logging.getLogger(name)
    logger.propagate = False

    if not getattr(logger, '_configured_by_shop', False):
        logger.setLevel(_config['level'])

        fileHandler = _getFileHandler()
        if fileHandler is not None:
            logger.addHandler(fileHandler)

        if _config['console']:
            consoleHandler = logging.StreamHandler()
            consoleHandler.setLevel(_config['level'])
            consoleHandler.addFilter(_contextFilter)
            consoleHandler.setFormatter(StructuredFormatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                utc=_config['utc']
            ))
            logger.addHandler(consoleHandler)

        logger._configured_by_shop = True

    return _wrapLogger(logger)


def _wrapLogger(logger: logging.Logger) -> logging.Logger:
    """Let level methods take structured fields as **kwargs instead of extra={...}"""
    if getattr(logger, '_is_wrapped', False):
        return logger

    def wrap(original):
        def method(msg, *args, **kwargs):
            excInfo = kwargs.pop('exc_info', False)
            if kwargs:
                # created=... would collide with LogRecord.created; log it as created_=...
                fields = {(f"{key}_" if key in _RECORD_ATTRS else key): value
                          for key, value in kwargs.items()}
                original(msg, *args, extra=fields, exc_info=excInfo)
            else:
                original(msg, *args, exc_info=excInfo)
        return method

    logger.debug = wrap(logger.debug)
    logger.info = wrap(logger.info)
    logger.warning = wrap(logger.warning)
    logger.error = wrap(logger.error)
    logger.critical = wrap(logger.critical)
    logger._is_wrapped = True

    return logger
