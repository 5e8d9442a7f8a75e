"""
Request logging context.

The request middleware stores the current request id, method and path in
context variables; RequestContextFilter copies them onto every log record
emitted while that request is handled, so handler and store logs can be
correlated without passing the request around.
"""

import logging
from typing import Optional
from contextvars import ContextVar

_request_id: ContextVar[Optional[str]] = ContextVar('request_id', default=None)
_method: ContextVar[Optional[str]] = ContextVar('method', default=None)
_path: ContextVar[Optional[str]] = ContextVar('path', default=None)


class RequestContextFilter(logging.Filter):
    """Adds requestId, requestMethod and requestPath to records logged inside a request"""

    def filter(self, record):
        requestId = _request_id.get()
        if requestId:
            record.requestId = requestId
            method, path = _method.get(), _path.get()
            if method:
                record.requestMethod = method
            if path:
                record.requestPath = path
        return True


def setRequestContext(requestId: str, method: Optional[str] = None, path: Optional[str] = None):
    """Bind request identity to the current task context"""
    _request_id.set(requestId)
    _method.set(method)
    _path.set(path)


def getRequestContext() -> dict:
    """Get current request context"""
    return {
        'requestId': _request_id.get(),
        'method': _method.get(),
        'path': _path.get()
    }


def clearRequestContext():
    """Clear request context"""
    _request_id.set(None)
    _method.set(None)
    _path.set(None)
