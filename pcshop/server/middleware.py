"""
aiohttp middlewares for the shop server.

Order (outermost first): requestLogging, cors, errorHandler.
"""

import uuid

import orjson
from aiohttp import web

from pcshop.logging import getLogger, setRequestContext, clearRequestContext
from pcshop.core.errors import ShopError

log = getLogger()

CORS_HEADERS = {
    'Access-Control-Allow-Origin': '*',
    'Access-Control-Allow-Headers': 'Content-Type',
    'Access-Control-Allow-Methods': 'GET,POST,OPTIONS',
}


def jsonResponse(data, status: int = 200) -> web.Response:
    """JSON response encoded with orjson"""
    return web.Response(
        body=orjson.dumps(data),
        status=status,
        content_type='application/json'
    )


@web.middleware
async def requestLogging(request: web.Request, handler):
    """Log each request and tag log records emitted while handling it"""
    requestId = uuid.uuid4().hex[:8]
    setRequestContext(requestId, request.method, request.path)
    log.info(f"{request.method} {request.path}")
    try:
        return await handler(request)
    finally:
        clearRequestContext()


@web.middleware
async def cors(request: web.Request, handler):
    """Permissive CORS; preflight requests are answered without routing"""
    if request.method == 'OPTIONS':
        return web.Response(status=200, headers=CORS_HEADERS)

    try:
        response = await handler(request)
    except web.HTTPException as e:
        e.headers.update(CORS_HEADERS)
        raise
    response.headers.update(CORS_HEADERS)
    return response


@web.middleware
async def errorHandler(request: web.Request, handler):
    """Translate ShopError into its JSON response; unexpected errors become 500"""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except ShopError as e:
        if e.status >= 500:
            log.error(f"[Server] {request.method} {request.path} failed: {e.message}")
        return jsonResponse(e.toDict(), status=e.status)
    except Exception as e:
        log.error(f"[Server] Unhandled error on {request.method} {request.path}: {e}", exc_info=True)
        return jsonResponse({'error': 'internal error'}, status=500)
