"""
PC Shop HTTP server - aiohttp edge.

Routes:
- /health                  liveness
- /api/products[/{id}]     catalog (public)
- /api/register, /api/login, /api/logout, /api/me   identity
- /api/order               protected, order stub (not persisted)
- /, /public/*             static frontend, when a public dir is configured

Blocking work (bcrypt, SQLite) runs on worker threads via asyncio.to_thread
so one slow hash does not stall other requests. Components get the
Database explicitly; the server holds no storage of its own.
"""

import asyncio
from pathlib import Path
from typing import Dict, Any, Optional

import orjson
from aiohttp import web

from pcshop.logging import getLogger
from pcshop.core.catalog import CatalogStore
from pcshop.core.database import Database
from pcshop.core.errors import InvalidInput, Unauthorized
from pcshop.server.auth import SessionIssuer
from pcshop.server.userStore import UserStore
from pcshop.server.middleware import requestLogging, cors, errorHandler, jsonResponse


class ShopServer:
    """
    Shop HTTP server.

    Wires the catalog, credential vault and session issuer into an aiohttp
    application. start()/stop() manage the listening socket; tests can use
    self.app directly with aiohttp's test client.
    """

    def __init__(self, config: Dict[str, Any], database: Database):
        self.config = config
        self.log = getLogger()

        self.database = database
        self.catalog = CatalogStore(database)
        self.userStore = UserStore(database)
        self.sessions = SessionIssuer(config.get('auth', {}))

        self.app = web.Application(middlewares=[requestLogging, cors, errorHandler])
        self._setupRoutes()

        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None

    def _setupRoutes(self):
        """Setup aiohttp routes"""
        self.app.router.add_get('/health', self.handleHealth)

        self.app.router.add_get('/api/products', self.handleProducts)
        self.app.router.add_get('/api/products/{productId}', self.handleProductById)

        self.app.router.add_post('/api/register', self.handleRegister)
        self.app.router.add_post('/api/login', self.handleLogin)
        self.app.router.add_post('/api/logout', self.handleLogout)
        self.app.router.add_get('/api/me', self.handleMe)

        self.app.router.add_post('/api/order', self.handleOrder)

        publicDir = self.config.get('publicDir')
        if publicDir and Path(publicDir).is_dir():
            self.publicDir = Path(publicDir)
            self.app.router.add_get('/', self._serveIndexHtml)
            self.app.router.add_static('/public', self.publicDir, name='public', show_index=False)
        else:
            self.publicDir = None
            self.log.info("[Server] No public dir, static files disabled")

    async def start(self):
        """Start listening"""
        self._runner = web.AppRunner(self.app)
        await self._runner.setup()

        host = self.config.get('host', '0.0.0.0')
        port = int(self.config.get('port', 8080))

        self._site = web.TCPSite(self._runner, host, port)
        await self._site.start()

        self.log.info(f"[Server] PC Shop running on {host}:{port}")

    async def stop(self):
        """Stop listening"""
        self.log.info("[Server] Stopping...")
        if self._site:
            await self._site.stop()
        if self._runner:
            await self._runner.cleanup()
        self.log.info("[Server] Stopped")

    # =========================================================================
    # Request helpers
    # =========================================================================

    async def _readCredentials(self, request: web.Request):
        """Parse {email, password} from the JSON body"""
        try:
            data = orjson.loads(await request.read())
        except orjson.JSONDecodeError:
            raise InvalidInput('bad json')
        if not isinstance(data, dict):
            raise InvalidInput('bad json')

        email = data.get('email', '')
        password = data.get('password', '')
        if not isinstance(email, str) or not isinstance(password, str):
            raise InvalidInput('invalid data')
        return email, password

    def _requireSession(self, request: web.Request) -> str:
        """Identity of the caller, or Unauthorized"""
        identity = self.sessions.read(request)
        if identity is None:
            raise Unauthorized('auth required')
        return identity

    # =========================================================================
    # HTTP Handlers
    # =========================================================================

    async def handleHealth(self, request: web.Request) -> web.Response:
        """Health check endpoint"""
        return jsonResponse({'status': 'ok'})

    async def handleProducts(self, request: web.Request) -> web.Response:
        products = await asyncio.to_thread(self.catalog.listProducts)
        return jsonResponse([p.toDict() for p in products])

    async def handleProductById(self, request: web.Request) -> web.Response:
        productId = request.match_info['productId']
        product = await asyncio.to_thread(self.catalog.getProduct, productId)
        if product is None:
            return jsonResponse({'error': 'not found'}, status=404)
        return jsonResponse(product.toDict())

    async def handleRegister(self, request: web.Request) -> web.Response:
        """Register; 400 invalid input, 409 email taken"""
        email, password = await self._readCredentials(request)
        await asyncio.to_thread(self.userStore.register, email, password)
        return jsonResponse({'status': 'registered'})

    async def handleLogin(self, request: web.Request) -> web.Response:
        """
        Verify credentials and attach the session cookie.

        Unknown email and wrong password both answer 401 invalid credentials.
        """
        email, password = await self._readCredentials(request)
        await asyncio.to_thread(self.userStore.verify, email, password)

        response = jsonResponse({'status': 'ok'})
        self.sessions.attach(response, self.sessions.issue(email))
        return response

    async def handleLogout(self, request: web.Request) -> web.Response:
        response = jsonResponse({'status': 'logged out'})
        self.sessions.clear(response)
        return response

    async def handleMe(self, request: web.Request) -> web.Response:
        """Who the session cookie belongs to; used by the UI on page load"""
        identity = self._requireSession(request)
        return jsonResponse({'email': identity})

    async def handleOrder(self, request: web.Request) -> web.Response:
        """Order stub: requires a session, persists nothing"""
        identity = self._requireSession(request)
        self.log.info("[Server] Order accepted", email=identity)
        return jsonResponse({'status': 'order accepted'})

    async def _serveIndexHtml(self, request: web.Request) -> web.StreamResponse:
        indexPath = self.publicDir / 'index.html'
        if not indexPath.is_file():
            raise web.HTTPNotFound()
        return web.FileResponse(indexPath)
