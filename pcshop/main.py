"""
PC Shop main entry point.

Startup:
1. Load config (JSON file + environment overrides)
2. Resolve the store location from the environment
3. Ensure, open and provision the store (open failure is fatal)
4. Serve HTTP until interrupted

Usage:
    python -m pcshop [--config path/to/config.json]

Static frontend:
    No frontend ships with the package. Point "publicDir" in the config at a
    directory holding index.html (served at /) and its assets (served under
    /public/, e.g. /public/app.js, /public/img/pc1.jpg). Relative paths
    resolve against the working directory; a missing directory disables
    static serving.

Environment:
    PORT            listen port (hosting platforms set this)
    DB_PATH         explicit store path or file: DSN
    SESSION_SECRET  session token signing secret
"""

import asyncio
import argparse
import copy
import os
import sys
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import orjson

from pcshop.core.database import DatabaseError
from pcshop.core.provisioner import bootstrapStore
from pcshop.core.storage import resolveStorePath, DEFAULT_VOLUME_DIR, DEFAULT_DB_FILE
from pcshop.server.server import ShopServer
from pcshop.logging import getLogger, configureLogging

DEFAULT_CONFIG_PATH = Path(__file__).parent / 'config.json'

DEFAULT_CONFIG: Dict[str, Any] = {
    'host': '0.0.0.0',
    'port': 8080,
    'volumeDir': DEFAULT_VOLUME_DIR,
    'dbFile': DEFAULT_DB_FILE,
    'schemaPath': None,  # None: schema.sql shipped with pcshop.core
    'publicDir': 'public',
    'logDir': None,
    'logLevel': 'INFO',
    'auth': {
        'secret': None,
        'cookieName': 'session',
        'tokenExpirySeconds': 0,
        'secureCookies': False,
        'sameSite': 'Lax'
    }
}


def loadConfig(configPath: Optional[str] = None,
               environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """
    Load configuration.

    File values override defaults (the auth block is merged key by key);
    PORT and SESSION_SECRET from the environment override both. A missing
    file means defaults only.
    """
    if environ is None:
        environ = os.environ

    config = copy.deepcopy(DEFAULT_CONFIG)

    path = Path(configPath) if configPath else DEFAULT_CONFIG_PATH
    if path.exists():
        with open(path, 'rb') as f:
            fileConfig = orjson.loads(f.read())
        authConfig = fileConfig.pop('auth', None) or {}
        config.update(fileConfig)
        config['auth'].update(authConfig)

    port = environ.get('PORT')
    if port:
        config['port'] = int(port)

    secret = environ.get('SESSION_SECRET')
    if secret:
        config['auth']['secret'] = secret

    return config


async def runServer(server: ShopServer):
    """Serve until cancelled"""
    try:
        await server.start()
        while True:
            await asyncio.sleep(3600)
    finally:
        await server.stop()


def main():
    """Main entry point"""
    parser = argparse.ArgumentParser(description='PC Shop - storefront backend')
    parser.add_argument('--config', default=None, help='Path to config file')
    args = parser.parse_args()

    if args.config and not Path(args.config).exists():
        print(f"Config file not found: {args.config}", file=sys.stderr)
        sys.exit(1)

    config = loadConfig(args.config)

    configureLogging(logDir=config.get('logDir'), level=config.get('logLevel', 'INFO'))
    log = getLogger()
    log.info("=" * 60)
    log.info("PC Shop")
    log.info("=" * 60)

    storePath = resolveStorePath(volumeDir=config['volumeDir'], fileName=config['dbFile'])
    log.info(f"[Main] Store path: {storePath.path}")

    try:
        database, report = bootstrapStore(storePath, config.get('schemaPath'))
    except DatabaseError as e:
        log.critical(f"[Main] {e}")
        sys.exit(1)

    if not report.ok:
        # Schema may already match or be applied out of band; keep serving
        log.warning("[Main] Store provisioning incomplete, continuing",
                    schemaError=report.schemaError, seedError=report.seedError)

    server = ShopServer(config, database)

    try:
        asyncio.run(runServer(server))
    except KeyboardInterrupt:
        log.info("[Main] Shutdown signal received")
    finally:
        database.close()
        log.info("[Main] PC Shop stopped")


if __name__ == '__main__':
    main()
