"""
Shop logging - hierarchical structured logger.

API:
    from pcshop.logging import getLogger

    class CatalogStore:
        def __init__(self, database):
            self.log = getLogger()  # Auto: 'core.catalog.CatalogStore'

        def listProducts(self):
            self.log.debug("[Catalog] Listing products", count=n)

    # Once at startup
    from pcshop.logging import configureLogging
    configureLogging(logDir='logs', level='INFO')
"""

from .logger import getLogger, configureLogging
from .context import (
    setRequestContext,
    getRequestContext,
    clearRequestContext,
    RequestContextFilter
)

__all__ = [
    'getLogger',
    'configureLogging',
    'setRequestContext',
    'getRequestContext',
    'clearRequestContext',
    'RequestContextFilter'
]
