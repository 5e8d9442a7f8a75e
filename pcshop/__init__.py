"""pcshop - minimal storefront backend

Packages:
    - core: store location, provisioning, database handle, catalog
    - server: aiohttp edge, credential vault, session issuer
    - logging: structured hierarchical logging
"""

__version__ = "1.0.0"
