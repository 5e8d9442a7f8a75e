"""
Store provisioner - first-run creation and initialisation of the store.

Startup sequence (bootstrapStore):
1. ensureStore: create the store file if absent, remember whether we did
2. Open the Database (failure here is fatal, raised to main)
3. Apply the schema, only when the file was just created
4. Seed reference products if the catalog is empty, on every start

Invariants:
- Schema application and seeding each happen at most once per store
  lifetime, not per process start
- Seeding decides from the authoritative row count inside a write
  transaction, never from the created flag alone, so a template copy of
  an empty store still gets seeded and restarts never duplicate rows
- Schema and seed failures are reported on ProvisionReport and logged;
  whether to keep running is the caller's decision

Known gap: ensureStore's check-then-create is not locked across processes.
Two processes starting together on a fresh path may both see "absent";
the transactional seed keeps the outcome to a single reference set.
"""

import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from pcshop.logging import getLogger
from pcshop.core.catalog import REFERENCE_PRODUCTS
from pcshop.core.database import Database
from pcshop.core.errors import StorageUnavailable
from pcshop.core.storage import StorePath

log = getLogger()

DEFAULT_SCHEMA_PATH = Path(__file__).parent / 'schema.sql'


@dataclass
class ProvisionReport:
    """Outcome of one provisioning run"""
    created: bool
    schemaApplied: bool = False
    schemaError: Optional[str] = None
    seededRows: int = 0
    seedError: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.schemaError is None and self.seedError is None


def ensureStore(storePath: StorePath) -> bool:
    """
    Make sure the store file exists.

    Returns True only if this call created it. An existing file is left
    untouched. Creation failures are logged and reported as False: the
    connection opener can still create the file lazily.
    """
    path = Path(storePath.path)
    if path.exists():
        return False

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        # 'x' fails if another process created the file in the meantime
        with open(path, 'x'):
            pass
    except FileExistsError:
        return False
    except OSError as e:
        log.warning(f"[Provisioner] Could not create store file {path}: {e}")
        return False

    log.info(f"[Provisioner] Created store file {path}")
    return True


def loadSchema(schemaPath: Optional[str] = None) -> Optional[str]:
    """Read the schema payload; None if the file is missing or unreadable"""
    path = Path(schemaPath) if schemaPath else DEFAULT_SCHEMA_PATH
    try:
        return path.read_text(encoding='utf-8')
    except OSError as e:
        log.warning(f"[Provisioner] Schema not available at {path}: {e}")
        return None


def applySchema(database: Database, schemaText: str):
    """Apply the schema payload verbatim. Raises StorageUnavailable."""
    database.executeScript(schemaText)
    log.info("[Provisioner] Schema applied")


def seedIfEmpty(database: Database) -> int:
    """
    Insert the reference catalog if the products table is empty.

    Returns the number of rows inserted (0 when the catalog already has
    rows). Never removes or duplicates rows. Raises StorageUnavailable if
    the catalog table cannot be read.
    """
    with database.transaction():
        row = database.queryOne('SELECT COUNT(*) AS n FROM products')
        if row['n'] > 0:
            return 0

        for title, specs, price, image in REFERENCE_PRODUCTS:
            database.execute(
                'INSERT INTO products (title, specs, price, image) VALUES (?, ?, ?, ?)',
                (title, specs, price, image)
            )

    log.info(f"[Provisioner] Seeded {len(REFERENCE_PRODUCTS)} reference products")
    return len(REFERENCE_PRODUCTS)


def provision(database: Database, created: bool, schemaText: Optional[str]) -> ProvisionReport:
    """Apply schema (fresh stores only) and run the seed check"""
    report = ProvisionReport(created=created)

    if created:
        if schemaText is None:
            report.schemaError = "schema payload not available"
            log.warning("[Provisioner] New store but no schema to apply")
        else:
            try:
                applySchema(database, schemaText)
                report.schemaApplied = True
            except StorageUnavailable as e:
                report.schemaError = e.message
                log.warning(f"[Provisioner] Schema apply warning: {e.message}")

    try:
        report.seededRows = seedIfEmpty(database)
    except StorageUnavailable as e:
        report.seedError = e.message
        log.warning(f"[Provisioner] Seed check failed: {e.message}")
    except sqlite3.IntegrityError as e:
        # Operator schema whose constraints reject the reference rows
        report.seedError = f"Seed rejected by store constraints: {e}"
        log.warning(f"[Provisioner] {report.seedError}")

    return report


def bootstrapStore(storePath: StorePath, schemaPath: Optional[str] = None) -> Tuple[Database, ProvisionReport]:
    """
    Full startup sequence: ensure, open, provision.

    DatabaseError from opening the store propagates; everything after the
    connection is open is best effort and lands on the report.
    """
    created = ensureStore(storePath)
    database = Database(storePath)
    try:
        schemaText = loadSchema(schemaPath) if created else None
        report = provision(database, created, schemaText)

        log.info("[Provisioner] Store ready",
                 path=storePath.path, storeCreated=report.created,
                 schemaApplied=report.schemaApplied, seededRows=report.seededRows)
    except BaseException:
        database.close()
        raise
    return database, report
