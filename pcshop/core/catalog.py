"""
Catalog store - read-only product queries.

Products are reference data seeded on first start (see provisioner);
operators may add more rows directly in the store.
"""

from dataclasses import dataclass, asdict
from typing import Dict, Any, List, Optional

from pcshop.logging import getLogger
from pcshop.core.database import Database


@dataclass
class Product:
    id: int
    title: str
    specs: str
    price: int  # Whole roubles
    image: str

    def toDict(self) -> Dict[str, Any]:
        return asdict(self)


# Seed rows: (title, specs, price, image)
REFERENCE_PRODUCTS = [
    ('Игровой ПК Nitro X', 'Ryzen 5 5600, 16GB RAM, RTX 3060, SSD 512GB', 89990, '/public/img/pc1.jpg'),
    ('Игровой ПК Nitro 2X', 'Intel i7, 32GB RAM, RTX 3060, SSD 1024GB', 134990, '/public/img/pc2.jpg'),
    ('Ультра ПК Creator', 'Ryzen 7 7800X, 32GB RAM, RTX 4070, SSD 1TB', 169990, '/public/img/pc3.jpg'),
    ('Компактный ПК Mini', 'Intel N100, 8GB RAM, SSD 256GB', 25990, '/public/img/pc4.jpg'),
]


class CatalogStore:
    """Product queries over the shop database"""

    def __init__(self, database: Database):
        self.database = database
        self.log = getLogger()

    def listProducts(self) -> List[Product]:
        rows = self.database.queryAll(
            'SELECT id, title, specs, price, image FROM products ORDER BY id'
        )
        self.log.debug("[Catalog] Listed products", count=len(rows))
        return [self._rowToProduct(row) for row in rows]

    def getProduct(self, productId: Any) -> Optional[Product]:
        """Get product by id; ids that are not integers simply match nothing"""
        try:
            productId = int(productId)
        except (TypeError, ValueError):
            return None

        row = self.database.queryOne(
            'SELECT id, title, specs, price, image FROM products WHERE id = ?',
            (productId,)
        )
        return self._rowToProduct(row) if row else None

    def count(self) -> int:
        row = self.database.queryOne('SELECT COUNT(*) AS n FROM products')
        return row['n']

    def _rowToProduct(self, row) -> Product:
        return Product(
            id=row['id'],
            title=row['title'],
            specs=row['specs'],
            price=row['price'],
            image=row['image']
        )
