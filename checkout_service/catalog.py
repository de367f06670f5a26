"""
catalog.py — Product Catalog

Products live in the 'products' storage slot. The first read of an empty
slot seeds it with the demo books, so a fresh installation always has
something to sell.

Stock is adjusted through update_stock(); a negative resulting stock is
refused.
"""

import uuid
from datetime import timedelta
from decimal import Decimal
from typing import List, Optional

from .exceptions import InsufficientStock, ProductNotFound
from .logging_config import get_logger
from .models import Product, ProductInput, ProductUpdate, utcnow

log = get_logger(__name__)

PRODUCTS_KEY = "products"


def seed_products() -> List[Product]:
    now = utcnow()
    day = timedelta(days=1)
    return [
        Product(
            id="1", title="Código Limpo", author="Robert C. Martin",
            description="Um manual de artesanato de software ágil",
            price=Decimal("89.90"), stock=15, type="fisico",
            categories=["Programação", "Boas Práticas"], tags=["codigo-limpo", "refatoracao", "agil"],
            created_at=now - 7 * day, updated_at=now - 2 * day,
        ),
        Product(
            id="2", title="Padrões de Projeto", author="Gang of Four",
            description="Elementos de software orientado a objetos reutilizável",
            price=Decimal("129.90"), stock=8, type="ebook",
            categories=["Programação", "Arquitetura"], tags=["padroes", "poo", "projeto-de-software"],
            created_at=now - 14 * day, updated_at=now - 5 * day,
        ),
        Product(
            id="3", title="O Programador Pragmático", author="David Thomas, Andrew Hunt",
            description="Sua jornada rumo à maestria",
            price=Decimal("79.90"), stock=20, type="fisico",
            categories=["Programação", "Carreira"], tags=["pragmatico", "boas-praticas", "carreira"],
            created_at=now - 21 * day, updated_at=now - 3 * day,
        ),
        Product(
            id="4", title="Introdução aos Algoritmos", author="Thomas H. Cormen",
            description="Publicação da MIT Press",
            price=Decimal("199.90"), stock=5, type="fisico",
            categories=["Algoritmos", "Ciência da Computação"], tags=["algoritmos", "estruturas-de-dados", "mit"],
            created_at=now - 30 * day, updated_at=now - 10 * day,
        ),
        Product(
            id="5", title="Inteligência Artificial: Uma Abordagem Moderna", author="Stuart Russell, Peter Norvig",
            description="O principal livro-texto em IA",
            price=Decimal("249.90"), stock=12, type="ebook",
            categories=["IA", "Aprendizado de Máquina"], tags=["ia", "am", "redes-neurais"],
            created_at=now - 45 * day, updated_at=now - day,
        ),
    ]


class ProductCatalog:
    def __init__(self, storage, key=PRODUCTS_KEY, seed=True):
        self.storage = storage
        self.key = key
        self.seed = seed

    def _load(self) -> List[Product]:
        raw = self.storage.get(self.key)
        if raw is None:
            products = seed_products() if self.seed else []
            self._save(products)
            return products
        return [Product.model_validate(record) for record in raw]

    def _save(self, products: List[Product]) -> None:
        self.storage.set(self.key, [product.model_dump(mode="json") for product in products])

    def list_products(self) -> List[Product]:
        return self._load()

    def get_by_id(self, product_id: str) -> Optional[Product]:
        return next((p for p in self._load() if p.id == product_id), None)

    def create(self, data: ProductInput) -> Product:
        now = utcnow()
        product = Product(id=uuid.uuid4().hex[:21], created_at=now, updated_at=now, **data.model_dump())
        products = self._load()
        products.append(product)
        self._save(products)
        log.info(f"[Catalog] Product {product.id} created.")
        return product

    def update(self, product_id: str, data: ProductUpdate) -> Optional[Product]:
        """Applies the set fields of `data`; id and created_at never change."""
        products = self._load()
        for index, existing in enumerate(products):
            if existing.id == product_id:
                changes = data.model_dump(exclude_unset=True, exclude_none=True)
                updated = Product.model_validate({**existing.model_dump(), **changes, "updated_at": utcnow()})
                products[index] = updated
                self._save(products)
                return updated
        return None

    def delete(self, product_id: str) -> bool:
        products = self._load()
        remaining = [p for p in products if p.id != product_id]
        if len(remaining) == len(products):
            return False
        self._save(remaining)
        return True

    def update_stock(self, product_id: str, delta: int) -> Product:
        """
        Adds `delta` (negative to decrement) to a product's stock.

        Raises:
            ProductNotFound: If the product does not exist.
            InsufficientStock: If the stock would drop below zero.
        """
        products = self._load()
        for index, existing in enumerate(products):
            if existing.id == product_id:
                new_stock = existing.stock + delta
                if new_stock < 0:
                    raise InsufficientStock(product_id, existing.stock, -delta)
                updated = existing.model_copy(update={"stock": new_stock, "updated_at": utcnow()})
                products[index] = updated
                self._save(products)
                return updated
        raise ProductNotFound(product_id)
