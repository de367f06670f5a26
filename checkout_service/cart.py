"""
cart.py — Shopping Cart

The cart lives in the 'shopping_cart' storage slot as a list of
{product, quantity} lines. The product is stored as a snapshot taken when it
was added; the completion workflow reads prices from these lines.

A line never holds more copies than the product had in stock when it was
added; asking for more raises InsufficientStock and leaves the cart as it was.
"""

from decimal import Decimal
from typing import List, Optional

from .exceptions import InsufficientStock
from .models import CartLine, Product, to_money

CART_KEY = "shopping_cart"


def _check_stock(product: Product, quantity: int) -> None:
    if quantity > product.stock:
        raise InsufficientStock(product.id, product.stock, quantity)


class Cart:
    def __init__(self, storage, key=CART_KEY):
        self.storage = storage
        self.key = key

    def lines(self) -> List[CartLine]:
        return [CartLine.model_validate(raw) for raw in self.storage.get(self.key) or []]

    def _save(self, lines: List[CartLine]) -> None:
        self.storage.set(self.key, [line.model_dump(mode="json") for line in lines])

    def get_line(self, product_id: str) -> Optional[CartLine]:
        return next((line for line in self.lines() if line.product.id == product_id), None)

    def add(self, product: Product, quantity: int = 1) -> List[CartLine]:
        """
        Adds a product, merging with an existing line for the same product.

        Raises:
            ValueError: If quantity is not positive.
            InsufficientStock: If the line would exceed the product's stock.
        """
        if quantity <= 0:
            raise ValueError("quantity must be positive")
        lines = self.lines()
        for index, line in enumerate(lines):
            if line.product.id == product.id:
                _check_stock(product, line.quantity + quantity)
                lines[index] = CartLine(product=line.product, quantity=line.quantity + quantity)
                break
        else:
            _check_stock(product, quantity)
            lines.append(CartLine(product=product, quantity=quantity))
        self._save(lines)
        return lines

    def remove(self, product_id: str) -> List[CartLine]:
        lines = [line for line in self.lines() if line.product.id != product_id]
        self._save(lines)
        return lines

    def update_quantity(self, product_id: str, quantity: int) -> List[CartLine]:
        """Sets the quantity of a line; zero or less removes it."""
        if quantity <= 0:
            return self.remove(product_id)
        line = self.get_line(product_id)
        if line is not None:
            _check_stock(line.product, quantity)
        lines = [
            CartLine(product=line.product, quantity=quantity) if line.product.id == product_id else line
            for line in self.lines()
        ]
        self._save(lines)
        return lines

    def clear(self) -> None:
        self._save([])

    def is_empty(self) -> bool:
        return not self.lines()

    def total_items(self) -> int:
        return sum(line.quantity for line in self.lines())

    def total_price(self) -> Decimal:
        return to_money(sum((line.subtotal for line in self.lines()), Decimal("0")))
