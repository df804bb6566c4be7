"""Stock bookkeeping shared by loans, promotions and expiry."""

import logging

from components.core.exceptions import StockError
from components.stock.models import Stock

logger = logging.getLogger(__name__)


class StockLedger:
    """
    Mutates Stock rows in place.

    Every method works on an ORM object already loaded in the caller's
    session, so the write lands in the caller's transaction. The cached
    ``is_available`` flag is recomputed on every mutation instead of on read.
    """

    @staticmethod
    def free_units(stock: Stock) -> int:
        """Copies on the shelf that are not held for a reservation."""
        return stock.quantity - stock.earmarked

    def update_availability(self, stock: Stock) -> None:
        stock.is_available = self.free_units(stock) > 0

    def adjust_quantity(self, stock: Stock, delta: int) -> None:
        new_quantity = stock.quantity + delta
        if new_quantity < 0:
            raise StockError(f"Stock {stock.id} quantity cannot go below zero.")
        if new_quantity < stock.earmarked:
            raise StockError(f"Stock {stock.id} cannot drop below its earmarked units.")
        stock.quantity = new_quantity
        self.update_availability(stock)

    def increase(self, stock: Stock) -> None:
        self.adjust_quantity(stock, +1)

    def decrease(self, stock: Stock) -> None:
        self.adjust_quantity(stock, -1)

    def earmark(self, stock: Stock) -> None:
        """Hold one free unit for a promoted reservation."""
        if self.free_units(stock) <= 0:
            raise StockError(f"Stock {stock.id} has no free unit to earmark.")
        stock.earmarked += 1
        self.update_availability(stock)

    def release_earmark(self, stock: Stock) -> None:
        """Give an earmarked unit back to general lending. No-op at zero."""
        if stock.earmarked <= 0:
            logger.warning("Stock %s has no earmarked unit to release", stock.id)
            return
        stock.earmarked -= 1
        self.update_availability(stock)

    def consume_earmark(self, stock: Stock) -> None:
        """Lend an earmarked unit to the reservation holder."""
        if stock.earmarked <= 0:
            raise StockError(f"Stock {stock.id} has no earmarked unit to lend.")
        stock.earmarked -= 1
        stock.quantity -= 1
        self.update_availability(stock)
