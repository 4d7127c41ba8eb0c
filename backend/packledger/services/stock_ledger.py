# Overview: Stock ledger; the only writer of Product.total_stock / Product.current_stock.

"""
Stock Ledger Invariants (authoritative)

- Every mutation is a delta applied to the value read in the same
  transaction; stock is never blindly overwritten.
- Methods flush but never commit. The caller's transaction decides; a
  failure anywhere aborts every ledger write made inside it.
- A missing product raises NotFoundError.
- current_stock may go negative on reservation (overbooking is tolerated).
  That is logged as a warning, never raised.
- Each mutation appends a StockMovement row in the same transaction.
"""
from __future__ import annotations

from flask import current_app

from ..errors import NotFoundError
from ..extensions import db
from ..models import Product, StockMovement
from ..models.stock import (
    MOVEMENT_MANUAL_CORRECTION,
    MOVEMENT_REPLENISHMENT,
    MOVEMENT_RESERVATION,
)
from .concurrency import lock_for_update


class StockLedger:
    """
    Transactional ledger over the products table.

    Constructed once per app (see init_app) and handed to each workflow.
    """

    extension_name = "stock_ledger"

    def __init__(self, session=None):
        self._session = session

    def init_app(self, app) -> None:
        app.extensions[self.extension_name] = self

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    def find_row(self, product_id: int, *, lock: bool = False) -> Product | None:
        query = self.session.query(Product).filter_by(id=product_id)
        if lock:
            query = lock_for_update(query)
        return query.first()

    def get_row(self, product_id: int, *, lock: bool = False) -> Product:
        product = self.find_row(product_id, lock=lock)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")
        return product

    def _record(
        self,
        product: Product,
        *,
        reason: str,
        total_delta: float,
        available_delta: float,
        actor_id: str | None,
        packlist_id: int | None = None,
        order_id: int | None = None,
        note: str | None = None,
    ) -> StockMovement:
        if actor_id is not None:
            product.last_stock_updated_by = actor_id
        movement = StockMovement(
            product_id=product.id,
            reason=reason,
            total_delta=total_delta,
            available_delta=available_delta,
            total_after=product.total_stock,
            available_after=product.current_stock,
            packlist_id=packlist_id,
            order_id=order_id,
            actor_id=actor_id,
            note=note,
        )
        self.session.add(movement)
        self.session.flush()
        return movement

    def adjust_available(
        self,
        product_id: int,
        delta: float,
        *,
        reason: str = MOVEMENT_RESERVATION,
        actor_id: str | None = None,
        packlist_id: int | None = None,
        order_id: int | None = None,
        note: str | None = None,
    ) -> Product:
        """
        current_stock += delta. Negative delta reserves, positive releases.

        total_stock is untouched.
        """
        product = self.get_row(product_id, lock=True)
        before = product.current_stock
        product.current_stock = before + delta

        if delta < 0 and product.current_stock < 0:
            current_app.logger.warning(
                "Reservation overbooks product %s: current_stock %s %+g -> %s (packlist=%s)",
                product_id,
                before,
                delta,
                product.current_stock,
                packlist_id,
            )

        self._record(
            product,
            reason=reason,
            total_delta=0.0,
            available_delta=delta,
            actor_id=actor_id,
            packlist_id=packlist_id,
            order_id=order_id,
            note=note,
        )
        return product

    def set_total_with_rebalance(
        self,
        product_id: int,
        new_total: float,
        *,
        actor_id: str | None = None,
        note: str | None = None,
    ) -> Product:
        """
        Manual stock-count correction.

        The change to total_stock is applied to current_stock as the same
        delta, which keeps the reserved gap (total - current) intact.
        """
        product = self.get_row(product_id, lock=True)
        delta = new_total - product.total_stock
        product.total_stock = new_total
        product.current_stock = product.current_stock + delta

        self._record(
            product,
            reason=MOVEMENT_MANUAL_CORRECTION,
            total_delta=delta,
            available_delta=delta,
            actor_id=actor_id,
            note=note,
        )
        return product

    def credit(
        self,
        product_id: int,
        quantity: float,
        *,
        actor_id: str | None = None,
        order_id: int | None = None,
        note: str | None = None,
    ) -> Product:
        """Physically received goods: both owned and available stock grow."""
        product = self.get_row(product_id, lock=True)
        product.total_stock = product.total_stock + quantity
        product.current_stock = product.current_stock + quantity

        self._record(
            product,
            reason=MOVEMENT_REPLENISHMENT,
            total_delta=quantity,
            available_delta=quantity,
            actor_id=actor_id,
            order_id=order_id,
            note=note,
        )
        return product

    def movements(self, product_id: int, *, limit: int = 200) -> list[StockMovement]:
        self.get_row(product_id)
        return (
            self.session.query(StockMovement)
            .filter_by(product_id=product_id)
            .order_by(StockMovement.id.desc())
            .limit(limit)
            .all()
        )


def get_ledger(ledger: StockLedger | None = None) -> StockLedger:
    """Resolve an explicitly passed ledger, else the app's instance."""
    if ledger is not None:
        return ledger
    return current_app.extensions[StockLedger.extension_name]
