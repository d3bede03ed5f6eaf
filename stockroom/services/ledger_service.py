from typing import Any, Dict, Iterator, Optional
import logging

from stockroom.config import get_settings, Settings
from stockroom.models.movement import MovementType
from stockroom.services.data_store import DataStore, distinct_values
from stockroom.services.errors import (
    NotAuthenticatedError,
    RecordNotFound,
    StoreWriteError,
    StoreWriteFailedError,
    UnknownMovementError,
    UnknownProductError,
    UnknownUserError,
    ValidationFailedError,
)
from stockroom.services.identity import IdentityProvider
from stockroom.utils.cache import cache_service

logger = logging.getLogger(__name__)

PRODUCTS = "products"
MOVEMENTS = "inventory_movements"
USERS = "users"


def _parse_movement_type(value) -> MovementType:
    try:
        return MovementType(value)
    except ValueError:
        raise ValidationFailedError(f"Invalid movement type: {value!r} (expected 'in' or 'out')")


def _signed_delta(movement_type: MovementType, quantity: int) -> int:
    return quantity if movement_type == MovementType.IN else -quantity


class LedgerService:
    """
    Inventory ledger: pairs every accepted stock change with exactly one
    movement record, and undoes movements on request.

    QUANTITY UPDATES:
    =================
    The store offers no multi-call transactions, so each operation is two
    separate writes:

    - record: product quantity first, then the movement insert
    - revert: movement delete first, then the product quantity

    If the second write fails, the first one is NOT undone. Both windows are
    logged at ERROR so they can be repaired by hand.

    With `ATOMIC_QUANTITY_UPDATES` enabled (default) the quantity is changed
    through the store's atomic increment, so concurrent movements on the same
    product all count. With it disabled the quantity is read, adjusted and
    written back, and concurrent writers lose updates (last write wins).
    """

    def __init__(
        self,
        store: DataStore,
        identity: Optional[IdentityProvider] = None,
        settings: Settings = None,
        cache=None,
    ):
        self.store = store
        self.identity = identity
        self.settings = settings or get_settings()
        self.cache = cache or cache_service

    def record_movement(
        self,
        product_id: Any,
        movement_type,
        quantity: int,
        user_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Apply a stock movement to a product and log it.

        Args:
            product_id: Product to adjust
            movement_type: 'in' adds stock, 'out' removes it
            quantity: Positive magnitude of the change
            user_id: Acting user; defaults to the identity provider's current user

        Returns:
            The created movement record

        Raises:
            ValidationFailedError: Malformed type or quantity, or negative stock under the 'reject' policy
            NotAuthenticatedError: No acting identity
            UnknownUserError: Identity has no users row
            UnknownProductError: Product doesn't exist
            StoreWriteFailedError: Quantity update or movement insert rejected
        """
        movement_type = _parse_movement_type(movement_type)
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationFailedError("Quantity must be a positive integer")

        user_id = self._resolve_user(user_id)
        product = self._get_product(product_id)

        delta = _signed_delta(movement_type, quantity)
        if (
            self.settings.NEGATIVE_STOCK_POLICY == "reject"
            and product["quantity"] + delta < 0
        ):
            raise ValidationFailedError(
                f"Insufficient stock. Available: {product['quantity']}, Requested: {quantity}"
            )

        new_quantity = self._apply_quantity_delta(product, delta)
        self._invalidate_product(product["id"])

        try:
            movement = self.store.insert(MOVEMENTS, {
                "product_id": product["id"],
                "movement_type": movement_type.value,
                "quantity": quantity,
                "user_id": user_id,
            })
        except StoreWriteError as e:
            logger.error(
                f"INCONSISTENT: product #{product['id']} quantity changed by {delta} "
                f"(now {new_quantity}) but the movement insert failed: {e}"
            )
            raise StoreWriteFailedError("Error recording the inventory movement") from e

        logger.info(
            f"Movement #{movement['id']} recorded: {movement_type.value} {quantity} "
            f"of product #{product['id']} by user {user_id} (quantity now {new_quantity})"
        )
        return self._present(movement)

    def revert_movement(self, movement_id: Any) -> Dict[str, Any]:
        """
        Delete a movement and apply its inverse to the product quantity.

        The movement row is deleted before the quantity is adjusted.

        Returns:
            The movement record that was removed

        Raises:
            UnknownMovementError: Movement doesn't exist (including an already reverted one)
            StoreWriteFailedError: Delete or quantity update rejected
        """
        try:
            movement = self.store.get(MOVEMENTS, movement_id)
        except RecordNotFound:
            raise UnknownMovementError(movement_id)

        try:
            self.store.delete(MOVEMENTS, movement_id)
        except RecordNotFound:
            # Removed by a concurrent revert since the read above
            raise UnknownMovementError(movement_id)
        except StoreWriteError as e:
            raise StoreWriteFailedError("Error deleting the inventory movement") from e

        movement_type = MovementType(movement["movement_type"])
        inverse = -_signed_delta(movement_type, movement["quantity"])

        try:
            product = self.store.get(PRODUCTS, movement["product_id"])
        except RecordNotFound as e:
            logger.error(
                f"INCONSISTENT: movement #{movement_id} deleted but product "
                f"#{movement['product_id']} no longer exists; {inverse} not applied"
            )
            raise StoreWriteFailedError("Movement reverted but the product could not be updated") from e

        try:
            new_quantity = self._apply_quantity_delta(product, inverse)
        except StoreWriteFailedError:
            logger.error(
                f"INCONSISTENT: movement #{movement_id} deleted but product "
                f"#{product['id']} quantity was not adjusted by {inverse}"
            )
            raise

        self._invalidate_product(product["id"])
        logger.info(
            f"Movement #{movement_id} reverted: product #{product['id']} "
            f"adjusted by {inverse} (quantity now {new_quantity})"
        )
        return self._present(movement)

    def list_movements(self, limit: Optional[int] = None, offset: int = 0) -> "MovementListing":
        """Most recent movements first, with username and product name joined in."""
        return MovementListing(self.store, limit=limit, offset=offset)

    def _resolve_user(self, user_id: Optional[str]) -> str:
        if not user_id:
            if self.identity is None:
                raise NotAuthenticatedError()
            user_id = self.identity.current_user()

        try:
            self.store.get(USERS, user_id)
        except RecordNotFound:
            raise UnknownUserError(user_id)
        return user_id

    def _get_product(self, product_id: Any) -> Dict[str, Any]:
        try:
            return self.store.get(PRODUCTS, product_id)
        except RecordNotFound:
            raise UnknownProductError(product_id)

    def _apply_quantity_delta(self, product: Dict[str, Any], delta: int) -> int:
        """Single path through which product quantities change."""
        try:
            if self.settings.ATOMIC_QUANTITY_UPDATES:
                return self.store.increment(PRODUCTS, product["id"], "quantity", delta)

            # Read-modify-write from the caller's snapshot
            new_quantity = product["quantity"] + delta
            self.store.update(PRODUCTS, product["id"], {"quantity": new_quantity})
            return new_quantity
        except (StoreWriteError, RecordNotFound) as e:
            logger.error(f"Quantity update of product #{product['id']} by {delta} failed: {e}")
            raise StoreWriteFailedError("Error updating the product quantity") from e

    def _invalidate_product(self, product_id: Any) -> None:
        self.cache.delete("product", str(product_id))

    @staticmethod
    def _present(movement: Dict[str, Any]) -> Dict[str, Any]:
        movement = dict(movement)
        movement["movement_type"] = MovementType(movement["movement_type"]).value
        return movement


class MovementListing:
    """
    Lazy, restartable listing of movements ordered by `created_at`
    descending. Nothing is read until iteration, and every iteration
    re-reads the store.

    Usernames and product names are resolved with one batched lookup per
    table. A failed batch falls back to per-key lookups, and any key that
    still fails resolves to an empty string for its rows only.
    """

    def __init__(self, store: DataStore, limit: Optional[int] = None, offset: int = 0):
        self.store = store
        self.limit = limit
        self.offset = offset

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        movements = self.store.list(
            MOVEMENTS,
            order_by=["-created_at", "-id"],
            limit=self.limit,
            offset=self.offset,
        )
        usernames = self._lookup(USERS, distinct_values(movements, "user_id"), "username")
        product_names = self._lookup(PRODUCTS, distinct_values(movements, "product_id"), "name")

        for movement in movements:
            row = LedgerService._present(movement)
            row["username"] = usernames.get(movement["user_id"], "")
            row["product_name"] = product_names.get(movement["product_id"], "")
            yield row

    def _lookup(self, table: str, ids: list, field: str) -> Dict[Any, str]:
        if not ids:
            return {}
        try:
            records = self.store.list(table, filters={"id": ids})
            return {record["id"]: record.get(field) or "" for record in records}
        except Exception as e:
            logger.warning(f"Batched {table} lookup failed, falling back to single lookups: {e}")

        resolved = {}
        for record_id in ids:
            try:
                resolved[record_id] = self.store.get(table, record_id).get(field) or ""
            except Exception as e:
                logger.warning(f"Could not resolve {table} #{record_id}: {e}")
                resolved[record_id] = ""
        return resolved
