"""Domain errors raised by the store services."""


class StoreError(Exception):
    """Base class for errors the HTTP layer turns into client responses."""


class ProductNotFoundError(StoreError):
    def __init__(self, product_id: int):
        super().__init__(f"Product not found: {product_id}")
        self.product_id = product_id


class CartItemNotFoundError(StoreError):
    def __init__(self, user_id: int, product_id: int):
        super().__init__(f"Item not found in cart: user={user_id} product={product_id}")
        self.user_id = user_id
        self.product_id = product_id


class InvalidScheduleError(StoreError):
    """A price schedule was rejected (bad window or price)."""
