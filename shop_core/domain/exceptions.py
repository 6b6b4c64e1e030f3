from decimal import Decimal


class DomainException(Exception):
    pass


class InvalidQuantityError(DomainException):
    def __init__(self, quantity):
        self.quantity = quantity
        super().__init__(f"Количество должно быть целым положительным числом, получено: {quantity!r}")


class ProductNotFoundError(DomainException):
    def __init__(self, product_id: int):
        self.product_id = product_id
        super().__init__(f"Товар {product_id} не найден или не активен")


class InsufficientStockError(DomainException):
    def __init__(self, product_id: int, requested: int, available: int | None = None):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Недостаточно товара {product_id}. Доступно: {available}, требуется: {requested}"
        )


class EmptyOrderError(DomainException):
    pass


class InvalidOrderTotalError(DomainException):
    pass


class OrderNotFoundError(DomainException):
    pass


class OrderNumberConflictError(DomainException):
    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Не удалось выдать уникальный номер заказа за {attempts} попыток")


class InvalidTransitionError(DomainException):
    def __init__(self, current, requested):
        self.current = current
        self.requested = requested
        super().__init__(f"Недопустимый переход статуса: {current} -> {requested}")


class CouponError(DomainException):
    def __init__(self, code: str, message: str):
        self.code = code
        super().__init__(message)


class CouponNotFoundError(CouponError):
    def __init__(self, code: str):
        super().__init__(code, f"Купон {code} не найден или не активен")


class CouponExpiredError(CouponError):
    def __init__(self, code: str):
        super().__init__(code, f"Купон {code} недействителен на эту дату")


class CouponBelowMinimumError(CouponError):
    def __init__(self, code: str, minimum: Decimal, subtotal: Decimal):
        self.minimum = minimum
        self.subtotal = subtotal
        super().__init__(code, f"Купон {code} действует от суммы {minimum}, сумма заказа {subtotal}")


class CouponExhaustedError(CouponError):
    def __init__(self, code: str):
        super().__init__(code, f"Лимит использований купона {code} исчерпан")


class DuplicateCouponError(CouponError):
    def __init__(self, code: str, order_id: int):
        self.order_id = order_id
        super().__init__(code, f"Купон {code} уже применен к заказу {order_id}")
