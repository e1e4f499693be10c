"""
Order Management Service — エラー定義

注文処理で発生するエラーの分類。
コマンド / クエリ層がこれらを送出し、API 層 (main.py) が HTTP レスポンスに変換する。

to_payload() の "error" には人が読めるメッセージを入れる。
フロントエンドは response.data.error をそのまま表示するため。
"""

from typing import Any


class OrderError(Exception):
    """注文処理エラーの基底クラス"""

    code = "OrderError"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message, "code": self.code}


class InvalidRequest(OrderError):
    """入力が不正（ストアへアクセスする前に検出）"""

    code = "InvalidRequest"

    def __init__(self, message: str, details: list[dict] | None = None) -> None:
        super().__init__(message)
        self.details = details or []

    def to_payload(self) -> dict[str, Any]:
        return {**super().to_payload(), "details": self.details}


class CustomerNotFound(OrderError):
    code = "CustomerNotFound"

    def __init__(self, customer_id: int) -> None:
        super().__init__(f"Customer {customer_id} not found")
        self.customer_id = customer_id

    def to_payload(self) -> dict[str, Any]:
        return {**super().to_payload(), "customer_id": self.customer_id}


class ProductNotFound(OrderError):
    code = "ProductNotFound"

    def __init__(self, product_id: int) -> None:
        super().__init__(f"Product {product_id} not found")
        self.product_id = product_id

    def to_payload(self) -> dict[str, Any]:
        return {**super().to_payload(), "product_id": self.product_id}


class InsufficientStock(OrderError):
    """要求数量が在庫を上回る"""

    code = "InsufficientStock"

    def __init__(self, product_id: int, requested: int, available: int) -> None:
        super().__init__(
            f"Insufficient stock for product {product_id}: "
            f"requested={requested}, available={available}"
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available

    def to_payload(self) -> dict[str, Any]:
        return {
            **super().to_payload(),
            "product_id": self.product_id,
            "requested": self.requested,
            "available": self.available,
        }


class OrderNotFound(OrderError):
    code = "OrderNotFound"

    def __init__(self, order_id: int) -> None:
        super().__init__("Order not found")
        self.order_id = order_id

    def to_payload(self) -> dict[str, Any]:
        return {**super().to_payload(), "order_id": self.order_id}


class DuplicateProductCode(OrderError):
    code = "DuplicateProductCode"

    def __init__(self, product_code: str) -> None:
        super().__init__("product_code must be unique")
        self.product_code = product_code

    def to_payload(self) -> dict[str, Any]:
        return {**super().to_payload(), "product_code": self.product_code}


class PersistenceFailure(OrderError):
    """
    インフラ要因でコミットできなかった。

    詳細はサーバーログにのみ出し、クライアントには固定メッセージだけを返す。
    """

    code = "PersistenceFailure"

    def __init__(self, message: str = "Failed to place order") -> None:
        super().__init__(message)
