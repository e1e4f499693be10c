"""
Order Management Service — リクエストモデル

クライアントから受け取る入力の形をここで確定させる。
ストアにアクセスする前に検証し、不正な入力は InvalidRequest にする。
"""

from decimal import Decimal
from typing import Annotated, Any

from pydantic import BaseModel, Field, StrictInt, ValidationError

from .errors import InvalidRequest

PositiveId = Annotated[StrictInt, Field(gt=0)]
PositiveQuantity = Annotated[StrictInt, Field(gt=0)]
MoneyAmount = Annotated[Decimal, Field(ge=0, max_digits=12, decimal_places=2)]


class OrderItemRequest(BaseModel):
    product_id: PositiveId
    quantity: PositiveQuantity
    # None ならカタログ価格を使う
    unit_price: MoneyAmount | None = None


class CreateOrderRequest(BaseModel):
    customer_id: PositiveId
    items: list[OrderItemRequest] = Field(min_length=1)


class CreateProductRequest(BaseModel):
    product_code: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=255)
    description: str = ""
    price: MoneyAmount
    status: str = "ACTIVE"
    quantity: Annotated[StrictInt, Field(ge=0)] = 0


def summarize_errors(exc: Exception) -> list[dict]:
    """pydantic / FastAPI の検証エラーを JSON に載せられる形に絞る。"""
    return [
        {"loc": [str(part) for part in err["loc"]], "msg": err["msg"], "type": err["type"]}
        for err in exc.errors()
    ]


def parse_order_request(payload: CreateOrderRequest | dict[str, Any]) -> CreateOrderRequest:
    if isinstance(payload, CreateOrderRequest):
        return payload
    try:
        return CreateOrderRequest.model_validate(payload)
    except ValidationError as exc:
        raise InvalidRequest("Invalid order request", details=summarize_errors(exc)) from exc
