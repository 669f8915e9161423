"""
洗衣计价引擎 - 纯计算，不访问数据库

单价按服务类型文本（大小写不敏感的子串匹配）从价目项的三档价格中选取：
同时包含 wash 与 iron -> 洗烫价；仅 wash -> 洗涤价；仅 iron -> 熨烫价；否则基础价。
某档价格未设置（为 0）时回退到基础价。
"""
import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

BULK_DISCOUNT_RATE = Decimal("0.10")
BULK_DISCOUNT_MIN_QUANTITY = 20
DEFAULT_SERVICE_TYPE = "N/A"

_CENT = Decimal("0.01")


class PricingError(ValueError):
    """计价输入无法解析（如引用了不存在的价目项）"""


class MissingItemPolicy(str, Enum):
    """价目项不存在时的处理策略"""
    DROP = "drop"       # 丢弃该行并记录日志
    REJECT = "reject"   # 整单拒绝


def to_money(value: Any) -> Decimal:
    """转换为保留两位小数的金额，None 视为 0"""
    if value is None or value == "":
        return Decimal("0.00")
    return Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class CatalogPrices:
    """价目项价格快照"""

    item_id: int
    name: str
    price: Decimal
    price_wash: Decimal = Decimal("0")
    price_iron: Decimal = Decimal("0")
    price_both: Decimal = Decimal("0")

    @classmethod
    def from_item(cls, item: Any) -> "CatalogPrices":
        return cls(
            item_id=item.id,
            name=item.name,
            price=to_money(item.price),
            price_wash=to_money(item.price_wash),
            price_iron=to_money(item.price_iron),
            price_both=to_money(item.price_both),
        )


@dataclass(frozen=True)
class LineRequest:
    """待计价的明细行"""

    item_id: int
    quantity: int = 1
    service_type: Optional[str] = None


@dataclass(frozen=True)
class PricedLine:
    """已计价明细行；unit_price 为冻结的单价快照"""

    item_id: Optional[int]
    name: str
    service_type: str
    quantity: int
    unit_price: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class Fees:
    """附加费用，未设置视为 0"""

    urgent_fee: Decimal = Decimal("0")
    service_charge: Decimal = Decimal("0")

    @classmethod
    def of(cls, urgent_fee: Any = None, service_charge: Any = None) -> "Fees":
        return cls(urgent_fee=to_money(urgent_fee), service_charge=to_money(service_charge))


@dataclass(frozen=True)
class PricedOrder:
    """计价结果"""

    lines: Tuple[PricedLine, ...]
    subtotal: Decimal
    discount: Decimal
    total: Decimal
    fees: Fees
    dropped_item_ids: Tuple[int, ...] = ()

    @property
    def total_quantity(self) -> int:
        return sum(line.quantity for line in self.lines)

    @property
    def discount_applied(self) -> bool:
        return self.discount > 0


def resolve_unit_price(prices: CatalogPrices, service_type: Optional[str]) -> Decimal:
    """根据服务类型选取单价"""
    label = (service_type or DEFAULT_SERVICE_TYPE).lower()
    has_wash = "wash" in label
    has_iron = "iron" in label

    if has_wash and has_iron:
        variant = prices.price_both
    elif has_wash:
        variant = prices.price_wash
    elif has_iron:
        variant = prices.price_iron
    else:
        return prices.price
    return variant if variant > 0 else prices.price


def _summarise(lines: Sequence[PricedLine], fees: Fees, discount_requested: bool,
               dropped: Iterable[int] = ()) -> PricedOrder:
    subtotal = sum((line.line_total for line in lines), Decimal("0"))
    total_quantity = sum(line.quantity for line in lines)

    discount = Decimal("0")
    if discount_requested and total_quantity >= BULK_DISCOUNT_MIN_QUANTITY:
        discount = (subtotal * BULK_DISCOUNT_RATE).quantize(_CENT, rounding=ROUND_HALF_UP)

    total = subtotal - discount + fees.urgent_fee + fees.service_charge
    return PricedOrder(
        lines=tuple(lines),
        subtotal=to_money(subtotal),
        discount=to_money(discount),
        total=to_money(total),
        fees=fees,
        dropped_item_ids=tuple(dropped),
    )


def price_order(requests: Iterable[LineRequest], catalog: Mapping[int, CatalogPrices],
                fees: Optional[Fees] = None, discount_requested: bool = False,
                on_missing: MissingItemPolicy = MissingItemPolicy.DROP) -> PricedOrder:
    """
    对订单完整计价（按当前价目表解析单价）

    Args:
        requests: 明细请求
        catalog: item_id -> 价格快照
        fees: 加急费与服务费
        discount_requested: 是否申请批量折扣（总件数 >= 20 时打九折）
        on_missing: 价目项不存在时的处理策略

    Raises:
        PricingError: on_missing=REJECT 且存在无法解析的价目项
    """
    fees = fees or Fees()
    lines: List[PricedLine] = []
    dropped: List[int] = []

    for request in requests:
        prices = catalog.get(request.item_id)
        if prices is None:
            if on_missing == MissingItemPolicy.REJECT:
                raise PricingError(f"Laundry item {request.item_id} not found")
            logger.warning(f"Dropping laundry line for missing item {request.item_id}")
            dropped.append(request.item_id)
            continue

        quantity = request.quantity or 1
        lines.append(PricedLine(
            item_id=prices.item_id,
            name=prices.name,
            service_type=request.service_type or DEFAULT_SERVICE_TYPE,
            quantity=quantity,
            unit_price=resolve_unit_price(prices, request.service_type),
        ))

    return _summarise(lines, fees, discount_requested, dropped)


def reprice_lines(lines: Iterable[PricedLine], fees: Optional[Fees] = None,
                  discount_requested: bool = False) -> PricedOrder:
    """仅费用/折扣变更时，使用已冻结的单价重新汇总，不重新查价目表"""
    return _summarise(list(lines), fees or Fees(), discount_requested)
