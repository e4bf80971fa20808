"""
Sale Service for GymDesk

Provides the point-of-sale operations:
- Sale number generation
- Stock-checked, all-or-nothing sale creation
- Sale listing and payment status changes
"""
import secrets
import string
from collections import OrderedDict
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload
from gymdesk.core.db_transaction import db_transaction
from gymdesk.core.exceptions import Conflict, NotFound, ValidationError
from gymdesk.core.timeutils import utc_now
from gymdesk.core.validators import get_member_or_404, get_product_or_404
from gymdesk.models.product import Product
from gymdesk.models.sale import Sale, SaleItem, PaymentStatusEnum
from gymdesk.schemas.sale import SaleCreate
from gymdesk.core.logging_config import get_logger

logger = get_logger("sale_service")

CENT = Decimal("0.01")
SALE_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits
SALE_SUFFIX_LENGTH = 5


def generate_sale_number(now: Optional[datetime] = None) -> str:
    """
    Build a sale number a person can read back over the counter.

    Format: SALE + YYYYMMDDHHMMSS (UTC) + 5 random characters, e.g.
    SALE20261019143005K7Q2D. The random suffix makes collisions unlikely;
    the unique index on sales.sale_number catches the rest.
    """
    stamp = (now or utc_now()).strftime("%Y%m%d%H%M%S")
    suffix = "".join(secrets.choice(SALE_SUFFIX_ALPHABET) for _ in range(SALE_SUFFIX_LENGTH))
    return f"SALE{stamp}{suffix}"


def _requested_quantities(sale_in: SaleCreate) -> "OrderedDict[int, int]":
    """Total quantity per product; the same product may appear on several lines."""
    requested: "OrderedDict[int, int]" = OrderedDict()
    for item in sale_in.items:
        requested[item.product_id] = requested.get(item.product_id, 0) + item.quantity
    return requested


def _check_stock(db: Session, requested: Dict[int, int]) -> Dict[int, Product]:
    """Validate every product before anything is written; the first failure rejects the sale."""
    products: Dict[int, Product] = {}
    for product_id, quantity in requested.items():
        product = get_product_or_404(db, product_id)
        if not product.is_active:
            raise ValidationError(
                f"Product {product.name} is not active",
                code="product_inactive",
                details={"product_id": product.id},
            )
        if product.stock_quantity < quantity:
            raise ValidationError(
                f"Insufficient stock for {product.name}. Available: {product.stock_quantity}, Requested: {quantity}",
                code="insufficient_stock",
                details={
                    "product_id": product.id,
                    "product_name": product.name,
                    "available": product.stock_quantity,
                    "requested": quantity,
                },
            )
        products[product_id] = product
    return products


def create_sale(db: Session, sale_in: SaleCreate, staff_id: Optional[int] = None) -> Sale:
    """
    Record a sale and take its items out of stock.

    The header, every line and every stock decrement commit together or not
    at all. Stock is decremented with a guarded UPDATE, so a concurrent sale
    that took the last units makes this one fail with Conflict instead of
    driving stock negative.

    Raises:
        NotFound: Unknown member or product
        ValidationError: Inactive product, not enough stock, discount above total
        Conflict: Stock changed underneath us, or the sale number collided
    """
    if sale_in.member_id is not None:
        get_member_or_404(db, sale_in.member_id)

    requested = _requested_quantities(sale_in)
    products = _check_stock(db, requested)

    lines: List[Tuple[int, int, Decimal, Decimal]] = []
    total_amount = Decimal("0.00")
    for item in sale_in.items:
        product = products[item.product_id]
        unit_price = item.unit_price if item.unit_price is not None else product.price
        unit_price = Decimal(unit_price).quantize(CENT)
        line_total = (unit_price * item.quantity).quantize(CENT)
        total_amount += line_total
        lines.append((item.product_id, item.quantity, unit_price, line_total))

    discount = sale_in.discount_amount.quantize(CENT)
    if discount > total_amount:
        raise ValidationError(
            "Discount cannot exceed the sale total",
            code="discount_exceeds_total",
            details={"total_amount": str(total_amount), "discount_amount": str(discount)},
        )

    now = utc_now()
    sale = Sale(
        sale_number=generate_sale_number(now),
        member_id=sale_in.member_id,
        total_amount=total_amount,
        discount_amount=discount,
        final_amount=total_amount - discount,
        payment_method=sale_in.payment_method,
        payment_status=sale_in.payment_status,
        staff_id=staff_id,
        notes=sale_in.notes,
        created_at=now,
    )

    with db_transaction(db, "create_sale"):
        db.add(sale)
        try:
            db.flush()
        except IntegrityError:
            raise Conflict("Sale number collision, please retry", code="sale_number_conflict") from None

        for product_id, quantity, unit_price, line_total in lines:
            db.add(SaleItem(
                sale_id=sale.id,
                product_id=product_id,
                quantity=quantity,
                unit_price=unit_price,
                total_price=line_total,
            ))

        for product_id, quantity in requested.items():
            result = db.execute(
                update(Product)
                .where(Product.id == product_id, Product.stock_quantity >= quantity)
                .values(stock_quantity=Product.stock_quantity - quantity, updated_at=now)
            )
            if result.rowcount != 1:
                raise Conflict(
                    f"Stock for {products[product_id].name} changed while the sale was recorded",
                    code="stock_conflict",
                    details={"product_id": product_id},
                )

    logger.info(
        f"Recorded sale {sale.sale_number}",
        extra={
            "sale_id": sale.id,
            "sale_number": sale.sale_number,
            "final_amount": str(sale.final_amount),
            "line_count": len(lines),
            "staff_id": staff_id,
        },
    )
    return get_sale(db, sale.id)


def get_sale(db: Session, sale_id: int) -> Sale:
    sale = (
        db.query(Sale)
        .options(
            joinedload(Sale.member),
            joinedload(Sale.items).joinedload(SaleItem.product),
        )
        .filter(Sale.id == sale_id)
        .first()
    )
    if sale is None:
        raise NotFound("Sale not found", code="sale_not_found", details={"sale_id": sale_id})
    return sale


def list_sales(
    db: Session,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    payment_status: Optional[PaymentStatusEnum] = None,
    member_id: Optional[int] = None,
    page: int = 1,
    limit: int = 10,
) -> Tuple[List[Sale], int]:
    query = db.query(Sale)
    if start is not None:
        query = query.filter(Sale.created_at >= start)
    if end is not None:
        query = query.filter(Sale.created_at <= end)
    if payment_status is not None:
        query = query.filter(Sale.payment_status == payment_status)
    if member_id is not None:
        query = query.filter(Sale.member_id == member_id)

    total = query.count()
    sales = (
        query.options(
            joinedload(Sale.member),
            joinedload(Sale.items).joinedload(SaleItem.product),
        )
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return sales, total


def set_payment_status(db: Session, sale: Sale, payment_status: PaymentStatusEnum) -> Sale:
    """Update the payment status. Stock is not restored on refund."""
    with db_transaction(db, "set_payment_status"):
        sale.payment_status = payment_status
    logger.info(f"Sale {sale.sale_number} payment status -> {payment_status.value}")
    return sale
