"""SQL for loading and saving the catalog and the sales history.

Functions here never commit; the caller owns the transaction.
"""

from typing import Iterable

from sqlalchemy import text
from sqlalchemy.orm import Session

from shopmaster.domain.models import Product, Sale, SaleLineItem


def count_products(db: Session) -> int:
    return db.execute(text("SELECT COUNT(*) FROM products")).scalar_one()


def load_products(db: Session) -> list[Product]:
    rows = db.execute(
        text(
            """
            SELECT
              id,
              shop_type,
              name,
              category,
              sku,
              purchase_price,
              selling_price,
              unit_type,
              stock,
              low_stock_threshold
            FROM products
            ORDER BY position ASC
            """
        )
    ).mappings().all()

    return [Product.model_validate(dict(row)) for row in rows]


def load_sales(db: Session) -> list[Sale]:
    sales = db.execute(
        text(
            """
            SELECT
              id,
              shop_type,
              created_at AS timestamp,
              customer_name,
              customer_phone,
              total_amount,
              payment_mode,
              total_profit
            FROM sales
            ORDER BY seq DESC
            """
        )
    ).mappings().all()

    items = db.execute(
        text(
            """
            SELECT sale_id, product_id, product_name, quantity, unit_price
            FROM sale_items
            ORDER BY sale_id, line_no ASC
            """
        )
    ).mappings().all()

    lines_by_sale: dict[str, list[SaleLineItem]] = {}
    for row in items:
        lines_by_sale.setdefault(row["sale_id"], []).append(
            SaleLineItem(
                product_id=row["product_id"],
                product_name=row["product_name"],
                quantity=row["quantity"],
                unit_price=row["unit_price"],
            )
        )

    return [
        Sale.model_validate({**dict(row), "items": tuple(lines_by_sale.get(row["id"], ()))})
        for row in sales
    ]


def next_head_position(db: Session) -> int:
    lowest = db.execute(text("SELECT MIN(position) FROM products")).scalar()
    return 0 if lowest is None else lowest - 1


def _product_params(product: Product) -> dict:
    return {
        "id": product.id,
        "shop_type": product.shop_type.value,
        "name": product.name,
        "category": product.category,
        "sku": product.sku,
        "purchase_price": str(product.purchase_price),
        "selling_price": str(product.selling_price),
        "unit_type": product.unit_type.value,
        "stock": str(product.stock),
        "low_stock_threshold": str(product.low_stock_threshold),
    }


def insert_product(db: Session, product: Product, position: int) -> None:
    db.execute(
        text(
            """
            INSERT INTO products (
              id,
              position,
              shop_type,
              name,
              category,
              sku,
              purchase_price,
              selling_price,
              unit_type,
              stock,
              low_stock_threshold
            )
            VALUES (
              :id,
              :position,
              :shop_type,
              :name,
              :category,
              :sku,
              :purchase_price,
              :selling_price,
              :unit_type,
              :stock,
              :low_stock_threshold
            )
            """
        ),
        {**_product_params(product), "position": position},
    )


def update_product(db: Session, product: Product) -> None:
    db.execute(
        text(
            """
            UPDATE products
            SET name = :name,
                category = :category,
                sku = :sku,
                purchase_price = :purchase_price,
                selling_price = :selling_price,
                unit_type = :unit_type,
                stock = :stock,
                low_stock_threshold = :low_stock_threshold
            WHERE id = :id
            """
        ),
        _product_params(product),
    )


def record_sale(db: Session, sale: Sale, products: Iterable[Product]) -> None:
    """Insert a committed sale and write the new stock of the products it touched."""
    db.execute(
        text(
            """
            INSERT INTO sales (
              id,
              shop_type,
              created_at,
              customer_name,
              customer_phone,
              total_amount,
              payment_mode,
              total_profit
            )
            VALUES (
              :id,
              :shop_type,
              :created_at,
              :customer_name,
              :customer_phone,
              :total_amount,
              :payment_mode,
              :total_profit
            )
            """
        ),
        {
            "id": sale.id,
            "shop_type": sale.shop_type.value,
            "created_at": sale.timestamp.isoformat(),
            "customer_name": sale.customer_name,
            "customer_phone": sale.customer_phone,
            "total_amount": str(sale.total_amount),
            "payment_mode": sale.payment_mode.value,
            "total_profit": str(sale.total_profit),
        },
    )

    for line_no, item in enumerate(sale.items):
        db.execute(
            text(
                """
                INSERT INTO sale_items (
                  sale_id,
                  line_no,
                  product_id,
                  product_name,
                  quantity,
                  unit_price,
                  subtotal
                )
                VALUES (
                  :sale_id,
                  :line_no,
                  :product_id,
                  :product_name,
                  :quantity,
                  :unit_price,
                  :subtotal
                )
                """
            ),
            {
                "sale_id": sale.id,
                "line_no": line_no,
                "product_id": item.product_id,
                "product_name": item.product_name,
                "quantity": str(item.quantity),
                "unit_price": str(item.unit_price),
                "subtotal": str(item.subtotal),
            },
        )

    for product in products:
        db.execute(
            text("UPDATE products SET stock = :stock WHERE id = :id"),
            {"stock": str(product.stock), "id": product.id},
        )
