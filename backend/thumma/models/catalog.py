from __future__ import annotations

from ..extensions import db
from thumma.time_utils import to_utc_z


PRODUCT_STATUS_IN_STOCK = "In Stock"
PRODUCT_STATUS_LOW_STOCK = "Low Stock"
PRODUCT_STATUS_OUT_OF_STOCK = "Out of Stock"


class Category(db.Model):
    """
    Product category, two levels deep (main category -> subcategory).

    Products reference categories by slug (e.g. 'building_materials.cement_aggregates').
    """
    __tablename__ = "categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.JSON, nullable=False)  # {"en": ..., "th": ...}
    slug = db.Column(db.String(128), nullable=False, unique=True, index=True)
    parent_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)
    display_order = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    children = db.relationship("Category", backref=db.backref("parent", remote_side=[id]), lazy=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "parent_id": self.parent_id,
            "display_order": self.display_order,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Product(db.Model):
    """
    Catalog product. Owns its variants exclusively; deleting the product
    deletes its variants and their stock history.
    """
    __tablename__ = "products"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.JSON, nullable=False)
    description = db.Column(db.JSON, nullable=True)
    category = db.Column(db.String(128), nullable=False, index=True)
    image_url = db.Column(db.String(512), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    variants = db.relationship(
        "ProductVariant",
        backref="product",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="ProductVariant.id",
    )

    def to_dict(self, include_variants: bool = True) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "image_url": self.image_url,
            "created_at": to_utc_z(self.created_at),
        }
        if include_variants:
            data["variants"] = [v.to_dict() for v in self.variants]
        return data


class ProductVariant(db.Model):
    """
    Sellable SKU. Carries the tiered price block and the stock level.

    INVARIANT: status always matches stock_quantity (see inventory_service.derive_status).
    """
    __tablename__ = "product_variants"
    __table_args__ = (
        db.CheckConstraint("stock_quantity >= 0", name="ck_variants_stock_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    sku = db.Column(db.String(64), nullable=False, unique=True, index=True)
    size = db.Column(db.String(64), nullable=False, default="")
    barcode = db.Column(db.String(128), nullable=True, index=True)

    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default=PRODUCT_STATUS_OUT_OF_STOCK)

    # Price block (all amounts in satang)
    price_walk_in_cents = db.Column(db.Integer, nullable=False, default=0)
    price_contractor_cents = db.Column(db.Integer, nullable=False, default=0)
    price_government_cents = db.Column(db.Integer, nullable=False, default=0)
    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)

    history = db.relationship(
        "StockMovement",
        backref="variant",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="StockMovement.id",
    )

    def price_block(self) -> dict:
        return {
            "walk_in": self.price_walk_in_cents,
            "contractor": self.price_contractor_cents,
            "government": self.price_government_cents,
            "cost": self.cost_price_cents,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "sku": self.sku,
            "size": self.size,
            "barcode": self.barcode,
            "stock": self.stock_quantity,
            "status": self.status,
            "price": self.price_block(),
            "history": [h.to_dict() for h in self.history],
        }


class StockMovement(db.Model):
    """
    Append-only stock history for a variant.

    change is signed: negative for sales, positive for returns and restocks.
    """
    __tablename__ = "stock_movements"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    variant_id = db.Column(db.Integer, db.ForeignKey("product_variants.id"), nullable=False, index=True)
    change = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(255), nullable=False)
    operator = db.Column(db.String(128), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "date": to_utc_z(self.created_at),
            "change": self.change,
            "reason": self.reason,
            "operator": self.operator,
        }
