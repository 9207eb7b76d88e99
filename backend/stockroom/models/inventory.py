from __future__ import annotations

from ..extensions import db
from stockroom.time_utils import to_utc_z, format_cents, utcnow


class Category(db.Model):
    """
    Grouping for stock items.

    REFERENTIAL GUARD: a category with at least one stock item cannot be
    deleted. The service checks this first so the caller gets a readable
    message; the RESTRICT foreign key on stock_items.category_id is the
    backstop when a concurrent insert slips in between check and delete.
    """
    __tablename__ = "categories"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_categories_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), nullable=False)
    description = db.Column(db.String(200), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<Category id={self.id} name={self.name!r}>"

    def to_dict(self, *, item_count: int | None = None) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
        if item_count is not None:
            data["item_count"] = item_count
        return data


class StockItem(db.Model):
    """
    Quantity-of-record for one stocked item.

    INVARIANTS:
    - quantity >= 0 at all times (CHECK constraint + service validation)
    - updated_at / updated_by change on every mutation
    - quantity is only mutated through stock_service (create, adjust,
      decrement_for_purchase); sales use a conditional UPDATE, never
      read-modify-write

    Price is stored in integer cents; the API formats it for display.
    version_id is the optimistic-concurrency row token for ORM updates
    (administrative edits). The purchase decrement bumps it in SQL.
    """
    __tablename__ = "stock_items"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="quantity_non_negative"),
        db.CheckConstraint("price_cents >= 0", name="price_non_negative"),
        db.Index("ix_stock_items_category_name", "category_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(100), nullable=False, index=True)
    category_id = db.Column(
        db.Integer,
        db.ForeignKey("categories.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    quantity = db.Column(db.Integer, nullable=False, default=0)
    price_cents = db.Column(db.Integer, nullable=False, default=0)

    purchase_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    supplier = db.Column(db.String(100), nullable=False)
    description = db.Column(db.String(500), nullable=True)
    location = db.Column(db.String(100), nullable=True)
    sku = db.Column(db.String(50), nullable=True)
    minimum_quantity = db.Column(db.Integer, nullable=True)
    reorder_point = db.Column(db.Integer, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    updated_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    category = db.relationship("Category", backref=db.backref("stock_items", lazy="dynamic", passive_deletes="all"))
    created_by_user = db.relationship("User", foreign_keys=[created_by])
    updated_by_user = db.relationship("User", foreign_keys=[updated_by])
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<StockItem id={self.id} name={self.name!r} quantity={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category_id": self.category_id,
            "category_name": self.category.name if self.category else None,
            "quantity": self.quantity,
            "price_cents": self.price_cents,
            "price": format_cents(self.price_cents),
            "purchase_date": to_utc_z(self.purchase_date),
            "supplier": self.supplier,
            "description": self.description,
            "location": self.location,
            "sku": self.sku,
            "minimum_quantity": self.minimum_quantity,
            "reorder_point": self.reorder_point,
            "is_active": self.is_active,
            "created_by": self.created_by,
            "created_by_name": self.created_by_user.full_name if self.created_by_user else None,
            "updated_by": self.updated_by,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
