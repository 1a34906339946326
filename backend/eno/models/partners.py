from __future__ import annotations

from ..extensions import db
from eno.time_utils import to_utc_z
from ._base import new_id, TIMESTAMP_DEFAULT


class Partner(db.Model):
    """
    An external business whose stock and deliveries the agency manages.

    The primary key is the partner code handed out by generate_partner_code
    (PAT001, PAT002, ...). partner_code starts equal to id but may be
    reassigned later; id never changes.
    """
    __tablename__ = "partners"

    id = db.Column(db.String(32), primary_key=True)
    partner_code = db.Column(db.String(32), nullable=True, unique=True, index=True)

    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(64), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    contact_person = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=TIMESTAMP_DEFAULT)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=TIMESTAMP_DEFAULT, onupdate=TIMESTAMP_DEFAULT)

    def __repr__(self) -> str:
        return f"<Partner id={self.id!r} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "partner_code": self.partner_code,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "contact_person": self.contact_person,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Product(db.Model):
    """
    Product held in stock on behalf of a partner.

    STOCK: products.stock is the current quantity. It is only changed through
    inventory_service.record_stock_movement, which appends the matching
    StockMovement in the same transaction.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_partner_name", "partner_id", "name"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    partner_id = db.Column(db.String(32), db.ForeignKey("partners.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    stock = db.Column(db.Integer, nullable=False, default=0)
    alert_threshold = db.Column(db.Integer, nullable=False, default=0)
    price = db.Column(db.Float, nullable=False, default=0.0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=TIMESTAMP_DEFAULT)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=TIMESTAMP_DEFAULT, onupdate=TIMESTAMP_DEFAULT)

    partner = db.relationship("Partner", backref=db.backref("products", lazy=True))

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} partner_id={self.partner_id} stock={self.stock}>"

    @property
    def is_low_stock(self) -> bool:
        return self.alert_threshold > 0 and self.stock <= self.alert_threshold

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "partner_id": self.partner_id,
            "name": self.name,
            "stock": self.stock,
            "alert_threshold": self.alert_threshold,
            "price": self.price,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockMovement(db.Model):
    """Append-only audit trail of stock changes (no updates/deletes through the API)."""
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_product_created", "product_id", "created_at"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    product_id = db.Column(db.String(36), db.ForeignKey("products.id"), nullable=False, index=True)

    # in / out / adjustment; quantity is always a positive magnitude
    type = db.Column(db.String(16), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    previous_stock = db.Column(db.Integer, nullable=False)
    new_stock = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(255), nullable=True)

    user_id = db.Column(db.String(36), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=TIMESTAMP_DEFAULT, index=True)

    product = db.relationship("Product", backref=db.backref("movements", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "type": self.type,
            "quantity": self.quantity,
            "previous_stock": self.previous_stock,
            "new_stock": self.new_stock,
            "reason": self.reason,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
        }


class Delivery(db.Model):
    __tablename__ = "deliveries"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    partner_id = db.Column(db.String(32), db.ForeignKey("partners.id"), nullable=True, index=True)

    customer_name = db.Column(db.String(255), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    amount = db.Column(db.Float, nullable=False, default=0.0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=TIMESTAMP_DEFAULT)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=TIMESTAMP_DEFAULT, onupdate=TIMESTAMP_DEFAULT)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "partner_id": self.partner_id,
            "customer_name": self.customer_name,
            "address": self.address,
            "status": self.status,
            "amount": self.amount,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
