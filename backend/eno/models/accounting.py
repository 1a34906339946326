from __future__ import annotations

from ..extensions import db
from eno.time_utils import to_utc_z
from ._base import new_id, iso_date, TIMESTAMP_DEFAULT


class Transaction(db.Model):
    """Manual income or expense entry in the books."""
    __tablename__ = "transactions"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    type = db.Column(db.String(16), nullable=False, index=True)
    amount = db.Column(db.Float, nullable=False)
    category = db.Column(db.String(128), nullable=True, index=True)
    description = db.Column(db.Text, nullable=True)
    operation_date = db.Column(db.Date, nullable=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=TIMESTAMP_DEFAULT)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "amount": self.amount,
            "category": self.category,
            "description": self.description,
            "operation_date": iso_date(self.operation_date),
            "created_at": to_utc_z(self.created_at),
        }


class StandardOrder(db.Model):
    """One-off delivery paid outside any partner settlement cycle."""
    __tablename__ = "standard_orders"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    pickup_location = db.Column(db.String(255), nullable=True)
    delivery_location = db.Column(db.String(255), nullable=True)
    delivery_amount = db.Column(db.Float, nullable=False, default=0.0)
    operation_date = db.Column(db.Date, nullable=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=TIMESTAMP_DEFAULT)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "pickup_location": self.pickup_location,
            "delivery_location": self.delivery_location,
            "delivery_amount": self.delivery_amount,
            "operation_date": iso_date(self.operation_date),
            "created_at": to_utc_z(self.created_at),
        }


class PartnerDeliveryFee(db.Model):
    """
    Periodic settlement of a partner's turnover and the delivery fee owed
    to the agency for the packages delivered in that period.
    """
    __tablename__ = "partner_delivery_fees"
    __table_args__ = (
        db.Index("ix_partner_fees_partner_date", "partner_id", "operation_date"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    partner_id = db.Column(db.String(32), db.ForeignKey("partners.id"), nullable=False)

    turnover = db.Column(db.Float, nullable=False, default=0.0)
    total_delivery_fee = db.Column(db.Float, nullable=False, default=0.0)
    total_packages_delivered = db.Column(db.Integer, nullable=False, default=0)
    operation_date = db.Column(db.Date, nullable=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=TIMESTAMP_DEFAULT)

    partner = db.relationship("Partner", backref=db.backref("delivery_fees", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "partner_id": self.partner_id,
            "turnover": self.turnover,
            "total_delivery_fee": self.total_delivery_fee,
            "total_packages_delivered": self.total_packages_delivered,
            "operation_date": iso_date(self.operation_date),
            "created_at": to_utc_z(self.created_at),
        }


class Salary(db.Model):
    __tablename__ = "salaries"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    user_id = db.Column(db.String(36), db.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True, index=True)
    beneficiary_name = db.Column(db.String(255), nullable=True)
    amount = db.Column(db.Float, nullable=False)
    payment_date = db.Column(db.Date, nullable=False, index=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=TIMESTAMP_DEFAULT)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "beneficiary_name": self.beneficiary_name,
            "amount": self.amount,
            "payment_date": iso_date(self.payment_date),
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }


class BankDeposit(db.Model):
    """Cash deposited at the bank; receipt_photo_url points at an external file."""
    __tablename__ = "bank_deposits"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    date = db.Column(db.Date, nullable=False, index=True)
    reference = db.Column(db.String(128), nullable=True)
    amount = db.Column(db.Float, nullable=False)
    receipt_photo_url = db.Column(db.String(1024), nullable=True)
    user_id = db.Column(db.String(36), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=TIMESTAMP_DEFAULT)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": iso_date(self.date),
            "reference": self.reference,
            "amount": self.amount,
            "receipt_photo_url": self.receipt_photo_url,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
        }
