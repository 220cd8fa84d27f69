# dental_clinic/models/inventory.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Column, Integer, String, Boolean, Date, DateTime, Numeric,
    ForeignKey, Text, Index, CheckConstraint
)
from sqlalchemy.orm import relationship

from dental_clinic.db.base import Base, MYSQL_ARGS

Qty = Numeric(14, 3)


# -------------------------
# Movement types
# -------------------------
MOVEMENT_RECEIVE = "receive"
MOVEMENT_CONSUME = "consume"
MOVEMENT_ADJUST = "adjust"


class InventoryItem(Base):
    __tablename__ = "inventory_items"
    __table_args__ = MYSQL_ARGS

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    sku_code = Column(String(100), unique=True, nullable=True, index=True)
    type = Column(String(20), nullable=False, default="supply")  # drug / equipment / supply / other
    unit = Column(String(50), nullable=False, default="pcs")

    # 0 disables low-stock alerts
    low_stock_threshold = Column(Integer, nullable=False, default=0)

    is_active = Column(Boolean, default=True, nullable=False)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    batches = relationship("InventoryBatch", back_populates="item")
    movements = relationship("InventoryMovement", back_populates="item")


class InventoryBatch(Base):
    """
    One received lot of an item. qty_on_hand is only ever decremented by
    allocation (or adjusted by admins) and never goes below zero.
    """
    __tablename__ = "inventory_batches"
    __table_args__ = (
        CheckConstraint("qty_on_hand >= 0", name="ck_inv_batch_qty_non_negative"),
        Index("ix_inv_batch_item_expiry", "item_id", "expiry_date"),
        MYSQL_ARGS,
    )

    id = Column(Integer, primary_key=True, index=True)
    item_id = Column(Integer, ForeignKey("inventory_items.id"), nullable=False, index=True)

    batch_number = Column(String(100), nullable=True)
    lot_number = Column(String(100), nullable=True)
    expiry_date = Column(Date, nullable=True)

    qty_received = Column(Qty, nullable=False, default=Decimal("0"))
    qty_on_hand = Column(Qty, nullable=False, default=Decimal("0"))

    received_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    item = relationship("InventoryItem", back_populates="batches")
    movements = relationship("InventoryMovement", back_populates="batch")


class InventoryMovement(Base):
    """Append-only stock ledger. Rows are written once and never updated."""
    __tablename__ = "inventory_movements"
    __table_args__ = (
        Index("ix_inv_mv_item_time", "item_id", "created_at"),
        Index("ix_inv_mv_ref", "ref_type", "ref_id"),
        MYSQL_ARGS,
    )

    id = Column(Integer, primary_key=True, index=True)
    item_id = Column(Integer, ForeignKey("inventory_items.id"), nullable=False, index=True)
    batch_id = Column(Integer, ForeignKey("inventory_batches.id"), nullable=True, index=True)

    type = Column(String(20), nullable=False)  # receive / consume / adjust
    quantity_change = Column(Qty, nullable=False)  # +IN / -OUT

    ref_type = Column(String(30), nullable=True)  # visit / appointment
    ref_id = Column(Integer, nullable=True)

    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    notes = Column(String(1000), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    item = relationship("InventoryItem", back_populates="movements")
    batch = relationship("InventoryBatch", back_populates="movements")
    user = relationship("User", foreign_keys=[user_id])
