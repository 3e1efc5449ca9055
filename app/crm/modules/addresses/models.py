from __future__ import annotations

from typing import Any

from sqlalchemy import Boolean, ForeignKey, Index, Integer, Text, false
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.crm.models import Base


class Address(Base):
    """
    Postal address owned by a customer.
    At most one address per customer carries is_primary; the services keep that
    true by clearing siblings before setting it, the schema does not.
    """

    __tablename__ = "addresses"
    __table_args__ = (
        Index("idx_addresses_customer_id", "customerId"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    customer_id: Mapped[int] = mapped_column(
        "customerId",
        ForeignKey("customers.id", ondelete="CASCADE"),
        nullable=False,
    )
    address_line1: Mapped[str] = mapped_column("addressLine1", Text, nullable=False)
    address_line2: Mapped[str | None] = mapped_column("addressLine2", Text, nullable=True)
    city: Mapped[str] = mapped_column(Text, nullable=False)
    state: Mapped[str] = mapped_column(Text, nullable=False)
    pin_code: Mapped[str] = mapped_column("pinCode", Text, nullable=False)
    is_primary: Mapped[bool] = mapped_column(
        "isPrimary", Boolean, nullable=False, default=False, server_default=false()
    )

    customer: Mapped["Customer"] = relationship("Customer", back_populates="addresses")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "customerId": self.customer_id,
            "addressLine1": self.address_line1,
            "addressLine2": self.address_line2,
            "city": self.city,
            "state": self.state,
            "pinCode": self.pin_code,
            "isPrimary": bool(self.is_primary),
        }
