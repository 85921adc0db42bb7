"""Products created through the product wizard.

All three text columns are NOT NULL with an empty-string server default;
presence (non-blank) is enforced by ProductComplete before a row is written.
`price` is stored as text, exactly as the user typed it.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from product_wizard.database import Base


class Product(Base):
    __tablename__ = "products"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="", server_default="")
    price: Mapped[str] = mapped_column(String(255), nullable=False, default="", server_default="")
    category: Mapped[str] = mapped_column(String(255), nullable=False, default="", server_default="")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )
