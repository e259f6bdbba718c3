"""Shop session SQLAlchemy tables and Pydantic schema."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from product_downloads.db.session import Base


class ShopSessionRow(Base):
    """One row per installed shop; shop domain is the primary key."""

    __tablename__ = "shop_sessions"

    shop: Mapped[str] = mapped_column(String(255), primary_key=True)
    scope: Mapped[str] = mapped_column(Text, nullable=False, default="")
    access_token: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class PendingRedirectRow(Base):
    """URL a shop asked for before it was sent through OAuth."""

    __tablename__ = "pending_redirects"

    shop: Mapped[str] = mapped_column(String(255), primary_key=True)
    url: Mapped[str] = mapped_column(Text, nullable=False)


class ShopSession(BaseModel):
    """Authenticated merchant installation."""

    model_config = ConfigDict(from_attributes=True)

    shop: str
    scope: str = ""
    access_token: str
