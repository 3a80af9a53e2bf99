"""Site config ORM model. A single row keyed "site-config"."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from metastore.db.base import Base


class SiteConfigRow(Base):
    __tablename__ = "site_config"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    site_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    paypal_client_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    paypal_me_username: Mapped[str | None] = mapped_column(String(255), nullable=True)
    stripe_publishable_key: Mapped[str | None] = mapped_column(String(255), nullable=True)
    stripe_secret_key: Mapped[str | None] = mapped_column(String(255), nullable=True)
    telegram_username: Mapped[str | None] = mapped_column(String(255), nullable=True)
    video_list_title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    crypto: Mapped[str | None] = mapped_column(Text, nullable=True)  # JSON list
    email_host: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email_port: Mapped[str | None] = mapped_column(String(8), nullable=True)
    email_secure: Mapped[bool] = mapped_column(Boolean, default=False)
    email_user: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email_pass: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email_from: Mapped[str | None] = mapped_column(String(255), nullable=True)
    wasabi_config: Mapped[str | None] = mapped_column(Text, nullable=True)  # JSON object
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
