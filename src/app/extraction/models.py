"""Extraction persistence models -- CRM configurations and their extraction fields.

Two SQLAlchemy models:
- CRMConfigurationModel: one row per connected CRM location
- ExtractionFieldModel: operator-configured extraction fields, unique by
  (config_id, target_key), carrying the stored remote field snapshot
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import JSON, UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.app.core.database import Base


class CRMConfigurationModel(Base):
    """Connected CRM location owning a set of extraction fields.

    The access token is stored as issued; refreshing it happens elsewhere.
    """

    __tablename__ = "crm_configurations"
    __table_args__ = (
        UniqueConstraint("location_id", name="uq_crm_configuration_location"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    location_id: Mapped[str] = mapped_column(String(100), nullable=False)
    business_name: Mapped[str | None] = mapped_column(String(300), nullable=True)
    access_token: Mapped[str] = mapped_column(Text, nullable=False, default="")
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default=text("true")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        onupdate=func.now(),
        nullable=True,
    )


class ExtractionFieldModel(Base):
    """One extracted attribute and where it is written on the contact.

    field_class is stored, not derived at read time. The remote snapshot
    is kept after the remote field disappears so it can be recreated.
    Linked to its configuration via config_id (application-level
    referential integrity).
    """

    __tablename__ = "extraction_fields"
    __table_args__ = (
        UniqueConstraint(
            "config_id",
            "target_key",
            name="uq_extraction_field_config_target",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    config_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    field_name: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    target_key: Mapped[str] = mapped_column(String(200), nullable=False)
    field_key: Mapped[str | None] = mapped_column(String(200), nullable=True)
    field_type: Mapped[str] = mapped_column(
        String(50), default="TEXT", server_default=text("'TEXT'")
    )
    field_class: Mapped[str] = mapped_column(
        String(20), default="custom", server_default=text("'custom'")
    )
    overwrite_policy: Mapped[str] = mapped_column(
        String(20), default="always", server_default=text("'always'")
    )
    original_remote_snapshot: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    placeholder: Mapped[str | None] = mapped_column(String(300), nullable=True)
    picklist_options: Mapped[list] = mapped_column(
        JSON, default=list, server_default=text("'[]'::json")
    )
    sort_order: Mapped[int] = mapped_column(
        Integer, default=0, server_default=text("0")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        onupdate=func.now(),
        nullable=True,
    )
