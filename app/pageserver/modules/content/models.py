from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.pageserver.models import Base


class Part(Base):
    __tablename__ = "parts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    # Stable plugin identifier handed to the part loader (an importable module path).
    module: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)


class Template(Base):
    __tablename__ = "templates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    src: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True, onupdate=datetime.utcnow)
    created_by_user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    updated_by_user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    regions: Mapped[list[TemplateRegion]] = relationship(
        back_populates="template",
        order_by="TemplateRegion.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    properties: Mapped[list[TemplateProperty]] = relationship(
        back_populates="template",
        order_by="TemplateProperty.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class TemplateRegion(Base):
    __tablename__ = "template_regions"
    __table_args__ = (UniqueConstraint("template_id", "name", name="uq_template_regions_name"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    template_id: Mapped[int] = mapped_column(ForeignKey("templates.id", ondelete="CASCADE"), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    name: Mapped[str] = mapped_column(String(128), nullable=False)

    template: Mapped[Template] = relationship(back_populates="regions")


class TemplateProperty(Base):
    __tablename__ = "template_properties"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    template_id: Mapped[int] = mapped_column(ForeignKey("templates.id", ondelete="CASCADE"), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    value: Mapped[str | None] = mapped_column(Text, nullable=True)

    template: Mapped[Template] = relationship(back_populates="properties")


class Page(Base):
    __tablename__ = "pages"
    __table_args__ = (UniqueConstraint("view", "url", name="uq_pages_view_url"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    # "draft" holds the latest edits, "live" the published snapshot.
    view: Mapped[str] = mapped_column(String(16), nullable=False, default="draft")
    url: Mapped[str] = mapped_column(String(512), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # 200 normal, 404 not found, 410 gone, 3xx redirect
    status: Mapped[int] = mapped_column(Integer, nullable=False, default=200)

    template_id: Mapped[int | None] = mapped_column(ForeignKey("templates.id", ondelete="SET NULL"), nullable=True)
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True, onupdate=datetime.utcnow)
    created_by_user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    updated_by_user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    template: Mapped[Template | None] = relationship(lazy="selectin")
    regions: Mapped[list[PageRegion]] = relationship(
        back_populates="page",
        order_by="PageRegion.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class PageRegion(Base):
    __tablename__ = "page_regions"
    __table_args__ = (UniqueConstraint("page_id", "name", name="uq_page_regions_name"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    page_id: Mapped[int] = mapped_column(ForeignKey("pages.id", ondelete="CASCADE"), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    name: Mapped[str] = mapped_column(String(128), nullable=False)

    page: Mapped[Page] = relationship(back_populates="regions")
    includes: Mapped[list[PageInclude]] = relationship(
        back_populates="region",
        order_by="PageInclude.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class PageInclude(Base):
    __tablename__ = "page_includes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    region_id: Mapped[int] = mapped_column(ForeignKey("page_regions.id", ondelete="CASCADE"), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    part_id: Mapped[int | None] = mapped_column(ForeignKey("parts.id", ondelete="SET NULL"), nullable=True)
    # Opaque to the server; only the bound part interprets it.
    data_json: Mapped[str | None] = mapped_column(Text, nullable=True)

    region: Mapped[PageRegion] = relationship(back_populates="includes")
    part: Mapped[Part | None] = relationship(lazy="selectin")
