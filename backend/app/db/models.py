from sqlalchemy import (
    JSON, Column, Integer, Boolean, Text, DateTime, ForeignKey, UniqueConstraint, text
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.dialects.postgresql import JSONB

Base = declarative_base()

FeatureList = JSON().with_variant(JSONB(), "postgresql")

class Vehicle(Base):
    __tablename__ = "vehicles"
    id = Column(Integer, primary_key=True, autoincrement=True)
    vin = Column(Text, nullable=False, unique=True)
    stock_number = Column(Text)
    year = Column(Integer)
    make = Column(Text, nullable=False)
    model = Column(Text, nullable=False)
    trim = Column(Text)
    price = Column(Integer)
    mileage = Column(Integer)
    exterior_color = Column(Text)
    interior_color = Column(Text)
    transmission = Column(Text)
    fuel_type = Column(Text)
    body_style = Column(Text)
    drivetrain = Column(Text)
    engine = Column(Text)
    short_description = Column(Text)
    long_description = Column(Text)
    features = Column(FeatureList)
    source_url = Column(Text)
    is_featured = Column(Boolean, nullable=False, default=False)  # owned by admin CRUD
    is_sold = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"))
    updated_at = Column(DateTime(timezone=True))

class VehicleImage(Base):
    __tablename__ = "vehicle_images"
    id = Column(Integer, primary_key=True, autoincrement=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id", ondelete="CASCADE"), nullable=False, index=True)
    url = Column(Text, nullable=False)
    position = Column(Integer, nullable=False)
    is_primary = Column(Boolean, nullable=False, default=False)
    __table_args__ = (UniqueConstraint("vehicle_id", "position"),)

class ScrapeLog(Base):
    __tablename__ = "scrape_logs"
    id = Column(Integer, primary_key=True, autoincrement=True)
    started_at = Column(DateTime(timezone=True), nullable=False)
    completed_at = Column(DateTime(timezone=True))
    status = Column(Text, nullable=False)  # running|syncing|completed|failed
    vehicles_found = Column(Integer)
    vehicles_skipped = Column(Integer)
    vehicles_added = Column(Integer)
    vehicles_updated = Column(Integer)
    vehicles_removed = Column(Integer)
    error_message = Column(Text)

class SyncLock(Base):
    __tablename__ = "sync_locks"
    name = Column(Text, primary_key=True)
    acquired_at = Column(DateTime(timezone=True), nullable=False)
