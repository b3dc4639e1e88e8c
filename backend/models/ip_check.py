from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Text
from database import Base


class IPCheck(Base):
    """SQLAlchemy model for per-IP device metadata (the device record)."""

    __tablename__ = "ip_checks"

    # Primary key
    id = Column(Integer, primary_key=True, index=True)

    ip_address = Column("ipaddress", String(45), nullable=False, unique=True, index=True)

    # Device metadata
    mac_address = Column("macaddress", String(17), nullable=True)
    device = Column(String(255), nullable=True)
    location = Column(String(255), nullable=True)
    comment = Column(Text, nullable=True)

    # Provenance
    modified_date = Column("modifieddate", DateTime, default=datetime.utcnow)
    modified_by = Column("modifiedby", String(100), nullable=True)

    def __repr__(self):
        return f"<IPCheck(ip={self.ip_address}, mac={self.mac_address}, device={self.device})>"
