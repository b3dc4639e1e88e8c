from sqlalchemy import Column, Integer, String, Index
from database import Base


class AssignedIP(Base):
    """SQLAlchemy model mapping one IP address to at most one site."""

    __tablename__ = "assigned_ips"

    # Primary key
    id = Column(Integer, primary_key=True, index=True)

    ip_address = Column("ipaddress", String(45), nullable=False, unique=True)
    sitename = Column(String(100), nullable=True)  # references sites.sitename

    # Indexes
    __table_args__ = (
        Index("idx_assigned_ip_sitename", "sitename"),
    )

    def __repr__(self):
        return f"<AssignedIP(ip={self.ip_address}, sitename={self.sitename})>"
