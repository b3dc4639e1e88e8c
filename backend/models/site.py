from sqlalchemy import Column, Integer, String
from database import Base


class Site(Base):
    """SQLAlchemy model for sites that IP addresses can be assigned to."""

    __tablename__ = "sites"

    # Primary key
    id = Column(Integer, primary_key=True, index=True)

    # "<group>.<name>", e.g. "HQ.Floor2"
    sitename = Column(String(100), nullable=False, unique=True, index=True)
    sitefullname = Column(String(255), nullable=True)

    def __repr__(self):
        return f"<Site(id={self.id}, sitename={self.sitename})>"
