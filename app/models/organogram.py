from sqlalchemy import Column, Integer, String, Boolean
from app.database import Base


class Office(Base):
    """Organogram office. The review agent only checks that an office exists."""
    __tablename__ = "offices"

    id = Column(Integer, primary_key=True, index=True)
    office_name = Column(String, nullable=False)
    division_id = Column(Integer, nullable=True, index=True)
    soft_deleted = Column(Boolean, default=False, nullable=False)

    def __repr__(self):
        return f"<Office {self.id}: {self.office_name}>"
