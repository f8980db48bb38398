from sqlalchemy import Column, Integer, String, UniqueConstraint
from kenz_waitlist.core.database import Base

class WaitlistEntry(Base):
    __tablename__ = "waitlist_entries"
    # Autoincrement id doubles as insertion order
    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String, nullable=False, unique=True, index=True)
    # Stored in the same "YYYY-MM-DD HH:MM:SS" form as the CSV ledger
    timestamp = Column(String(19), nullable=False)
    source = Column(String, nullable=False)
    ip_address = Column(String(45), nullable=False)
    user_agent = Column(String(200), nullable=False, default="")

    __table_args__ = (
        UniqueConstraint('email', name='uq_waitlist_email'),
    )
