from sqlalchemy import Column, String, DateTime, ForeignKey, Uuid

from docvault.db.base import BaseModel


class Session(BaseModel):
    __tablename__ = "sessions"

    token = Column(String(1024), unique=True, index=True, nullable=False)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
