import uuid
from sqlalchemy import Column, Text, DateTime, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from .base import Base, now_utc


class Solution(Base):
    __tablename__ = 'solutions'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    issue_id = Column(UUID(as_uuid=True), ForeignKey('issues.id', ondelete='CASCADE', onupdate='CASCADE'), nullable=False)
    who_solved = Column(Text, nullable=False)
    how_solved = Column(Text, nullable=False)
    solved_at = Column(DateTime(timezone=True), nullable=False, default=now_utc)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)

    issue = relationship("Issue", back_populates="solutions")

    __table_args__ = (
        Index('idx_solutions_issue_id', 'issue_id'),
        Index('idx_solutions_solved_at', 'solved_at'),
        Index('idx_solutions_who_solved', 'who_solved'),
    )
