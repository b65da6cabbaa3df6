import uuid
from sqlalchemy import Column, String, Text, DateTime, Boolean, Integer, ForeignKey, Index, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from .base import Base, now_utc
from sites_manager.utils.choices import ALL_ISSUE_TYPES, ALL_PRIORITIES, sql_in_list


class Issue(Base):
    __tablename__ = 'issues'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    site_id = Column(UUID(as_uuid=True), ForeignKey('sites.id', ondelete='CASCADE', onupdate='CASCADE'), nullable=False)
    description = Column(Text, nullable=False)
    priority = Column(String(16), nullable=False)
    is_solved = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    site = relationship("Site", back_populates="issues")
    type_links = relationship(
        "IssueTypeLink",
        back_populates="issue",
        cascade="all, delete-orphan",
        order_by="IssueTypeLink.position",
    )
    solutions = relationship(
        "Solution",
        back_populates="issue",
        cascade="all, delete-orphan",
        order_by="Solution.solved_at.desc()",
    )

    @property
    def issue_types(self):
        return [link.issue_type for link in self.type_links]

    def set_issue_types(self, issue_types):
        """Replace the type links, keeping the caller's order and dropping duplicates.

        Links for types that stay are reused so their (issue_id, issue_type)
        rows are updated rather than deleted and re-inserted.
        """
        seen = []
        for value in issue_types or []:
            value = getattr(value, "value", value)
            if value not in seen:
                seen.append(value)
        current = {link.issue_type: link for link in self.type_links}
        links = []
        for position, value in enumerate(seen):
            link = current.get(value) or IssueTypeLink(issue_type=value)
            link.position = position
            links.append(link)
        self.type_links = links

    __table_args__ = (
        Index('idx_issues_site_id', 'site_id'),
        Index('idx_issues_is_solved', 'is_solved'),
        Index('idx_issues_created_at', 'created_at'),
        CheckConstraint(f"priority in ({sql_in_list(ALL_PRIORITIES)})", name='ck_issues_priority'),
    )


class IssueTypeLink(Base):
    __tablename__ = 'issue_type_links'
    issue_id = Column(UUID(as_uuid=True), ForeignKey('issues.id', ondelete='CASCADE'), primary_key=True)
    issue_type = Column(String(32), primary_key=True)
    position = Column(Integer, nullable=False, default=0)

    issue = relationship("Issue", back_populates="type_links")

    __table_args__ = (
        Index('idx_issue_type_links_issue_type', 'issue_type'),
        CheckConstraint(f"issue_type in ({sql_in_list(ALL_ISSUE_TYPES)})", name='ck_issue_type_links_issue_type'),
    )
