import uuid
from sqlalchemy import Column, String, Text, DateTime, Boolean, Index, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from .base import Base, now_utc
from sites_manager.utils.choices import ALL_BACKUP_LOCATIONS, sql_in_list


class Site(Base):
    __tablename__ = 'sites'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    # Agency
    name_of_agency = Column(Text, nullable=False)
    url = Column(Text, nullable=False)
    # cPanel
    is_cpanel = Column(Boolean, nullable=False, default=False)
    cpanel_username = Column(Text, nullable=True)
    cpanel_password = Column(Text, nullable=True)
    # VM
    is_vm = Column(Boolean, nullable=False, default=False)
    vpn_username = Column(Text, nullable=True)
    vpn_password = Column(Text, nullable=True)
    vm_ip = Column(Text, nullable=True)
    vm_username = Column(Text, nullable=True)
    vm_password = Column(Text, nullable=True)
    # Location
    province = Column(Text, nullable=False)
    district = Column(Text, nullable=False)
    # Backups
    has_taken_manual_backup = Column(Boolean, nullable=False, default=False)
    last_manual_backup_date = Column(DateTime(timezone=True), nullable=True)
    last_database_backup_date = Column(DateTime(timezone=True), nullable=True)
    backup_location = Column(String(16), nullable=True)
    # Maintained by the issue write paths, never set directly
    has_issues = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    issues = relationship(
        "Issue",
        back_populates="site",
        cascade="all, delete-orphan",
        order_by="Issue.created_at.desc()",
    )

    __table_args__ = (
        Index('idx_sites_province_district', 'province', 'district'),
        Index('idx_sites_has_issues', 'has_issues'),
        Index('idx_sites_created_at', 'created_at'),
        CheckConstraint(
            f"backup_location is null or backup_location in ({sql_in_list(ALL_BACKUP_LOCATIONS)})",
            name='ck_sites_backup_location',
        ),
    )
