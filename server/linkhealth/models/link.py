# server/linkhealth/models/link.py

import uuid
from datetime import datetime
from typing import Optional

from linkhealth.extensions import db


class Link(db.Model):
    """Read-only view of the short-link registry.

    Health monitoring only needs the destination and the owner; the registry
    service owns every other column of this table.
    """

    __tablename__ = "links"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = db.Column(db.String(36), nullable=False, index=True)

    slug = db.Column(db.String(50), unique=True, nullable=True, index=True)
    original_url = db.Column(db.Text, nullable=False)
    title = db.Column(db.String(255), nullable=True)

    is_active = db.Column(db.Boolean, default=True, nullable=False, index=True)
    is_deleted = db.Column(db.Boolean, default=False, nullable=False, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.Index("idx_links_user_deleted", "user_id", "is_deleted"),
    )

    def __init__(
        self,
        user_id: str,
        original_url: str,
        slug: Optional[str] = None,
        title: Optional[str] = None,
        id: Optional[str] = None,
    ):
        self.id = id or str(uuid.uuid4())
        self.user_id = user_id
        self.original_url = original_url.strip()
        self.slug = slug.lower().strip() if slug else None
        self.title = title
        self.is_active = True
        self.is_deleted = False

    def __repr__(self) -> str:
        return f"<Link {self.slug or self.id[:8]}>"
