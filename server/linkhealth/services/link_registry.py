# server/linkhealth/services/link_registry.py

from typing import Optional, Protocol

from linkhealth.models.link import Link


class LinkResolver(Protocol):
    def resolve(self, link_id: str) -> Optional[str]:
        """Destination URL of the link, or None if it does not exist."""

    def owner_of(self, link_id: str) -> Optional[str]:
        """Identifier of the user who should receive alerts for the link."""


class LinkRegistry:
    """LinkResolver backed by the shared ``links`` table."""

    @staticmethod
    def _get(link_id: str) -> Optional[Link]:
        return Link.query.filter_by(id=link_id, is_deleted=False).first()

    def resolve(self, link_id: str) -> Optional[str]:
        link = self._get(link_id)
        return link.original_url if link else None

    def owner_of(self, link_id: str) -> Optional[str]:
        link = self._get(link_id)
        return link.user_id if link else None
