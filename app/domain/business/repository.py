"""Business repository - Database operations for tenants"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Business


class BusinessRepository:
    """Repository for business database operations"""

    @staticmethod
    def get_by_owner(db: Session, owner_id: str) -> Optional[Business]:
        return db.query(Business).filter(Business.owner_id == owner_id).first()

    @staticmethod
    def get_by_slug(db: Session, slug: str) -> Optional[Business]:
        return db.query(Business).filter(Business.slug == slug).first()

    @staticmethod
    def create(db: Session, **data) -> Business:
        business = Business(**data)
        db.add(business)
        db.flush()
        return business
