"""Business service - Onboarding, settings and slug management"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import Business
from ...shared.errors import BadRequestError, ConflictError, NotFoundError
from ...shared.validators import SLUG_MAX_LENGTH, slugify
from ..scheduling.time_calculator import time_to_minutes
from .repository import BusinessRepository
from .schemas import BusinessCreate, BusinessUpdate

logger = logging.getLogger(__name__)

FALLBACK_SLUG = "business"
MAX_SLUG_ATTEMPTS = 100


def _check_hours(open_time: str, close_time: str) -> None:
    if time_to_minutes(close_time) <= time_to_minutes(open_time):
        raise BadRequestError("Closing time must be later than opening time")


class BusinessService:
    """Service layer for business (tenant) logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BusinessRepository()

    def get_by_owner(self, owner_id: str) -> Business:
        business = self.repo.get_by_owner(self.db, owner_id)
        if not business:
            raise NotFoundError("Business not found")
        return business

    def get_by_slug(self, slug: str) -> Business:
        business = self.repo.get_by_slug(self.db, slug)
        if not business:
            raise NotFoundError("Business not found")
        return business

    def create_business(self, owner_id: str, data: BusinessCreate) -> Business:
        """Onboard the owner's single business"""
        if self.repo.get_by_owner(self.db, owner_id):
            raise ConflictError("You already have a business registered")

        _check_hours(data.openTime, data.closeTime)

        slug = self.generate_unique_slug(data.name)
        try:
            business = self.repo.create(
                self.db,
                owner_id=owner_id,
                name=data.name,
                phone=data.phone or None,
                address=data.address or None,
                slug=slug,
                working_days=[d.value for d in data.workingDays],
                open_time=data.openTime,
                close_time=data.closeTime,
                slot_duration=data.slotDuration,
                is_onboarded=True,
            )
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Business creation for owner {owner_id} hit a unique constraint: {e.orig}")
            raise ConflictError("Business already exists or slug is taken") from e

        logger.info(f"Business {business.id} onboarded with slug '{slug}'")
        self.db.refresh(business)
        return business

    def update_business(self, business: Business, data: BusinessUpdate) -> Business:
        """Apply settings; the effective open/close pair is re-validated"""
        fields = data.model_fields_set

        open_time = data.openTime or business.open_time
        close_time = data.closeTime or business.close_time
        _check_hours(open_time, close_time)

        if data.name:
            business.name = data.name.strip()
        for field, attr in (("phone", "phone"), ("address", "address"), ("imageUrl", "image_url")):
            if field in fields:
                setattr(business, attr, getattr(data, field) or None)
        if data.workingDays:
            business.working_days = [d.value for d in data.workingDays]
        business.open_time = open_time
        business.close_time = close_time
        if data.slotDuration:
            business.slot_duration = data.slotDuration

        self.db.commit()
        self.db.refresh(business)
        logger.info(f"Business {business.id} settings updated")
        return business

    def is_slug_available(self, slug: str, exclude_business_id: Optional[str] = None) -> bool:
        existing = self.repo.get_by_slug(self.db, slug)
        if not existing:
            return True
        return exclude_business_id is not None and existing.id == exclude_business_id

    def is_slug_available_for_owner(self, slug: str, owner_id: str) -> bool:
        """The owner's own current slug counts as available"""
        own = self.repo.get_by_owner(self.db, owner_id)
        return self.is_slug_available(slug, own.id if own else None)

    def generate_unique_slug(self, name: str) -> str:
        """Slug from ``name``; collisions get -1, -2, ... appended"""
        base = slugify(name) or FALLBACK_SLUG
        if self.is_slug_available(base):
            return base

        for counter in range(1, MAX_SLUG_ATTEMPTS + 1):
            suffix = f"-{counter}"
            candidate = f"{base[: SLUG_MAX_LENGTH - len(suffix)]}{suffix}"
            if self.is_slug_available(candidate):
                return candidate

        raise ConflictError("Could not generate a unique slug for this name")
