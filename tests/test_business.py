"""Tests for onboarding, settings and slug generation."""

import pytest

from app.domain.business.schemas import BusinessCreate, BusinessUpdate
from app.domain.business.service import BusinessService
from app.models import DayOfWeek
from app.shared.errors import BadRequestError, ConflictError, NotFoundError
from app.shared.validators import normalize_phone, slugify
from conftest import make_business


@pytest.fixture
def businesses(db):
    return BusinessService(db)


class TestSlugify:
    def test_strips_accents_and_punctuation(self):
        assert slugify("Lava Rápido São João!") == "lava-rapido-sao-joao"

    def test_collapses_separators(self):
        assert slugify("  Auto -- Spa  ") == "auto-spa"

    def test_only_symbols(self):
        assert slugify("!!!") == ""


class TestPhone:
    def test_normalizes(self):
        assert normalize_phone("+55 (11) 98765-4321") == "+5511987654321"

    def test_too_short(self):
        with pytest.raises(ValueError):
            normalize_phone("1234")


class TestOnboarding:
    def test_create_business(self, businesses):
        business = businesses.create_business(
            "owner-9",
            BusinessCreate(name="Auto Spa Premium", workingDays=[DayOfWeek.SATURDAY], openTime="09:00"),
        )

        assert business.slug == "auto-spa-premium"
        assert business.is_onboarded is True
        assert business.working_days == ["SATURDAY"]
        assert business.open_time == "09:00"
        assert business.close_time == "18:00"
        assert business.slot_duration == 60

    def test_default_working_days(self, businesses):
        business = businesses.create_business("owner-9", BusinessCreate(name="Auto Spa"))
        assert business.working_days == ["MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY"]

    def test_one_business_per_owner(self, businesses, business):
        with pytest.raises(ConflictError):
            businesses.create_business(business.owner_id, BusinessCreate(name="Second Shop"))

    def test_slug_collision_gets_suffix(self, businesses, business):
        created = businesses.create_business("owner-9", BusinessCreate(name="Lava Rapido Centro"))
        again = businesses.create_business("owner-10", BusinessCreate(name="Lava Rapido Centro"))

        assert business.slug == "lava-rapido-centro"
        assert created.slug == "lava-rapido-centro-1"
        assert again.slug == "lava-rapido-centro-2"

    def test_fallback_slug(self, businesses):
        created = businesses.create_business("owner-9", BusinessCreate(name="!!"))
        assert created.slug == "business"

    def test_close_before_open(self, businesses):
        with pytest.raises(BadRequestError):
            businesses.create_business(
                "owner-9", BusinessCreate(name="Night Shop", openTime="18:00", closeTime="08:00")
            )


class TestSettings:
    def test_update_hours(self, businesses, business):
        updated = businesses.update_business(
            business, BusinessUpdate(openTime="07:00", slotDuration=30)
        )
        assert updated.open_time == "07:00"
        assert updated.close_time == "18:00"
        assert updated.slot_duration == 30

    def test_update_rejects_inverted_hours(self, businesses, business):
        with pytest.raises(BadRequestError):
            businesses.update_business(business, BusinessUpdate(closeTime="07:00"))

    def test_explicit_null_clears_address(self, businesses, business):
        updated = businesses.update_business(business, BusinessUpdate(address=None))
        assert updated.address is None
        assert updated.phone == "11933334444"

    def test_slug_lookup(self, businesses, business):
        assert businesses.get_by_slug("lava-rapido-centro").id == business.id

        with pytest.raises(NotFoundError):
            businesses.get_by_slug("missing")

    def test_slug_availability(self, db, businesses, business):
        assert businesses.is_slug_available("free-slug") is True
        assert businesses.is_slug_available(business.slug) is False
        assert businesses.is_slug_available_for_owner(business.slug, business.owner_id) is True

        make_business(db, owner_id="owner-2", slug="outra-loja")
        assert businesses.is_slug_available_for_owner("outra-loja", business.owner_id) is False
