"""
Tests for admin company curation.
"""

import uuid
from types import SimpleNamespace

import pytest

from buscai.errors import AppError
from buscai.schemas.companies import CompanyCreateRequest, CompanyUpdateRequest
from buscai.services.companies import CompanyService
from tests.conftest import FakeCompanyRepo, make_company


@pytest.fixture
def company_repo():
    return FakeCompanyRepo()


@pytest.fixture
def service(company_repo, catalog_repo):
    return CompanyService(company_repo, catalog_repo)


def payload(city, niche, **overrides):
    values = dict(
        name="  Pizzaria   Bella ",
        city_id=city.id,
        niche_id=niche.id,
        address="Rua das Flores,   10",
        phone="(11) 99999-0000",
    )
    values.update(overrides)
    return CompanyCreateRequest(**values)


class TestCreate:
    async def test_normalizes_and_links_niche(self, service, company_repo, admin, city, niche):
        result = await service.create(admin, payload(city, niche))
        assert result.phone == "+5511999990000"
        assert result.address == "Rua das Flores, 10"
        assert result.quality_score == 70
        assert company_repo.niches[result.id] == [niche.id]

    async def test_contact_required(self, service, admin, city, niche):
        with pytest.raises(AppError) as exc:
            await service.create(admin, payload(city, niche, phone=None))
        assert exc.value.message == "contact_required"

    async def test_invalid_city(self, service, admin, niche):
        bogus = SimpleNamespace(id=uuid.uuid4())
        with pytest.raises(AppError) as exc:
            await service.create(admin, payload(bogus, niche))
        assert exc.value.message == "invalid_city"

    async def test_duplicate_conflict_lists_hits(self, service, company_repo, admin, city, niche):
        existing = make_company()
        company_repo.dedupe_hits = [existing]
        with pytest.raises(AppError) as exc:
            await service.create(admin, payload(city, niche))
        assert exc.value.status_code == 409
        assert exc.value.code == "DEDUPE_CONFLICT"
        assert exc.value.details["dedupe_hits"][0]["id"] == str(existing.id)

    async def test_force_bypasses_dedupe(self, service, company_repo, admin, city, niche):
        company_repo.dedupe_hits = [make_company()]
        result = await service.create(admin, payload(city, niche, force=True))
        assert result.id in company_repo.companies

    async def test_active_requires_quality(self, service, admin, city, niche):
        with pytest.raises(AppError) as exc:
            await service.create(admin, payload(city, niche, address=None, status="active"))
        assert exc.value.message == "status_active_requires_quality"
        assert exc.value.code == "INVALID_STATUS"

    async def test_owner_cannot_create(self, service, owner, city, niche):
        with pytest.raises(AppError) as exc:
            await service.create(owner, payload(city, niche))
        assert exc.value.status_code == 403


class TestUpdate:
    async def test_adding_whatsapp_raises_quality(self, service, company_repo, admin, city, niche):
        created = await service.create(admin, payload(city, niche))
        result = await service.update(admin, created.id, CompanyUpdateRequest(whatsapp="11 97777-0000"))
        assert result.whatsapp == "+5511977770000"
        assert result.quality_score == 100

    async def test_activation_without_contact(self, service, company_repo, admin):
        company = make_company(phone=None, whatsapp=None, status="pending")
        company_repo.companies[company.id] = company
        with pytest.raises(AppError) as exc:
            await service.update(admin, company.id, CompanyUpdateRequest(status="active"))
        assert exc.value.message == "contact_required"

    async def test_unknown_company(self, service, admin):
        with pytest.raises(AppError) as exc:
            await service.update(admin, uuid.uuid4(), CompanyUpdateRequest(name="Outro nome"))
        assert exc.value.status_code == 404
