"""
Company persistence, dedupe lookups and claim candidate search.
"""

import uuid
from typing import Optional

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from buscai.models.tables import Company, CompanyNiche


def _digits(column):
    return func.regexp_replace(func.coalesce(column, ""), r"\D", "", "g")


class CompanyRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, company_id: uuid.UUID) -> Optional[Company]:
        return await self.session.get(Company, company_id)

    async def list_companies(
        self,
        q: Optional[str] = None,
        city_id: Optional[uuid.UUID] = None,
        niche_id: Optional[uuid.UUID] = None,
        status: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Company], int]:
        query = select(Company)
        if q:
            query = query.where(Company.trade_name.ilike(f"%{q}%"))
        if city_id:
            query = query.where(Company.city_id == city_id)
        if niche_id:
            query = query.where(
                Company.id.in_(select(CompanyNiche.company_id).where(CompanyNiche.niche_id == niche_id))
            )
        if status:
            query = query.where(Company.status == status)

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.session.execute(count_query)).scalar() or 0

        query = query.order_by(Company.created_at.desc()).offset(offset).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all()), total

    async def create(self, **fields) -> Company:
        company = Company(**fields)
        self.session.add(company)
        await self.session.flush()
        return company

    async def update(self, company: Company, **fields) -> Company:
        for key, value in fields.items():
            setattr(company, key, value)
        await self.session.flush()
        return company

    async def link_niche(self, company_id: uuid.UUID, niche_id: uuid.UUID) -> None:
        existing = await self.session.get(CompanyNiche, (company_id, niche_id))
        if existing is None:
            self.session.add(CompanyNiche(company_id=company_id, niche_id=niche_id))
            await self.session.flush()

    async def niche_ids(self, company_id: uuid.UUID) -> list[uuid.UUID]:
        result = await self.session.execute(
            select(CompanyNiche.niche_id).where(CompanyNiche.company_id == company_id)
        )
        return list(result.scalars().all())

    async def find_dedupe_hits(
        self,
        phone_digits: Optional[str] = None,
        whatsapp_digits: Optional[str] = None,
        website: Optional[str] = None,
        name: Optional[str] = None,
        address: Optional[str] = None,
        exclude_id: Optional[uuid.UUID] = None,
        limit: int = 25,
    ) -> list[Company]:
        """Companies sharing a phone, whatsapp, website or name+address."""
        conditions = []
        if phone_digits:
            conditions.append(_digits(Company.phone) == phone_digits)
        if whatsapp_digits:
            conditions.append(_digits(Company.whatsapp) == whatsapp_digits)
        if website:
            conditions.append(
                func.regexp_replace(func.lower(func.coalesce(Company.website, "")), "/+$", "") == website
            )
        if name and address:
            conditions.append(and_(
                func.lower(func.coalesce(Company.trade_name, "")) == name,
                func.lower(func.coalesce(Company.address, "")) == address.lower(),
            ))
        if not conditions:
            return []

        query = select(Company).where(or_(*conditions))
        if exclude_id:
            query = query.where(Company.id != exclude_id)
        result = await self.session.execute(query.limit(limit))
        return list(result.scalars().all())

    async def find_by_phone_digits(self, digits: str) -> Optional[Company]:
        result = await self.session.execute(
            select(Company)
            .where(or_(_digits(Company.phone) == digits, _digits(Company.whatsapp) == digits))
            .limit(1)
        )
        return result.scalars().first()

    async def find_by_name_in_city(self, normalized_name: str, city_id: uuid.UUID) -> Optional[Company]:
        result = await self.session.execute(
            select(Company)
            .where(
                Company.city_id == city_id,
                func.lower(Company.trade_name) == normalized_name,
            )
            .limit(1)
        )
        return result.scalars().first()

    async def claim_candidates(
        self,
        city_id: uuid.UUID,
        name_query: Optional[str],
        phone_digits: Optional[str],
        limit: int = 50,
    ) -> list[Company]:
        conditions = []
        if name_query:
            conditions.append(Company.trade_name.ilike(f"%{name_query}%"))
        if phone_digits:
            conditions.append(or_(
                _digits(Company.phone).contains(phone_digits),
                _digits(Company.whatsapp).contains(phone_digits),
            ))
        if not conditions:
            return []
        result = await self.session.execute(
            select(Company)
            .where(Company.city_id == city_id, or_(*conditions))
            .order_by(Company.trade_name)
            .limit(limit)
        )
        return list(result.scalars().all())
