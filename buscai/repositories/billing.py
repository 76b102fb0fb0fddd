"""
Wallet and ledger persistence.
Balance mutations go through a row lock (SELECT ... FOR UPDATE).
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from buscai.models.tables import Transaction, Wallet


class BillingRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_wallet(self, company_id: uuid.UUID, for_update: bool = False) -> Optional[Wallet]:
        query = select(Wallet).where(Wallet.company_id == company_id)
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalars().first()

    async def get_or_create_wallet(self, company_id: uuid.UUID, for_update: bool = False) -> Wallet:
        wallet = await self.get_wallet(company_id, for_update=for_update)
        if wallet is None:
            wallet = Wallet(company_id=company_id, balance_cents=0, reserved_cents=0)
            self.session.add(wallet)
            await self.session.flush()
        return wallet

    async def wallets_for(self, company_ids: list[uuid.UUID]) -> dict[uuid.UUID, Wallet]:
        if not company_ids:
            return {}
        result = await self.session.execute(
            select(Wallet).where(Wallet.company_id.in_(company_ids))
        )
        return {w.company_id: w for w in result.scalars().all()}

    async def adjust_balance(self, wallet: Wallet, delta_cents: int) -> Wallet:
        wallet.balance_cents = wallet.balance_cents + delta_cents
        await self.session.flush()
        return wallet

    async def add_transaction(self, **fields) -> Transaction:
        tx = Transaction(**fields)
        self.session.add(tx)
        await self.session.flush()
        return tx

    async def get_transaction(self, tx_id: uuid.UUID, for_update: bool = False) -> Optional[Transaction]:
        query = select(Transaction).where(Transaction.id == tx_id)
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalars().first()

    async def set_transaction_status(self, tx: Transaction, status: str) -> Transaction:
        tx.status = status
        await self.session.flush()
        return tx

    async def list_transactions(
        self,
        company_id: uuid.UUID,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 100,
    ) -> list[Transaction]:
        query = select(Transaction).where(Transaction.company_id == company_id)
        if start:
            query = query.where(Transaction.occurred_at >= start)
        if end:
            query = query.where(Transaction.occurred_at < end)
        result = await self.session.execute(
            query.order_by(Transaction.occurred_at.desc()).limit(limit)
        )
        return list(result.scalars().all())

    async def find_subscription_transaction(
        self,
        subscription_id: uuid.UUID,
        period_start: datetime,
        tx_type: str,
        status: str,
    ) -> Optional[Transaction]:
        result = await self.session.execute(
            select(Transaction)
            .where(
                Transaction.subscription_id == subscription_id,
                Transaction.period_start == period_start,
                Transaction.type == tx_type,
                Transaction.status == status,
            )
            .limit(1)
        )
        return result.scalars().first()
