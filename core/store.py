"""
Trade store: one row per swap signature, plus the wallet name directory.

SQLAlchemy over DATABASE_URL (SQLite by default). Amounts are stored as
strings so Decimal values round-trip exactly.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from decimal import Decimal
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from sqlalchemy import BigInteger, Column, String, Text, create_engine, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from core.models import CanonicalTrade

logger = logging.getLogger(__name__)

Base = declarative_base()


class TxRow(Base):
    __tablename__ = "txs"

    signature = Column(String(128), primary_key=True)
    account = Column(String(64), nullable=False, index=True)
    token_in_address = Column(String(64), nullable=False, index=True)
    token_in_amount = Column(String(80), nullable=False)
    token_out_address = Column(String(64), nullable=False, index=True)
    token_out_amount = Column(String(80), nullable=False)
    timestamp = Column(BigInteger, nullable=False, index=True)  # Unix seconds
    description = Column(Text, nullable=True)

    def to_trade(self) -> CanonicalTrade:
        return CanonicalTrade(
            account=self.account,
            token_in_address=self.token_in_address,
            token_in_amount=Decimal(self.token_in_amount),
            token_out_address=self.token_out_address,
            token_out_amount=Decimal(self.token_out_amount),
            timestamp=int(self.timestamp),
            signature=self.signature,
            description=self.description,
        )


class WalletRow(Base):
    __tablename__ = "wallets"

    address = Column(String(64), primary_key=True)
    name = Column(String(256), nullable=True)


def _amount(d: Decimal) -> str:
    return format(d, "f")


class TradeStore:
    def __init__(self, database_url: str):
        connect_args = {}
        if database_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine = create_engine(database_url, connect_args=connect_args, pool_pre_ping=True)
        self._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def init_db(self) -> None:
        Base.metadata.create_all(self.engine)

    def dispose(self) -> None:
        self.engine.dispose()

    @contextmanager
    def _session_scope(self) -> Iterator[Session]:
        """Commits on success, rolls back on error."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # -------- txs --------
    def insert(self, trade: CanonicalTrade) -> bool:
        """Insert keyed by signature. Returns False if the signature is already stored."""
        if not trade.signature:
            raise ValueError("trade signature is required")
        try:
            with self._session_scope() as session:
                if session.get(TxRow, trade.signature) is not None:
                    return False
                session.add(
                    TxRow(
                        signature=trade.signature,
                        account=trade.account,
                        token_in_address=trade.token_in_address,
                        token_in_amount=_amount(trade.token_in_amount),
                        token_out_address=trade.token_out_address,
                        token_out_amount=_amount(trade.token_out_amount),
                        timestamp=trade.timestamp,
                        description=trade.description,
                    )
                )
        except IntegrityError:
            # concurrent insert of the same signature
            logger.info("Trade already stored", extra={"signature": trade.signature})
            return False
        return True

    def query_by_token(self, token_address: str) -> List[CanonicalTrade]:
        """Trades with the token on either leg, oldest first."""
        stmt = (
            select(TxRow)
            .where(or_(TxRow.token_in_address == token_address, TxRow.token_out_address == token_address))
            .order_by(TxRow.timestamp.asc(), TxRow.signature.asc())
        )
        with self._session_scope() as session:
            return [row.to_trade() for row in session.scalars(stmt)]

    def get(self, signature: str) -> Optional[CanonicalTrade]:
        with self._session_scope() as session:
            row = session.get(TxRow, signature)
            return row.to_trade() if row is not None else None

    # -------- wallets --------
    def upsert_wallets(self, wallets: Iterable[Tuple[str, Optional[str]]]) -> int:
        n = 0
        with self._session_scope() as session:
            for address, name in wallets:
                address = (address or "").strip()
                if not address:
                    continue
                session.merge(WalletRow(address=address, name=name or None))
                n += 1
        return n

    def list_wallet_addresses(self) -> List[str]:
        with self._session_scope() as session:
            return list(session.scalars(select(WalletRow.address).order_by(WalletRow.address)))

    def query_wallet_names(self, addresses: Iterable[str]) -> Dict[str, str]:
        addrs = [a for a in addresses if a]
        if not addrs:
            return {}
        stmt = select(WalletRow.address, WalletRow.name).where(WalletRow.address.in_(addrs))
        with self._session_scope() as session:
            return {address: name for address, name in session.execute(stmt) if name}
