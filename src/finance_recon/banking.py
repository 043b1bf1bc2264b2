"""
Banking collaborator interface.

Connections and transactions come from an Open Banking integration that
lives outside this package. The engine only sees already-normalized
BankTransaction lists.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
import logging

from .models.transaction import BankTransaction

logger = logging.getLogger(__name__)


@dataclass
class Provider:
    code: str
    name: str
    supported_features: list[str] = field(default_factory=list)
    is_active: bool = True


@dataclass
class Connection:
    id: str
    bank_code: str
    bank_name: str
    status: str = "connected"  # connected, disconnected, error, pending
    account_ids: list[str] = field(default_factory=list)
    last_sync: Optional[datetime] = None


class BankingClient(ABC):
    """Abstract interface to the banking integration."""

    @abstractmethod
    def list_providers(self) -> list[Provider]:
        pass

    @abstractmethod
    def list_connections(self) -> list[Connection]:
        pass

    @abstractmethod
    async def fetch_transactions(
        self, account_id: str, since: Optional[datetime] = None
    ) -> list[BankTransaction]:
        """
        Fetch transactions for one account.

        Args:
            account_id: Account to fetch
            since: Only return transactions on or after this instant

        Returns:
            Normalized bank transactions
        """
        pass


async def collect_bank_transactions(
    client: BankingClient, since: Optional[datetime] = None
) -> list[BankTransaction]:
    """
    Fetch every account of every connected bank, one account at a time.

    Returns:
        All transactions concatenated in connection/account order
    """
    transactions: list[BankTransaction] = []

    for connection in client.list_connections():
        if connection.status != "connected":
            logger.debug(f"Skipping {connection.bank_name} ({connection.status})")
            continue

        for account_id in connection.account_ids:
            fetched = await client.fetch_transactions(account_id, since)
            logger.info(f"Fetched {len(fetched)} transactions for account {account_id}")
            transactions.extend(fetched)

    return transactions
