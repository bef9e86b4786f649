"""
Over-use Policy

What happens when a usage would take more than an item's remaining balance
depends only on the item kind:

- consumable: the usage is recorded, the balance is clamped at zero and the
  caller gets a warning back
- durable: the usage is rejected with ExceedsStockError and nothing changes
"""
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional, Dict

from stockledger.core.exceptions import ExceedsStockError
from stockledger.core.logging import get_logger
from stockledger.schemas.stock import ItemKind

logger = get_logger("stock.policy")

OVERUSE_WARNING = "Usage amount exceeds remaining inventory"


class OverusePolicy(ABC):
    """Decides the outcome of a usage that exceeds the remaining balance"""

    @abstractmethod
    def check(self, item_id: str, requested: Decimal, remaining: Decimal) -> Optional[str]:
        """
        Evaluate a consumption of ``requested`` against ``remaining``

        Returns a warning message when the usage may proceed but is
        suspicious, None when it is within stock. Raises when the usage must
        be rejected.
        """


class WarnAndClampPolicy(OverusePolicy):
    """Consumable items: record real-world over-use, flag it"""

    def check(self, item_id: str, requested: Decimal, remaining: Decimal) -> Optional[str]:
        if requested <= remaining:
            return None
        logger.warning(
            f"Over-use on item {item_id}: requested {requested}, remaining {remaining}"
        )
        return OVERUSE_WARNING


class RejectPolicy(OverusePolicy):
    """Durable items: remaining stock is a hard ceiling"""

    def check(self, item_id: str, requested: Decimal, remaining: Decimal) -> Optional[str]:
        if requested <= remaining:
            return None
        logger.info(
            f"Rejected usage on item {item_id}: requested {requested}, remaining {remaining}"
        )
        raise ExceedsStockError(
            f"Usage quantity exceeds remaining stock. Available: {remaining}, Requested: {requested}"
        )


OVERUSE_POLICIES: Dict[ItemKind, OverusePolicy] = {
    ItemKind.CONSUMABLE: WarnAndClampPolicy(),
    ItemKind.DURABLE: RejectPolicy(),
}


def policy_for(kind) -> OverusePolicy:
    """Policy object for an item kind (enum member or its string value)"""
    return OVERUSE_POLICIES[ItemKind(kind)]
