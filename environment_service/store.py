import copy
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from .models import TIER_KEYS, Tier, normalize_tier

Record = dict[str, Any]


class EnvironmentDataset:
    """
    Read-only mapping of tier to environment record.

    Built once from fully parsed records for every tier; there is no write
    path. Readers get deep copies so the stored records cannot be changed
    through a returned value.
    """
    def __init__(self, records: Mapping[Tier, Record]):
        missing = [t.value for t in Tier if t not in records]
        extra = [str(k) for k in records if k not in list(Tier)]
        if missing or extra:
            raise ValueError(
                f"Dataset must hold exactly {TIER_KEYS}; missing={missing} extra={extra}"
            )
        # canonical order regardless of load order
        self._records = MappingProxyType({tier: records[tier] for tier in Tier})

    @property
    def count(self) -> int:
        return len(self._records)

    def keys(self) -> list[str]:
        return [tier.value for tier in self._records]

    def all(self) -> dict[str, Record]:
        return {tier.value: copy.deepcopy(record) for tier, record in self._records.items()}

    def get(self, identifier: str) -> tuple[Tier, Record]:
        """
        Look up a record by case-insensitive tier identifier.
        :raises TierNotFoundError: identifier is not one of the canonical tiers
        """
        tier = normalize_tier(identifier)
        return tier, copy.deepcopy(self._records[tier])
