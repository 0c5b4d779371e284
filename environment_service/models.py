from enum import Enum


class Tier(str, Enum):
    """Deployment tiers served by the environment service, in canonical order."""
    UAT = "UAT"
    PET = "PET"
    PROD = "PROD"


TIER_KEYS: list[str] = [tier.value for tier in Tier]


class TierNotFoundError(LookupError):
    def __init__(self, identifier: str):
        self.identifier = identifier
        self.available = list(TIER_KEYS)
        super().__init__(f"Environment '{identifier}' not found")


def normalize_tier(identifier: str) -> Tier:
    """Upper-case a tier identifier and resolve it to a canonical Tier."""
    key = identifier.upper()
    try:
        return Tier(key)
    except ValueError:
        raise TierNotFoundError(key) from None
