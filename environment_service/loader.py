import json
import logging
from pathlib import Path

from .models import Tier
from .store import EnvironmentDataset, Record

logger = logging.getLogger(__name__)

SOURCE_TEMPLATE = "env-details_{tier}.json"


class DatasetLoadError(Exception):
    """A tier's source document could not be turned into a record."""
    reason = "load"

    def __init__(self, tier: Tier, path: Path, detail: str):
        self.tier = tier
        self.path = path
        self.detail = detail
        super().__init__(f"{tier.value}: {self.reason} error for {path}: {detail}")


class TierReadError(DatasetLoadError):
    reason = "read"


class TierParseError(DatasetLoadError):
    reason = "parse"


def source_path(data_dir: Path, tier: Tier) -> Path:
    return Path(data_dir) / SOURCE_TEMPLATE.format(tier=tier.value)


def _reject_constant(token: str):
    # NaN and Infinity are not JSON and cannot be served back as JSON
    raise ValueError(f"invalid JSON constant {token!r}")


def load_record(path: Path, tier: Tier) -> Record:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise TierReadError(tier, path, str(exc)) from exc

    try:
        record = json.loads(text, parse_constant=_reject_constant)
    except ValueError as exc:
        raise TierParseError(tier, path, str(exc)) from exc

    if not isinstance(record, dict):
        raise TierParseError(
            tier, path, f"expected a JSON object, got {type(record).__name__}"
        )
    return record


def load_dataset(data_dir: Path) -> EnvironmentDataset:
    """
    Read and parse the source document of every tier.

    Either all tiers load and a dataset is returned, or a DatasetLoadError
    naming the failed tier is raised and nothing is kept.
    """
    logger.info("Loading environment data from %s", data_dir)
    records: dict[Tier, Record] = {}
    for tier in Tier:
        path = source_path(data_dir, tier)
        logger.info("Reading %s data from %s", tier.value, path.name)
        records[tier] = load_record(path, tier)
        logger.info("%s data loaded", tier.value)

    dataset = EnvironmentDataset(records)
    logger.info("All environment data loaded (%d environments)", dataset.count)
    return dataset
