"""Biller ID remapping table."""

import csv
import logging
from pathlib import Path

from ..domain.errors import ConfigurationError

logger = logging.getLogger(__name__)


def load_biller_ids(path: Path) -> dict[str, str]:
    """Load a semicolon separated 'provider_id;display_id' table.

    Blank lines and lines without a second column are skipped.
    """
    try:
        with open(path, newline="", encoding="utf-8-sig") as f:
            rows = list(csv.reader(f, delimiter=";"))
    except OSError as e:
        raise ConfigurationError(f"Cannot read biller ID table {path}: {e}") from e

    mapping = {}
    for row in rows:
        if len(row) < 2 or not row[0].strip() or not row[1].strip():
            continue
        mapping[row[0].strip()] = row[1].strip()

    logger.info(f"Loaded {len(mapping)} biller ID mappings from {path.name}")
    return mapping
