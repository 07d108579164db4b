"""
Shard Notary Configuration

Protocol parameters fixed when the sharding manager is created. They are
immutable afterwards: every participant must agree on them.

Loaded from the [notary] section of config.toml, with environment
variable overrides:
    shard_count          -> SHARDNOTARY_SHARD_COUNT
    period_length        -> SHARDNOTARY_PERIOD_LENGTH
    lookahead_length     -> SHARDNOTARY_LOOKAHEAD_LENGTH
    notary_deposit       -> SHARDNOTARY_NOTARY_DEPOSIT
    notary_lockup_length -> SHARDNOTARY_NOTARY_LOCKUP_LENGTH
"""

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import tomli

from ..constants import (
    SHARD_COUNT,
    PERIOD_LENGTH,
    LOOKAHEAD_LENGTH,
    NOTARY_DEPOSIT,
    NOTARY_LOCKUP_LENGTH,
    COLLATION_GAS_LIMIT,
    MAX_RECEIPT_DATA_SIZE,
)
from ..exceptions import ConfigurationError

ENV_PREFIX = "SHARDNOTARY_"


@dataclass(frozen=True)
class NotaryConfig:
    """
    Sharding manager parameters.

    Attributes:
        shard_count: Number of shards
        period_length: Main chain blocks per period
        lookahead_length: Periods between a seed block and the period it selects for
        notary_deposit: Minimum registration deposit in wei
        notary_lockup_length: Periods a deposit stays locked after deregistration
        collation_gas_limit: Gas limit reported for collations
        max_receipt_data_size: Payload limit of a cross-shard receipt
    """

    shard_count: int = SHARD_COUNT
    period_length: int = PERIOD_LENGTH
    lookahead_length: int = LOOKAHEAD_LENGTH
    notary_deposit: int = NOTARY_DEPOSIT
    notary_lockup_length: int = NOTARY_LOCKUP_LENGTH
    collation_gas_limit: int = COLLATION_GAS_LIMIT
    max_receipt_data_size: int = MAX_RECEIPT_DATA_SIZE

    def __post_init__(self):
        self.validate()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'NotaryConfig':
        """Create from dictionary. Unknown keys are rejected."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown notary settings: {sorted(unknown)}")

        values = {}
        for name, raw in data.items():
            try:
                values[name] = int(raw)
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e
        return cls(**values)

    @classmethod
    def from_file(cls, config_path: str) -> 'NotaryConfig':
        """
        Load configuration from TOML file.

        Args:
            config_path: Path to config.toml

        Returns:
            NotaryConfig instance (defaults if the file doesn't exist)
        """
        path = Path(config_path)

        if not path.exists():
            return cls().with_env()

        with open(path, 'rb') as f:
            config_data = tomli.load(f)

        return cls.from_dict(config_data.get('notary', {})).with_env()

    def with_env(self, environ: Optional[Dict[str, str]] = None) -> 'NotaryConfig':
        """Return a copy with SHARDNOTARY_* environment overrides applied."""
        environ = os.environ if environ is None else environ
        overrides = {}
        for f in fields(self):
            if v := environ.get(ENV_PREFIX + f.name.upper()):
                try:
                    overrides[f.name] = int(v)
                except ValueError as e:
                    raise ConfigurationError(
                        f"{ENV_PREFIX}{f.name.upper()} must be an integer, got {v!r}"
                    ) from e
        return replace(self, **overrides) if overrides else self

    def validate(self) -> bool:
        """
        Validate configuration.

        Raises:
            ConfigurationError: If a parameter is out of range
        """
        if self.shard_count < 1:
            raise ConfigurationError("shard_count must be at least 1")
        if self.period_length < 1:
            raise ConfigurationError("period_length must be at least 1")
        if self.lookahead_length < 0:
            raise ConfigurationError("lookahead_length must not be negative")
        if self.notary_deposit <= 0:
            raise ConfigurationError("notary_deposit must be positive")
        if self.notary_lockup_length < 0:
            raise ConfigurationError("notary_lockup_length must not be negative")
        if self.max_receipt_data_size < 0:
            raise ConfigurationError("max_receipt_data_size must not be negative")
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            'shard_count': self.shard_count,
            'period_length': self.period_length,
            'lookahead_length': self.lookahead_length,
            'notary_deposit': str(self.notary_deposit),
            'notary_lockup_length': self.notary_lockup_length,
            'collation_gas_limit': self.collation_gas_limit,
            'max_receipt_data_size': self.max_receipt_data_size,
        }
