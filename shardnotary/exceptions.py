"""
Shard Notary Exceptions

Root exception classes shared by every subsystem. Domain-specific
failures (membership, selection, collation headers, receipts) live in
`shardnotary.notary.types` and derive from `ShardNotaryException`.
"""


class ShardNotaryException(Exception):
    """Base exception for shardnotary."""
    pass


class ConfigurationError(ShardNotaryException):
    """Configuration error."""
    pass


class InvariantViolation(ShardNotaryException):
    """Internal state is inconsistent. Never raised for bad caller input."""
    pass
