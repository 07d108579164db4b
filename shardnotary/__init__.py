"""
Shard Notary Package

Core imports are lazily loaded so that importing the package does not
pull in the database layer.
For direct module access, import from submodules:

    from shardnotary.notary import ShardingManager, NotaryConfig
    from shardnotary.crypto import keccak256
    from shardnotary.exceptions import ShardNotaryException
"""

# Lazy imports to avoid loading everything at package import
def __getattr__(name):
    """Lazy module loading."""
    if name == 'ShardingManager':
        from .notary.manager import ShardingManager
        return ShardingManager
    elif name == 'NotaryConfig':
        from .notary.config import NotaryConfig
        return NotaryConfig
    elif name == 'ShardNotaryException':
        from .exceptions import ShardNotaryException
        return ShardNotaryException
    raise AttributeError(f"module 'shardnotary' has no attribute {name!r}")

__all__ = ['ShardingManager', 'NotaryConfig', 'ShardNotaryException']
