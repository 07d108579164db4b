"""
Shard Notary Constants

This module consolidates the global constants and environment configuration
used throughout the codebase. Protocol defaults can be overridden per
deployment through `NotaryConfig`; logger settings come from `.env`.
"""
import ast

from dotenv import dotenv_values
from eth_utils import to_wei

# =============================================================================
# ENVIRONMENT CONFIGURATION
# =============================================================================
# Load environment variables once at module import
_config = dotenv_values(".env")

LOGGER_DEFAULTS = {
    'LOG_LEVEL':                       'INFO',
    'LOG_FORMAT':                      '%(asctime)s - %(levelname)s - %(name)s - %(message)s',
    'LOG_DATE_FORMAT':                 '%Y-%m-%dT%H:%M:%S',
    'LOG_CONSOLE_HIGHLIGHTING':        'True',
    'LOG_FILE_OUTPUT':                 'False',
}

LOG_MAX_FILE_SIZE = 10 * 1024 * 1024 # 10MB
LOG_BACKUP_COUNT = 5


# WARNING: THE PROTOCOL VALUES BELOW MUST MATCH EVERY OTHER PARTICIPANT OF THE SAME
# NETWORK. CHANGING THEM ON A LIVE DEPLOYMENT PRODUCES A DIFFERENT PROPOSER ROTATION
# AND A DIFFERENT HEADER CHAIN, WHICH PEERS WILL REJECT.

# ==================================================================================
# SHARDING PARAMETERS
# ==================================================================================
# The total number of shards within a network.
SHARD_COUNT = 100

# Main chain blocks per period. One collation per shard per period.
PERIOD_LENGTH = 5  # ~75 seconds

# Periods between the seed block and the period it selects a proposer for.
LOOKAHEAD_LENGTH = 4  # ~5 minutes


# ==================================================================================
# NOTARY PARAMETERS
# ==================================================================================
# Fixed-size deposit (wei) required for registration
NOTARY_DEPOSIT = to_wei(1000, 'ether')

# Periods a deposit stays locked after deregistration
NOTARY_LOCKUP_LENGTH = 16128  # ~2 weeks


# ==================================================================================
# COLLATION PARAMETERS
# ==================================================================================
COLLATION_GAS_LIMIT = 10_000_000

# Maximum payload (bytes) of a cross-shard receipt
MAX_RECEIPT_DATA_SIZE = 4096

# EVM BLOCKHASH only reaches this many blocks back
BLOCKHASH_WINDOW = 256

# Packed header record layout (256-bit word)
HASH_BITS = 256
HEADER_KEY_BITS = 208
SCORE_BITS = 48


# ==================================================================================
# CONFIGURATION WRAPPERS
# ==================================================================================
class ConfigString(str):
    """
    String subclass that stores a default value.
    """
    def __new__(cls, value, default):
        obj = str.__new__(cls, value)
        obj._default = default
        return obj

    def default(self):
        return self._default

class ConfigBool(int):
    """
    Int subclass acting as a boolean that stores a default value.
    """
    def __new__(cls, value, default):
        obj = int.__new__(cls, bool(value))
        obj._default = default
        return obj

    def default(self):
        return self._default

    def __repr__(self):
        return str(bool(self))

    def __str__(self):
        return str(bool(self))

    def __eq__(self, other):
        return bool(self) == other

    def __hash__(self):
        return hash(bool(self))


# ==================================================================================
# DYNAMIC CONFIGURATION LOADING
# ==================================================================================
namespace = globals()

def parse_bool(v):
    """
    Convert "True"/"False" (any casing, with surrounding whitespace) into bool.
    Avoids exceptions by only calling ast.literal_eval for known literals.
    """
    if not isinstance(v, str):
        return v
    s = v.strip()
    if not s:
        return v
    if s.casefold() in {"true", "false"}:
        return ast.literal_eval(s.title())
    return v

for key, default_raw in LOGGER_DEFAULTS.items():
    # dotenv_values returns strings or None. None is treated as missing.
    raw = _config.get(key)
    value_raw = default_raw if raw is None else raw

    value = parse_bool(value_raw)
    default_val = parse_bool(default_raw)

    if isinstance(value, bool):
        namespace[key] = ConfigBool(value, default_val)
    else:
        namespace[key] = ConfigString(value_raw, default_val)
