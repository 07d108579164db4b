"""
Notary Configuration Tests
"""

import pytest

from shardnotary.constants import (
    SHARD_COUNT,
    PERIOD_LENGTH,
    LOOKAHEAD_LENGTH,
    NOTARY_DEPOSIT,
    NOTARY_LOCKUP_LENGTH,
    COLLATION_GAS_LIMIT,
)
from shardnotary.exceptions import ConfigurationError
from shardnotary.notary import NotaryConfig


class TestNotaryConfig:

    def test_defaults(self):
        config = NotaryConfig()
        assert config.shard_count == SHARD_COUNT == 100
        assert config.period_length == PERIOD_LENGTH == 5
        assert config.lookahead_length == LOOKAHEAD_LENGTH == 4
        assert config.notary_deposit == NOTARY_DEPOSIT == 1000 * 10 ** 18
        assert config.notary_lockup_length == NOTARY_LOCKUP_LENGTH == 16128
        assert config.collation_gas_limit == COLLATION_GAS_LIMIT == 10_000_000

    def test_frozen(self):
        config = NotaryConfig()
        with pytest.raises(AttributeError):
            config.shard_count = 5

    @pytest.mark.parametrize("field,value", [
        ("shard_count", 0),
        ("period_length", 0),
        ("lookahead_length", -1),
        ("notary_deposit", 0),
        ("notary_lockup_length", -1),
        ("max_receipt_data_size", -1),
    ])
    def test_validation(self, field, value):
        with pytest.raises(ConfigurationError):
            NotaryConfig(**{field: value})

    def test_from_dict(self):
        config = NotaryConfig.from_dict({'shard_count': '8', 'period_length': 10})
        assert config.shard_count == 8
        assert config.period_length == 10

    def test_from_dict_unknown_key(self):
        with pytest.raises(ConfigurationError):
            NotaryConfig.from_dict({'shards': 8})

    def test_from_dict_bad_value(self):
        with pytest.raises(ConfigurationError):
            NotaryConfig.from_dict({'shard_count': 'many'})

    def test_with_env(self):
        config = NotaryConfig().with_env({
            'SHARDNOTARY_SHARD_COUNT': '16',
            'SHARDNOTARY_NOTARY_LOCKUP_LENGTH': '10',
            'UNRELATED': 'x',
        })
        assert config.shard_count == 16
        assert config.notary_lockup_length == 10
        assert config.period_length == PERIOD_LENGTH

    def test_with_env_bad_value(self):
        with pytest.raises(ConfigurationError):
            NotaryConfig().with_env({'SHARDNOTARY_PERIOD_LENGTH': 'five'})

    def test_from_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv('SHARDNOTARY_PERIOD_LENGTH', raising=False)
        monkeypatch.setenv('SHARDNOTARY_LOOKAHEAD_LENGTH', '2')
        path = tmp_path / "config.toml"
        path.write_text(
            "[notary]\n"
            "shard_count = 12\n"
            "period_length = 7\n"
            "notary_deposit = \"5000\"\n"
        )

        config = NotaryConfig.from_file(str(path))
        assert config.shard_count == 12
        assert config.period_length == 7
        assert config.notary_deposit == 5000
        assert config.lookahead_length == 2

    def test_from_missing_file(self, tmp_path, monkeypatch):
        for name in ('SHARD_COUNT', 'PERIOD_LENGTH', 'LOOKAHEAD_LENGTH'):
            monkeypatch.delenv('SHARDNOTARY_' + name, raising=False)
        config = NotaryConfig.from_file(str(tmp_path / "missing.toml"))
        assert config.shard_count == SHARD_COUNT

    def test_to_dict(self):
        data = NotaryConfig().to_dict()
        assert data['notary_deposit'] == str(NOTARY_DEPOSIT)
        assert NotaryConfig.from_dict(data) == NotaryConfig()
