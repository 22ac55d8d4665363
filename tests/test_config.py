import dataclasses
import sys

import pytest

from legacyhttp.config import Config, PoolConfig, Ver


def test_config_defaults():
    config = Config()
    assert config.retry_canceled_requests is True
    assert config.set_host is True
    assert config.ver is Ver.AUTO


def test_config_is_immutable():
    config = Config()
    with pytest.raises(dataclasses.FrozenInstanceError):
        config.set_host = False
    assert config.set_host is True


def test_config_replace_keeps_other_fields():
    config = dataclasses.replace(Config(), ver=Ver.HTTP2)
    assert config.ver is Ver.HTTP2
    assert config.retry_canceled_requests is True
    assert config.set_host is True


def test_pool_config_defaults():
    pool = PoolConfig()
    assert pool.idle_timeout == 90
    assert pool.max_idle_per_host == sys.maxsize
    assert pool.is_enabled() is True


def test_pool_disabled_with_zero_idle():
    assert PoolConfig(max_idle_per_host=0).is_enabled() is False


@pytest.mark.parametrize("max_idle", [1, 5, sys.maxsize])
def test_pool_enabled_with_positive_idle(max_idle):
    assert PoolConfig(max_idle_per_host=max_idle).is_enabled() is True


def test_pool_idle_timeout_may_be_disabled():
    pool = PoolConfig(idle_timeout=None)
    assert pool.idle_timeout is None
    assert pool.is_enabled() is True


def test_pool_rejects_negative_max_idle():
    with pytest.raises(ValueError):
        PoolConfig(max_idle_per_host=-1)


def test_pool_rejects_negative_timeout():
    with pytest.raises(ValueError):
        PoolConfig(idle_timeout=-1.0)


def test_ver_members_are_distinct():
    auto = Config(ver=Ver.AUTO)
    http2 = Config(ver=Ver.HTTP2)
    assert auto.ver is Ver.AUTO
    assert http2.ver is Ver.HTTP2
    assert auto != http2