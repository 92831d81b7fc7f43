from __future__ import annotations

import io
import json
import logging

import pytest

from proxyvm import logging as plog
from proxyvm.config import ProxyConfig, load_config, summary


# -----------------------------------------------------------------------------
# config
# -----------------------------------------------------------------------------


def test_defaults():
    cfg = load_config(env={})
    assert cfg == ProxyConfig()
    assert cfg.strict_layout is True
    assert cfg.sequential_region_limit == 2**64
    assert cfg.max_call_depth == 64


def test_environment_parsing_and_clamping():
    cfg = load_config(
        env={
            "PROXYVM_STRICT_LAYOUT": "off",
            "PROXYVM_SEQUENTIAL_REGION_BITS": "300",
            "PROXYVM_MAX_CALL_DEPTH": "0",
            "PROXYVM_LOG_LEVEL": "debug",
            "PROXYVM_LOG_JSON": "yes",
        }
    )
    assert cfg.strict_layout is False
    assert cfg.sequential_region_bits == 200
    assert cfg.max_call_depth == 1
    assert cfg.log_level == "DEBUG"
    assert cfg.log_json is True


def test_unparsable_values_fall_back_to_defaults():
    cfg = load_config(
        env={
            "PROXYVM_STRICT_LAYOUT": "maybe",
            "PROXYVM_SEQUENTIAL_REGION_BITS": "lots",
            "PROXYVM_LOG_LEVEL": "LOUD",
        }
    )
    assert cfg.strict_layout is True
    assert cfg.sequential_region_bits == 64
    assert cfg.log_level == "INFO"


def test_overrides():
    cfg = load_config(env={"PROXYVM_MAX_CALL_DEPTH": "9"}, overrides={"max_call_depth": 3})
    assert cfg.max_call_depth == 3
    with pytest.raises(ValueError):
        load_config(env={}, overrides={"gas_limit": 1})
    assert "strict_layout=1" in summary(load_config(env={}))


# -----------------------------------------------------------------------------
# logging
# -----------------------------------------------------------------------------


@pytest.fixture
def restore_proxyvm_logger():
    logger = logging.getLogger("proxyvm")
    level, handlers = logger.level, list(logger.handlers)
    yield
    for h in list(logger.handlers):
        logger.removeHandler(h)
    for h in handlers:
        logger.addHandler(h)
    logger.setLevel(level)
    plog.clear_context()


def test_json_formatter_includes_context_and_extras(restore_proxyvm_logger):
    stream = io.StringIO()
    plog.configure(json=True, level="DEBUG", stream=stream)
    log = plog.get_logger("proxyvm.test")
    with plog.trace_scope(trace_id="abc123", component="host"):
        log.info("proxy deployed", extra={"proxy": b"\x01" * 20, "nonce": 3})
    line = json.loads(stream.getvalue().strip().splitlines()[-1])
    assert line["msg"] == "proxy deployed"
    assert line["level"] == "INFO"
    assert line["trace_id"] == "abc123"
    assert line["component"] == "host"
    assert line["proxy"] == "0x" + "01" * 20
    assert line["nonce"] == 3
    assert "trace_id" not in plog.context()


def test_configure_replaces_its_own_handler(restore_proxyvm_logger):
    first, second = io.StringIO(), io.StringIO()
    plog.configure(json=False, level="INFO", stream=first)
    plog.configure(json=False, level="INFO", stream=second)
    plog.get_logger("proxyvm.test").warning("once")
    assert first.getvalue() == ""
    assert "WARNING | proxyvm.test" in second.getvalue()
    assert "once" in second.getvalue()


def test_bind_and_unbind():
    plog.clear_context()
    plog.bind(sender="0xaa", depth=2)
    assert plog.context() == {"sender": "0xaa", "depth": 2}
    plog.unbind("depth")
    assert plog.context() == {"sender": "0xaa"}
    plog.clear_context()
    assert plog.context() == {}

