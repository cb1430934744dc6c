# tests/test_context.py
"""
Tests for bot_core.context.

Covers:
- BotContext.create wires shared services from the config
- Process-wide install: get before set, idempotent set, replacement refused
"""

from __future__ import annotations

import pytest

from bot_core.context import (
    BotContext,
    _reset_context_for_tests,
    get_context,
    has_context,
    set_context,
)
from bot_core.errors import BotCoreError
from bot_core.testing import FakeWorldAdapter, ManualTime
from env.schema import MinerConfig


@pytest.fixture(autouse=True)
def _isolated_context():
    _reset_context_for_tests()
    yield
    _reset_context_for_tests()


def _ctx(seed=None) -> BotContext:
    config = MinerConfig.default()
    config.humanization.seed = seed
    return BotContext.create(FakeWorldAdapter(), config, time_fn=ManualTime(1000.0))


def test_create_wires_services() -> None:
    ctx = _ctx()

    assert ctx.now() == 1000.0
    assert ctx.macros.names() == []
    assert ctx.features.names() == []
    assert not ctx.chest_queue and not ctx.mob_queue
    assert ctx.bus is None


def test_seeded_rng_is_reproducible() -> None:
    first = _ctx(seed=7).rng.random()
    second = _ctx(seed=7).rng.random()

    assert first == second


def test_get_before_set_raises() -> None:
    assert not has_context()
    with pytest.raises(BotCoreError) as excinfo:
        get_context()
    assert excinfo.value.code == "context_not_initialized"


def test_set_is_idempotent_but_not_replaceable() -> None:
    ctx = _ctx()

    assert set_context(ctx) is ctx
    assert set_context(ctx) is ctx
    assert get_context() is ctx

    with pytest.raises(BotCoreError) as excinfo:
        set_context(_ctx())
    assert excinfo.value.code == "context_already_initialized"
    assert get_context() is ctx


def test_unknown_feature_lookup() -> None:
    with pytest.raises(KeyError):
        _ctx().feature("BlockMiner")
