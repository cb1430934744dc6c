# tests/test_auto_warp.py
"""
Unit tests for features.auto_warp.AutoWarp.

Covers:
- Warp commands from configured aliases
- Success verified through the tablist area, then cooldown
- Duplicate requests refused
- Aliases cycled per attempt; WARP_FAILED after max attempts
- Several queued requests handled in order
"""

from __future__ import annotations

from bot_core.testing import WorldBuilder
from features.auto_warp import AutoWarp, WarpError, WarpState
from tests.fakes.fake_runtime import FakeBot, make_bot


def _bot() -> FakeBot:
    return make_bot(WorldBuilder().at(0.5, 64, 0.5).tablist("§b§lArea: §7Hub").build())


def _warp(bot: FakeBot) -> AutoWarp:
    return bot.feature(AutoWarp.name)


def _sent(bot: FakeBot):
    return [c.args["message"] for c in bot.adapter.named("chat")]


def test_commands_for_aliases() -> None:
    warp = _warp(_bot())

    assert warp.commands_for("dwarven_mines") == ["/warp mines", "/warp dwarven"]
    assert warp.commands_for("garden") == ["/warp garden"]


def test_warp_verified_by_area() -> None:
    bot = _bot()
    warp = _warp(bot)

    assert warp.request_warp("dwarven_mines", reason="commission")
    assert warp.core.enabled
    bot.tick(2)
    assert warp.state is WarpState.VERIFYING
    assert _sent(bot) == ["/warp mines"]

    bot.world.tablist = ["§b§lArea: §7Dwarven Mines"]
    assert bot.tick_until(lambda: not warp.core.enabled, max_ticks=5)

    assert warp.succeeded()
    assert warp.warps_done == 1
    # Cooldown refuses the next request.
    assert warp.request_warp("hub") is False


def test_duplicate_request_refused() -> None:
    bot = _bot()
    warp = _warp(bot)

    assert warp.request_warp("forge")
    assert warp.request_warp("forge") is False
    assert len(warp.queue) == 1


def test_aliases_cycle_until_attempts_run_out() -> None:
    bot = _bot()
    warp = _warp(bot)
    warp.settings.verify_timeout_ms = 500.0

    warp.request_warp("dwarven_mines")
    assert bot.tick_until(lambda: not warp.core.enabled, max_ticks=200)

    assert warp.error is WarpError.WARP_FAILED
    assert warp.failed == ["dwarven_mines"]
    assert _sent(bot) == ["/warp mines", "/warp dwarven"] * warp.settings.max_attempts


def test_queued_requests_run_in_order() -> None:
    bot = _bot()
    warp = _warp(bot)
    warp.settings.cooldown_ms = 0.0

    warp.request_warp("forge")
    warp.request_warp("base_camp")
    assert warp.current is not None and warp.current.location == "forge"

    bot.tick(2)
    bot.world.tablist = ["Area: Forge"]
    bot.tick(3)
    assert _sent(bot) == ["/warp forge", "/warp camp"]

    bot.world.tablist = ["Area: Dwarven Base Camp"]
    assert bot.tick_until(lambda: not warp.core.enabled, max_ticks=5)
    assert warp.warps_done == 2
    assert warp.succeeded()
