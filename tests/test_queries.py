# tests/test_queries.py
"""
Unit tests for bot_core.queries (blocks, entities, inventory, text).

Covers:
- priority scans, mining time and cost ranking
- dig faces and standing spots
- name-tag health parsing and mob selection
- hotbar / container lookups
- tablist and scoreboard parsing
- safe defaults on empty or malformed input
"""

from __future__ import annotations

import math

from bot_core.queries import blocks, entities, inventory, text
from bot_core.snapshot import BlockState, ItemStack, WindowInfo
from bot_core.testing import FakeWorldAdapter, WorldBuilder

BEDROCK = BlockState(7, "bedrock")


# ---------------------------------------------------------------------------
# Blocks
# ---------------------------------------------------------------------------


def _mining_world():
    return (
        WorldBuilder()
        .at(0.5, 64, 0.5)
        .floor(63, state=BEDROCK)
        .block((2, 65, 0), 1, "stone")
        .block((0, 65, 2), 57, "diamond_block")
        .block((10, 65, 0), 1, "stone")
        .build()
    )


def test_find_priority_blocks_filters_by_priority_and_radius() -> None:
    world = _mining_world()

    found = blocks.find_priority_blocks(world, {1: 1}, radius=5)

    assert found == [(2, 65, 0)]
    assert blocks.find_priority_blocks(world, {}, radius=5) == []
    assert blocks.find_priority_blocks(world, {1: 0}, radius=5) == []


def test_mining_time_ticks() -> None:
    assert blocks.mining_time_ticks(1, 1000) == 2
    assert blocks.mining_time_ticks(1, 1000, glide_offset=3) == 5
    assert blocks.mining_time_ticks(1, 0) == 0
    assert blocks.block_strength(999_999) == blocks.DEFAULT_BLOCK_STRENGTH


def test_mining_cost_prefers_softer_and_closer_blocks() -> None:
    soft = blocks.mining_cost(1, 1, 1000, angle_change=0.0, distance_sq=4.0)
    hard = blocks.mining_cost(57, 1, 1000, angle_change=0.0, distance_sq=4.0)
    far = blocks.mining_cost(1, 1, 1000, angle_change=0.0, distance_sq=16.0)

    assert soft < hard
    assert soft < far
    assert math.isinf(blocks.mining_cost(1, 0, 1000, 0.0, 1.0))
    assert math.isinf(blocks.mining_cost(1, 1, 0, 0.0, 1.0))


def test_selection_score_is_floored_at_zero() -> None:
    assert blocks.selection_score(1, distance=3.0, height_delta=1.0, angle_delta=10.0) == 100 - 30 - 5 - 5
    assert blocks.selection_score(0, distance=3.0, height_delta=0.0, angle_delta=0.0) == 0.0


def test_find_mineable_blocks_prefers_the_block_in_view() -> None:
    priorities = {1: 1, 57: 1}
    world = _mining_world()

    world.yaw = -90.0  # facing +x
    ranked = blocks.find_mineable_blocks(world, priorities, mining_speed=1000, reach=4.0)
    assert [coord for coord, _, _ in ranked] == [(2, 65, 0), (0, 65, 2)]
    assert ranked[0][1] > ranked[1][1]
    assert ranked[0][2] < ranked[1][2]

    world.yaw = 0.0  # facing +z
    ranked = blocks.find_mineable_blocks(world, priorities, mining_speed=1000, reach=4.0)
    assert ranked[0][0] == (0, 65, 2)


def test_best_dig_face_uses_dominant_axis() -> None:
    world = _mining_world()
    eye = world.eye_position

    assert blocks.best_dig_face(eye, (2, 65, 0)) == "west"
    assert blocks.best_dig_face(eye, (-3, 65, 0)) == "east"
    assert blocks.best_dig_face(eye, (0, 62, 0)) == "up"


def test_walkable_blocks_around_sorted_by_distance() -> None:
    world = WorldBuilder().at(0.5, 64, 0.5).floor(63).build()

    spots = blocks.walkable_blocks_around(world, (0, 64, 0), horizontal=1)

    assert len(spots) == 9
    assert spots[0] == (0, 64, 0)
    assert all(y == 64 for _, y, _ in spots)


def test_closest_visible_side_none_when_enclosed() -> None:
    builder = WorldBuilder().at(0.5, 64, 0.5).block((3, 65, 0), 1, "stone")
    for dx, dy, dz in ((1, 0, 0), (-1, 0, 0), (0, 1, 0), (0, -1, 0), (0, 0, 1), (0, 0, -1)):
        builder.block((3 + dx, 65 + dy, dz), 1, "stone")
    world = builder.build()

    assert blocks.closest_visible_side(world, (3, 65, 0)) is None


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


def test_health_from_stand_name() -> None:
    assert entities.health_from_stand_name("§aGoblin §c1,250/2,000❤") == 1250
    assert entities.health_from_stand_name("Glacite Walker 5k/10k❤") == 5000
    assert entities.health_from_stand_name("no health here") == 0.0
    assert entities.health_from_stand_name("") == 0.0
    assert entities.is_stand_dead("Goblin 0/2,000❤")


def test_find_named_mobs_resolves_name_tags_to_bodies() -> None:
    world = (
        WorldBuilder()
        .at(0.5, 64, 0.5)
        .entity(1, "mob", "Goblin", (3.5, 64, 0.5))
        .entity(2, "armor_stand", "Ice Walker 100/200❤", (0.5, 66, 5.5))
        .entity(3, "mob", "", (0.5, 64, 5.5))
        .entity(4, "armor_stand", "Ice Walker 0/200❤", (9.5, 66, 9.5))
        .entity(5, "mob", "", (9.5, 64, 9.5))
        .entity(6, "mob", "Zombie", (1.5, 64, 0.5))
        .build()
    )

    found = entities.find_named_mobs(world, ["Goblin", "Ice Walker"])

    assert {e.entity_id for e in found} == {1, 3}
    assert [e.entity_id for e in entities.find_named_mobs(world, ["Goblin"], ignore_ids=[1])] == []
    assert entities.find_named_mobs(world, []) == []


def test_entities_in_radius_and_closest() -> None:
    world = (
        WorldBuilder()
        .at(0.5, 64, 0.5)
        .entity(1, "npc", "Emissary", (5.5, 64, 0.5))
        .entity(2, "mob", "Goblin", (2.5, 64, 0.5))
        .build()
    )

    near = entities.entities_in_radius(world, world.player_pos, 3.0)
    assert [e.entity_id for e in near] == [2]

    npc = entities.closest_entity(world, world.player_pos, entities.is_npc)
    assert npc is not None and npc.entity_id == 1


# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------


def test_hotbar_lookup_follows_name_order() -> None:
    world = (
        WorldBuilder()
        .item(2, "diamond_pickaxe", "Titanium Pickaxe")
        .item(5, "prismarine_shard", "§aMithril Drill SX-R226")
        .item(12, "iron_ingot", "Enchanted Iron", count=64)
        .build()
    )

    assert inventory.hotbar_slot_of(world, ["Drill", "Pickaxe"]) == 5
    assert inventory.hotbar_slot_of(world, ["Pickaxe", "Drill"]) == 2
    assert inventory.hotbar_slot_of(world, ["Enchanted Iron"]) == -1
    assert inventory.missing_items_in_hotbar(world, ["Drill", "Abiphone"]) == ["Abiphone"]
    assert inventory.count_items(world, "iron") == 64


def test_hold_item_selects_slot() -> None:
    world = WorldBuilder().item(3, "diamond_pickaxe", "Pickaxe").build()
    adapter = FakeWorldAdapter(world)

    assert inventory.hold_item(adapter, adapter.world, ["Pickaxe"])
    assert adapter.world.held_slot == 3
    assert inventory.is_holding(adapter.world, ["pickaxe"])
    assert not inventory.hold_item(adapter, adapter.world, ["Sword"])


def test_inventory_full_and_empty_slots() -> None:
    builder = WorldBuilder()
    for slot in range(36):
        builder.item(slot, "cobblestone", count=64)
    world = builder.build()

    assert inventory.is_inventory_full(world)
    assert inventory.empty_slots(world) == []


def test_window_helpers() -> None:
    window = WindowInfo(
        window_id=3,
        title="§8Abiphone",
        slots=[None, ItemStack(1, "player_head", "Greatforge"), ItemStack(2, "stone", "Stone")],
    )

    assert inventory.window_title(window) == "Abiphone"
    assert inventory.window_slot_of(window, "Greatforge") == 1
    assert inventory.window_slot_of(None, "Greatforge") == -1
    assert inventory.window_slots_matching(window, lambda s: s.name == "stone") == [2]


# ---------------------------------------------------------------------------
# Text
# ---------------------------------------------------------------------------


def test_commission_progress_reads_only_the_commission_section() -> None:
    tablist = [
        "§e§lCommissions:",
        " Goblin Slayer: §c45%",
        " Mithril Miner: §aDONE",
        "",
        " Other: 10%",
    ]

    progress = text.commission_progress(tablist)

    assert progress == {"Goblin Slayer": 0.45, "Mithril Miner": 1.0}
    assert text.completed_commissions(tablist) == ["Mithril Miner"]
    assert text.commission_progress([]) == {}


def test_area_and_location_lookup() -> None:
    world = WorldBuilder().tablist("§b§lArea: §7Dwarven Mines").build()
    assert text.current_area(world) == "Dwarven Mines"
    assert text.is_in_location(world, "dwarven")

    world = WorldBuilder().scoreboard(" ⏣ §bForge").build()
    assert text.current_area(world) == "Forge"
    assert not text.is_in_location(world, "hub")


def test_scoreboard_numbers() -> None:
    world = (
        WorldBuilder()
        .scoreboard("Cold: -12", " Mithril: 12,345")
        .tablist(" Gemstone: 900")
        .build()
    )

    assert text.cold_level(world) == -12
    assert text.powder_counts(world) == {"Mithril": 12345, "Gemstone": 900}
    assert text.strip_control_codes("§aHello§r") == "Hello"
    assert text.strip_control_codes(None) == ""
