"""Pure tile rules and move computation."""
import pytest

from models import BoardDocument
from services.tiles import (
    build_overrides,
    clamp_tile,
    default_tile,
    map_board_tile_kind,
    normalize_kind,
    resolve_tile,
    tile_images,
)
from services.turns import DIE_FACES, compute_move, roll_die


def _tile_lookup(board_size, overrides=None):
    overrides = overrides or {}
    return lambda i: resolve_tile(i, board_size, overrides.get(i))


@pytest.mark.parametrize("board_size", [10, 11, 20, 57, 500])
def test_clamp_is_idempotent_and_in_range(board_size):
    for p in range(-10, board_size + 15):
        once = clamp_tile(p, board_size)
        assert 0 <= once <= board_size
        assert clamp_tile(once, board_size) == once


def test_default_rule():
    assert default_tile(0, 20) == {"index": 0, "kind": "empty", "title": "Start", "description": None, "jump_to": None}
    assert default_tile(20, 20)["kind"] == "empty"
    assert default_tile(20, 20)["title"] == "Finish"
    for i in range(1, 20):
        assert default_tile(i, 20)["kind"] == "task"
        assert default_tile(i, 20)["title"] is None


def test_resolve_tile_prefers_override_and_normalises_boss():
    override = {"index": 5, "kind": "boss", "title": "Zulrah", "description": None, "jump_to": None}
    tile = resolve_tile(5, 20, override)
    assert tile["kind"] == "task"
    assert tile["title"] == "Zulrah"

    assert resolve_tile(0, 20, {"index": 0, "kind": "task", "title": "Warmup"})["kind"] == "task"


def test_normalize_kind_rejects_unknown():
    assert normalize_kind("BOSS") == "task"
    with pytest.raises(ValueError):
        normalize_kind("portal")


@pytest.mark.parametrize(
    "tile_type,requires_proof,expected",
    [
        ("jump", None, "jump"),
        ("task", None, "task"),
        ("task", True, "task"),
        ("task", False, "empty"),
        ("boss", None, "task"),
        ("boss", False, "empty"),
        ("start", None, "empty"),
        ("finish", None, "empty"),
        ("empty", True, "empty"),
        (None, None, "empty"),
    ],
)
def test_mechanics_mapping(tile_type, requires_proof, expected):
    assert map_board_tile_kind(tile_type, requires_proof) == expected


def test_build_overrides_ignores_category_and_drops_stray_jump_targets():
    doc = BoardDocument.model_validate({
        "schemaVersion": 1,
        "boardSize": 20,
        "tiles": [
            {"id": 4, "type": "task", "category": "boss", "requiresProof": False},
            {"id": 6, "type": "empty", "jumpTo": 2},
            {"id": 10, "type": "jump", "jumpTo": 3, "title": "Snake"},
        ],
    })
    overrides = {t["index"]: t for t in build_overrides(doc)}
    assert overrides[4]["kind"] == "empty"
    assert overrides[6]["jump_to"] is None
    assert overrides[10] == {"index": 10, "kind": "jump", "title": "Snake", "description": None, "jump_to": 3}


def test_move_clamps_to_finish():
    to, jump, dest = compute_move(15, 6, 20, _tile_lookup(20))
    assert to == 20
    assert jump is None
    assert dest["kind"] == "empty"


def test_move_follows_one_jump_then_gates_on_target():
    overrides = {10: {"index": 10, "kind": "jump", "jump_to": 3}}
    to, jump, dest = compute_move(8, 2, 20, _tile_lookup(20, overrides))
    assert to == 3
    assert jump == {"from": 10, "to": 3}
    assert dest["kind"] == "task"


def test_jump_chains_are_not_followed():
    overrides = {
        10: {"index": 10, "kind": "jump", "jump_to": 3},
        3: {"index": 3, "kind": "jump", "jump_to": 18},
    }
    to, jump, dest = compute_move(8, 2, 20, _tile_lookup(20, overrides))
    assert to == 3
    assert jump == {"from": 10, "to": 3}
    assert dest["kind"] == "jump"


def test_roll_die_range():
    seen = {roll_die() for _ in range(600)}
    assert seen <= set(range(1, DIE_FACES + 1))
    assert len(seen) == DIE_FACES


def test_tile_images_reads_by_tile_id():
    doc = {"tiles": [
        {"id": 3, "imageUrl": "https://img.example/3.png", "imageCacheKey": "k3"},
        {"id": 4, "title": "no image"},
        {"id": "5", "imageUrl": "https://img.example/bad.png"},
    ]}
    images = tile_images(doc)
    assert images == {3: {"imageUrl": "https://img.example/3.png", "imageCacheKey": "k3"}}
    assert tile_images(None) == {}
