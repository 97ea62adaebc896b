"""Tile rules shared by rolls, proofs, state and overlay.

Every component that needs to know what a tile does goes through
`resolve_tile`, so the default rule below exists exactly once:

- tile 0 is an empty "Start" tile
- tile `board_size` is an empty "Finish" tile
- any other tile without an override is a task (proof required)
"""
from typing import Iterable, Optional

from models import BoardDocument, Tile, TileKind

TILE_KINDS = ("empty", "task", "jump")


def clamp_tile(index: int, board_size: int) -> int:
    """Clamp a tile index to the board, 0..board_size inclusive."""
    return max(0, min(board_size, int(index)))


def normalize_kind(kind: str) -> TileKind:
    """Map legacy kinds onto the three mechanics; "boss" is a task."""
    k = (kind or "").strip().lower()
    if k == "boss":
        return "task"
    if k not in TILE_KINDS:
        raise ValueError(f"Unknown tile kind: {kind!r}")
    return k


def default_tile(index: int, board_size: int) -> Tile:
    if index == 0:
        return {"index": 0, "kind": "empty", "title": "Start", "description": None, "jump_to": None}
    if index == board_size:
        return {"index": index, "kind": "empty", "title": "Finish", "description": None, "jump_to": None}
    return {"index": index, "kind": "task", "title": None, "description": None, "jump_to": None}


def resolve_tile(index: int, board_size: int, override: Optional[Tile] = None) -> Tile:
    """The effective tile at `index`: the configured override, else the default rule."""
    if override is None:
        return default_tile(index, board_size)
    kind = normalize_kind(override["kind"])
    return {
        "index": index,
        "kind": kind,
        "title": override.get("title"),
        "description": override.get("description"),
        "jump_to": override.get("jump_to") if kind == "jump" else None,
    }


def map_board_tile_kind(tile_type: Optional[str], requires_proof: Optional[bool]) -> TileKind:
    """Mechanics of an editor tile.

    jump stays jump; task and boss are tasks unless `requires_proof` is
    explicitly False; start, finish and empty are empty. Categories never
    change mechanics.
    """
    t = (tile_type or "empty").lower()
    if t == "jump":
        return "jump"
    if t in ("task", "boss"):
        return "empty" if requires_proof is False else "task"
    return "empty"


def build_overrides(document: BoardDocument) -> list[Tile]:
    """Tile overrides for every tile of a (validated) board document."""
    overrides: list[Tile] = []
    for t in document.tiles:
        kind = map_board_tile_kind(t.type, t.requires_proof)
        overrides.append({
            "index": t.id,
            "kind": kind,
            "title": t.title,
            "description": t.description,
            "jump_to": t.jump_to if kind == "jump" else None,
        })
    return overrides


def tile_view(tile: Tile) -> dict:
    """JSON shape used by the state endpoint."""
    return {
        "index": tile["index"],
        "kind": tile["kind"],
        "title": tile.get("title"),
        "jumpTo": tile.get("jump_to"),
    }


def tile_images(document: Optional[dict]) -> dict[int, dict]:
    """imageUrl / imageCacheKey per tile id, read leniently from a stored board document."""
    out: dict[int, dict] = {}
    if not document:
        return out
    tiles: Iterable = document.get("tiles") or []
    for t in tiles:
        if not isinstance(t, dict) or not isinstance(t.get("id"), int):
            continue
        image_url = t.get("imageUrl")
        cache_key = t.get("imageCacheKey")
        if isinstance(image_url, str) or isinstance(cache_key, str):
            out[t["id"]] = {
                "imageUrl": image_url if isinstance(image_url, str) else "",
                "imageCacheKey": cache_key if isinstance(cache_key, str) else "",
            }
    return out
