"""Board editor documents and the tile overrides derived from them."""
import logging

from pydantic import ValidationError

from models import BOARD_SCHEMA_VERSION, BoardDocument, Game, minimal_board
from stores import BoardLocked, GameNotFound, GameStore, InvalidBoard
from .tiles import build_overrides

logger = logging.getLogger(__name__)


def parse_document(raw) -> BoardDocument:
    """Parse an editor document; unknown schema versions are rejected.

    Raises:
        InvalidBoard: the document does not match the schema
    """
    if not isinstance(raw, dict):
        raise InvalidBoard("Board document must be a JSON object", field="board")
    try:
        return BoardDocument.model_validate(raw)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(p) for p in first.get("loc", ())) or "board"
        raise InvalidBoard(f"{field}: {first.get('msg', 'invalid value')}", field=field) from exc


def validate_document(document: BoardDocument, board_size: int) -> None:
    """Checks that depend on the owning game.

    Raises:
        InvalidBoard: size mismatch, tile id out of range or repeated, or a
            jump tile without an in-range target
    """
    if document.board_size != board_size:
        raise InvalidBoard(f"boardSize must match game.boardSize ({board_size})", field="boardSize")

    seen: set[int] = set()
    for t in document.tiles:
        if t.id < 0 or t.id > board_size:
            raise InvalidBoard(f"Tile id {t.id} out of range", field="tiles.id")
        if t.id in seen:
            raise InvalidBoard(f"Tile id {t.id} appears more than once", field="tiles.id")
        seen.add(t.id)
        if t.type == "jump":
            if t.jump_to is None:
                raise InvalidBoard(f"jump tile {t.id} missing jumpTo", field="tiles.jumpTo")
            if t.jump_to < 0 or t.jump_to > board_size:
                raise InvalidBoard(f"jumpTo {t.jump_to} out of range", field="tiles.jumpTo")


def board_view(revision) -> dict:
    return {
        "board": revision["document"],
        "locked": revision["locked"],
        "updatedAt": revision["updated_at"],
    }


async def get_board(store: GameStore, game_id: str) -> dict:
    """The stored board, the minimal default when none was saved, or `board: None` for unknown games."""
    game = await store.get_game(game_id)
    if game is None:
        return {"board": None}

    revision = await store.get_board(game_id)
    if revision is None:
        return {
            "board": minimal_board(game_id, game["board_size"]).to_json_dict(),
            "locked": False,
            "updatedAt": None,
        }
    return board_view(revision)


async def _require_game(store: GameStore, game_id: str) -> Game:
    game = await store.get_game(game_id)
    if game is None:
        raise GameNotFound(game_id)
    return game


async def save_board(store: GameStore, game_id: str, raw_document) -> dict:
    """Validate and store a document, rebuilding the game's tile overrides.

    Raises:
        GameNotFound, BoardLocked, InvalidBoard
    """
    game = await _require_game(store, game_id)

    # locked boards refuse edits before the document is even looked at
    current = await store.get_board(game_id)
    if current is not None and current["locked"]:
        raise BoardLocked("Board is locked")

    document = parse_document(raw_document)
    validate_document(document, game["board_size"])

    revision = await store.save_board(
        game_id,
        document=document.to_json_dict(),
        schema_version=BOARD_SCHEMA_VERSION,
        overrides=build_overrides(document),
    )
    logger.info(f"Board for game {game_id} saved ({len(document.tiles)} tiles)")
    return {"ok": True, "updatedAt": revision["updated_at"], "tiles": len(document.tiles)}


async def set_locked(store: GameStore, game_id: str, locked: bool) -> dict:
    """Toggle the lock flag, materialising the minimal board when none exists.

    Raises:
        GameNotFound
    """
    game = await _require_game(store, game_id)
    revision = await store.set_board_locked(
        game_id,
        locked,
        default_document=minimal_board(game_id, game["board_size"]).to_json_dict(),
        schema_version=BOARD_SCHEMA_VERSION,
    )
    return {"ok": True, "locked": revision["locked"], "updatedAt": revision["updated_at"]}
