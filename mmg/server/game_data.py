"""Writes a finished room's results to disk for post-game analysis.

Files land in ``{data_dir}/{room_id}/{started_at}_{admin_id}/``:
- final_results.csv: one row per player
- valuation_history.csv: one column per player, one row per valuation
- room_metadata.json
"""

from __future__ import annotations

import json
import logging
import os
import time

import flatten_dict
import pandas as pd
from werkzeug.utils import secure_filename

from mmg.server.room_registry import Room
from mmg.utils.typing import PlayerID

logger = logging.getLogger(__name__)


def pad_columns(columns: dict[str, list]) -> dict[str, list]:
    """Pad every list to the longest one with None so they share an index."""
    if not columns:
        return {}
    max_length = max(len(values) for values in columns.values())
    return {
        key: list(values) + [None] * (max_length - len(values))
        for key, values in columns.items()
    }


class GameDataExporter:

    def __init__(self, data_dir: str = "data"):
        self.data_dir = data_dir

    def room_dir(self, room: Room) -> str:
        """A fresh directory for this game, always inside ``data_dir``.

        Room names are chosen by the admin client and may be reused once a
        room closes, so the name is sanitized and every game gets its own
        ``{started_at}_{admin_id}`` subdirectory.
        """
        room_name = secure_filename(str(room.room_id)) or "room"
        admin_name = secure_filename(str(room.admin_id)) or "admin"
        started_at = int(room.started_at if room.started_at is not None else time.time())

        base_dir = os.path.abspath(self.data_dir)
        game_dir = os.path.join(base_dir, room_name, f"{started_at}_{admin_name}")
        out_dir = game_dir
        suffix = 1
        while os.path.exists(out_dir):
            out_dir = f"{game_dir}_{suffix}"
            suffix += 1

        if os.path.commonpath([base_dir, os.path.abspath(out_dir)]) != base_dir:
            raise ValueError(f"Refusing to write room {room.room_id!r} outside {base_dir}")
        return out_dir

    def export(
        self,
        room: Room,
        results: dict[PlayerID, dict],
        game_settings: dict | None = None,
    ) -> str:
        """Write the room's final results and return the directory written to."""
        out_dir = self.room_dir(room)
        os.makedirs(out_dir, exist_ok=True)

        rows = []
        histories = {}
        for player_id, result in results.items():
            result = dict(result)
            histories[f"{player_id}.{result.get('username')}"] = result.pop("valuationHistory", [])
            rows.append(
                flatten_dict.flatten(
                    {"playerId": player_id, **result, "settings": game_settings or {}},
                    reducer="dot",
                )
            )

        results_filename = os.path.join(out_dir, "final_results.csv")
        logger.info(f"[GameData] Saving {results_filename}")
        pd.DataFrame(rows).to_csv(results_filename, index=False)

        history_df = pd.DataFrame(pad_columns(histories))
        history_df.index.name = "valuation"
        history_df.to_csv(os.path.join(out_dir, "valuation_history.csv"))

        metadata = {
            "room_id": room.room_id,
            "admin_id": room.admin_id,
            "started_at": room.started_at,
            "finalized_at": time.time(),
            "rounds_played": room.round_index,
            "strike_price": room.strike_price,
            "num_players": len(results),
        }
        with open(os.path.join(out_dir, "room_metadata.json"), "w") as f:
            json.dump(metadata, f)

        return out_dir
