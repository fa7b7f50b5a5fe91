#!/usr/bin/env python3
# Copyright 2025 John Brosnihan
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""
Load player records from a JSON file into the configured storage backend.

The file holds a JSON array of create payloads, the same shape accepted by
POST /rest/players (birthday in milliseconds since the epoch). Every entry
is validated before anything is written; ids are assigned by the regular
player id sequence.

Usage:
    # Validate the file and print what would be created
    python scripts/seed_players.py scripts/players.sample.json --dry-run

    # Create the players
    python scripts/seed_players.py scripts/players.sample.json

Environment Variables:
    STORAGE_BACKEND: Optional - "firestore" or "memory" (default: "memory").
        The memory backend lives only as long as this process, so it is
        only useful for validating a file end to end.
    GCP_PROJECT_ID: Required for Firestore unless FIRESTORE_EMULATOR_HOST is set
    FIRESTORE_PLAYERS_COLLECTION: Optional - Collection name (default: "players")
    FIRESTORE_EMULATOR_HOST: Optional - Emulator host for local testing
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List

from pydantic import ValidationError

from app.config import get_settings
from app.dependencies import get_player_repository
from app.logging import configure_logging, get_logger
from app.models import PlayerCreateRequest

logger = get_logger(__name__)


def load_requests(path: Path) -> List[PlayerCreateRequest]:
    """
    Parse and validate every entry of the seed file.

    Raises:
        ValueError: If the file is not a JSON array or an entry is invalid
    """
    entries = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(entries, list):
        raise ValueError(f"{path} must contain a JSON array of players")

    requests = []
    for index, entry in enumerate(entries):
        try:
            requests.append(PlayerCreateRequest.model_validate(entry))
        except ValidationError as e:
            raise ValueError(f"Entry {index} is invalid: {e}") from e
    return requests


def main(argv: List[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Seed player records into the configured backend")
    parser.add_argument("file", type=Path, help="JSON array of player payloads")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate and list the players without writing anything",
    )
    args = parser.parse_args(argv)

    configure_logging()

    try:
        requests = load_requests(args.file)
    except (OSError, ValueError) as e:
        logger.error("seed_players_invalid_input", file=str(args.file), error=str(e))
        return 1

    if args.dry_run:
        for request in requests:
            logger.info(
                "seed_players_dry_run",
                name=request.name,
                race=request.race.value,
                profession=request.profession.value,
            )
        logger.info("seed_players_dry_run_complete", count=len(requests))
        return 0

    repository = get_player_repository()
    logger.info(
        "seed_players_start",
        backend=get_settings().storage_backend,
        count=len(requests),
    )
    for request in requests:
        player = repository.create(request)
        logger.info("seed_players_created", player_id=player.id, name=player.name)

    logger.info("seed_players_complete", count=len(requests))
    return 0


if __name__ == "__main__":
    sys.exit(main())
