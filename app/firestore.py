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
Firestore client and Firestore-backed player repository.

Provides a singleton Firestore client instance that is lazily initialized
on first use. Supports both production (Application Default Credentials)
and local development (Firestore emulator) configurations.

Layout:
- players/{id}: one document per player, document id is the decimal id
- counters/players: {"next_id": int}, the id sequence

Firestore cannot express substring matches, and combining range filters on
several fields needs composite indexes, so only equality clauses (race,
profession, banned) are sent to Firestore. Every other clause is evaluated
in-process on the returned documents before sorting and paging.
"""

import os
import threading
from enum import Enum
from typing import Any, Optional

from google.cloud import firestore  # type: ignore[import-untyped]

from app.config import get_settings
from app.criteria import PageSpec, paginate
from app.logging import get_logger
from app.models import (
    Player,
    PlayerCreateRequest,
    PlayerOrder,
    build_player,
    merge_player,
    player_from_firestore,
    player_to_firestore,
)
from app.predicates import FieldPredicate, PlayerPredicate
from app.repository import PlayerRepository, sort_players

logger = get_logger(__name__)

# Module-level singleton client and lock for thread safety
_firestore_client: Optional[firestore.Client] = None
_firestore_lock = threading.Lock()

PUSHDOWN_FIELDS = frozenset({"race", "profession", "banned"})
PLAYER_SEQUENCE_DOCUMENT = "players"


def get_firestore_client() -> firestore.Client:
    """
    Get or create the process-wide Firestore client.

    Configuration:
    - Uses GCP_PROJECT_ID from settings for production
    - Supports the Firestore emulator via FIRESTORE_EMULATOR_HOST
    - Uses Application Default Credentials (ADC) in production

    Raises:
        ValueError: If GCP_PROJECT_ID is not set and no emulator is configured
    """
    global _firestore_client

    # Double-checked locking for thread-safe lazy initialization
    if _firestore_client is None:
        with _firestore_lock:
            if _firestore_client is None:
                settings = get_settings()

                emulator_host = settings.firestore_emulator_host
                if emulator_host:
                    os.environ["FIRESTORE_EMULATOR_HOST"] = emulator_host
                    # For emulator, project_id can be any non-empty string
                    project_id = settings.gcp_project_id or "demo-project"
                else:
                    project_id = settings.gcp_project_id
                    if not project_id:
                        raise ValueError(
                            "GCP_PROJECT_ID must be set when not using Firestore emulator. "
                            "Set FIRESTORE_EMULATOR_HOST for local development."
                        )

                logger.info(
                    "firestore_client_initialized",
                    project_id=project_id,
                    emulator=bool(emulator_host),
                )
                _firestore_client = firestore.Client(project=project_id)

    return _firestore_client


def reset_firestore_client() -> None:
    """
    Reset the Firestore client singleton.

    Used by tests to force a fresh client with new settings.
    """
    global _firestore_client
    with _firestore_lock:
        _firestore_client = None


# ==============================================================================
# Predicate Translation
# ==============================================================================


def split_predicate(
    predicate: PlayerPredicate,
) -> tuple[list[FieldPredicate], PlayerPredicate]:
    """
    Split a predicate into Firestore-native clauses and an in-process remainder.

    Returns:
        (clauses to pass to Query.where, predicate to evaluate on results)
    """
    pushed: list[FieldPredicate] = []
    residual: list[FieldPredicate] = []
    for clause in predicate.clauses:
        if clause.op == "==" and clause.field in PUSHDOWN_FIELDS:
            pushed.append(clause)
        else:
            residual.append(clause)
    return pushed, PlayerPredicate(tuple(residual))


def _firestore_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _document_player_id(doc_id: str) -> Optional[int]:
    return int(doc_id) if doc_id.isdigit() else None


class FirestorePlayerRepository(PlayerRepository):
    """PlayerRepository stored in a Firestore collection."""

    def __init__(
        self,
        client: firestore.Client,
        *,
        collection: Optional[str] = None,
        counters_collection: Optional[str] = None,
    ):
        settings = get_settings()
        self._client = client
        self._players_ref = client.collection(
            collection or settings.firestore_players_collection
        )
        self._sequence_ref = client.collection(
            counters_collection or settings.firestore_counters_collection
        ).document(PLAYER_SEQUENCE_DOCUMENT)

    def _query(self, clauses: list[FieldPredicate]):
        query = self._players_ref
        for clause in clauses:
            query = query.where(clause.field, clause.op, _firestore_value(clause.value))
        return query

    def _stream_matching(self, predicate: PlayerPredicate) -> list[Player]:
        pushed, residual = split_predicate(predicate)
        players = []
        for doc in self._query(pushed).stream():
            player = player_from_firestore(
                doc.to_dict(), player_id=_document_player_id(doc.id)
            )
            if residual.matches(player):
                players.append(player)
        return players

    def fetch_page(
        self, predicate: PlayerPredicate, order: PlayerOrder, page: PageSpec
    ) -> list[Player]:
        return paginate(sort_players(self._stream_matching(predicate), order), page)

    def count(self, predicate: PlayerPredicate) -> int:
        pushed, residual = split_predicate(predicate)
        if residual.is_match_all:
            # Aggregation query: a single read regardless of result size
            result = self._query(pushed).count().get()
            return result[0][0].value
        return len(self._stream_matching(predicate))

    def create(self, request: PlayerCreateRequest) -> Player:
        transaction = self._client.transaction()
        players_ref = self._players_ref
        sequence_ref = self._sequence_ref

        @firestore.transactional
        def create_in_transaction(transaction):
            snapshot = sequence_ref.get(transaction=transaction)
            next_id = 1
            if snapshot.exists:
                next_id = (snapshot.to_dict() or {}).get("next_id", 1)

            player = build_player(next_id, request)
            transaction.set(sequence_ref, {"next_id": next_id + 1})
            transaction.set(
                players_ref.document(str(player.id)), player_to_firestore(player)
            )
            return player

        return create_in_transaction(transaction)

    def get(self, player_id: int) -> Optional[Player]:
        doc = self._players_ref.document(str(player_id)).get()
        if not doc.exists:
            return None
        return player_from_firestore(doc.to_dict(), player_id=player_id)

    def update(self, player_id: int, changes: dict[str, Any]) -> Optional[Player]:
        transaction = self._client.transaction()
        doc_ref = self._players_ref.document(str(player_id))

        @firestore.transactional
        def update_in_transaction(transaction):
            snapshot = doc_ref.get(transaction=transaction)
            if not snapshot.exists:
                return None

            existing = player_from_firestore(snapshot.to_dict(), player_id=player_id)
            updated = merge_player(existing, changes)
            transaction.set(doc_ref, player_to_firestore(updated))
            return updated

        return update_in_transaction(transaction)

    def delete(self, player_id: int) -> None:
        # Deleting a missing document succeeds in Firestore
        self._players_ref.document(str(player_id)).delete()
