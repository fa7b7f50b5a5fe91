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
Player storage interface and the in-memory backend.

Routers talk to a PlayerRepository only. Two backends exist:

- InMemoryPlayerRepository (this module): process-local, used for local
  development and tests
- FirestorePlayerRepository (app.firestore): production storage
"""

import itertools
import threading
from abc import ABC, abstractmethod
from typing import Any, Iterable, Optional

from app.criteria import PageSpec, paginate
from app.models import (
    Player,
    PlayerCreateRequest,
    PlayerOrder,
    build_player,
    merge_player,
)
from app.predicates import PlayerPredicate


def sort_players(players: Iterable[Player], order: PlayerOrder) -> list[Player]:
    """Sort ascending by the ordering field, breaking ties by id."""
    return sorted(players, key=lambda p: (getattr(p, order.field_name), p.id))


class PlayerRepository(ABC):
    """
    Storage operations needed by the players API.

    ``fetch_page`` and ``count`` must apply identical predicate semantics;
    ``count`` ignores ordering and paging.
    """

    @abstractmethod
    def fetch_page(
        self, predicate: PlayerPredicate, order: PlayerOrder, page: PageSpec
    ) -> list[Player]:
        """Matching players sorted ascending by order, sliced to page."""

    @abstractmethod
    def count(self, predicate: PlayerPredicate) -> int:
        """Number of players matching predicate."""

    @abstractmethod
    def create(self, request: PlayerCreateRequest) -> Player:
        """Persist a new player under a freshly assigned id."""

    @abstractmethod
    def get(self, player_id: int) -> Optional[Player]:
        """The player with player_id, or None."""

    @abstractmethod
    def update(self, player_id: int, changes: dict[str, Any]) -> Optional[Player]:
        """Merge changes into the stored player; None if it does not exist."""

    @abstractmethod
    def delete(self, player_id: int) -> None:
        """Remove the player if present. Missing ids are not an error."""


class InMemoryPlayerRepository(PlayerRepository):
    """
    Thread-safe dictionary-backed repository.

    Ids are drawn from a monotonically increasing counter starting at 1 and
    never reused, even after deletes.
    """

    def __init__(self, players: Optional[Iterable[Player]] = None):
        self._lock = threading.Lock()
        self._players: dict[int, Player] = {}
        for player in players or ():
            self._players[player.id] = player
        start = max(self._players, default=0) + 1
        self._ids = itertools.count(start)

    def _matching(self, predicate: PlayerPredicate) -> list[Player]:
        with self._lock:
            players = list(self._players.values())
        return [p for p in players if predicate.matches(p)]

    def fetch_page(
        self, predicate: PlayerPredicate, order: PlayerOrder, page: PageSpec
    ) -> list[Player]:
        return paginate(sort_players(self._matching(predicate), order), page)

    def count(self, predicate: PlayerPredicate) -> int:
        return len(self._matching(predicate))

    def create(self, request: PlayerCreateRequest) -> Player:
        with self._lock:
            player = build_player(next(self._ids), request)
            self._players[player.id] = player
        return player

    def get(self, player_id: int) -> Optional[Player]:
        with self._lock:
            return self._players.get(player_id)

    def update(self, player_id: int, changes: dict[str, Any]) -> Optional[Player]:
        with self._lock:
            existing = self._players.get(player_id)
            if existing is None:
                return None
            updated = merge_player(existing, changes)
            self._players[player_id] = updated
        return updated

    def delete(self, player_id: int) -> None:
        with self._lock:
            self._players.pop(player_id, None)

    def clear(self) -> None:
        """Drop every player and restart ids at 1."""
        with self._lock:
            self._players.clear()
            self._ids = itertools.count(1)
