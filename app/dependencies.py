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
FastAPI dependency injection providers.

Provides the player repository and the shared filter/paging/order query
parameters of the players endpoints.
"""

import threading
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Query, status

from app.config import get_settings
from app.criteria import (
    InvalidQueryError,
    PageSpec,
    PlayerCriteria,
    resolve_order,
)
from app.firestore import FirestorePlayerRepository, get_firestore_client
from app.logging import get_logger
from app.models import PlayerOrder, Profession, Race
from app.repository import InMemoryPlayerRepository, PlayerRepository

logger = get_logger(__name__)

_memory_repository: Optional[InMemoryPlayerRepository] = None
_memory_lock = threading.Lock()


def get_memory_repository() -> InMemoryPlayerRepository:
    """The process-wide in-memory repository, created on first use."""
    global _memory_repository
    if _memory_repository is None:
        with _memory_lock:
            if _memory_repository is None:
                _memory_repository = InMemoryPlayerRepository()
    return _memory_repository


def get_player_repository() -> PlayerRepository:
    """
    FastAPI dependency that provides the configured player repository.

    STORAGE_BACKEND=memory (default) uses a process-local store;
    STORAGE_BACKEND=firestore uses the lazily created Firestore client.

    Example:
        @router.get("/example")
        async def example_route(repository: PlayerRepositoryDep):
            return repository.count(MATCH_ALL)
    """
    if get_settings().storage_backend == "firestore":
        return FirestorePlayerRepository(get_firestore_client())
    return get_memory_repository()


def _bad_request(exc: InvalidQueryError) -> HTTPException:
    logger.warning("invalid_query_parameter", parameter=exc.parameter, reason=exc.message)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def _members(enum_cls) -> str:
    return ", ".join(member.name for member in enum_cls)


def get_player_criteria(
    name: Optional[str] = Query(None, description="Substring of the player name (case-sensitive)"),
    title: Optional[str] = Query(None, description="Substring of the player title (case-sensitive)"),
    race: Optional[str] = Query(None, description=f"One of: {_members(Race)}"),
    profession: Optional[str] = Query(None, description=f"One of: {_members(Profession)}"),
    after: Optional[int] = Query(None, description="Earliest birthday, ms since epoch (inclusive)"),
    before: Optional[int] = Query(None, description="Latest birthday, ms since epoch (inclusive)"),
    banned: Optional[bool] = Query(None, description="Only banned (true) or only not banned (false)"),
    min_experience: Optional[int] = Query(None, alias="minExperience"),
    max_experience: Optional[int] = Query(None, alias="maxExperience"),
    min_level: Optional[int] = Query(None, alias="minLevel"),
    max_level: Optional[int] = Query(None, alias="maxLevel"),
) -> PlayerCriteria:
    """Parse the filter query parameters shared by list and count."""
    try:
        return PlayerCriteria.from_params(
            name=name,
            title=title,
            race=race,
            profession=profession,
            min_experience=min_experience,
            max_experience=max_experience,
            min_level=min_level,
            max_level=max_level,
            after=after,
            before=before,
            banned=banned,
        )
    except InvalidQueryError as exc:
        raise _bad_request(exc)


def get_page_spec(
    page_number: Optional[int] = Query(None, alias="pageNumber", description="Zero-based page (default 0)"),
    page_size: Optional[int] = Query(None, alias="pageSize", description="Players per page (default 3)"),
) -> PageSpec:
    """Parse pageNumber/pageSize; defaults apply only when a parameter is absent."""
    try:
        return PageSpec.from_params(
            page_number,
            page_size,
            default_size=get_settings().players_default_page_size,
        )
    except InvalidQueryError as exc:
        raise _bad_request(exc)


def get_player_order(
    order: Optional[str] = Query(None, description=f"Sort field, ascending. One of: {_members(PlayerOrder)} (default ID)"),
) -> PlayerOrder:
    """Resolve the order query parameter."""
    try:
        return resolve_order(order)
    except InvalidQueryError as exc:
        raise _bad_request(exc)


# Type aliases for cleaner dependency injection
PlayerRepositoryDep = Annotated[PlayerRepository, Depends(get_player_repository)]
PlayerCriteriaDep = Annotated[PlayerCriteria, Depends(get_player_criteria)]
PageSpecDep = Annotated[PageSpec, Depends(get_page_spec)]
PlayerOrderDep = Annotated[PlayerOrder, Depends(get_player_order)]
