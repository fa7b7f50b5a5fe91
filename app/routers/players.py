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
Players router.

Provides filtered listing and counting plus create/read/update/delete for
player records under /rest/players.
"""

from fastapi import APIRouter, HTTPException, Response, status

from app.dependencies import (
    PageSpecDep,
    PlayerCriteriaDep,
    PlayerOrderDep,
    PlayerRepositoryDep,
)
from app.logging import get_logger
from app.models import Player, PlayerCreateRequest, PlayerUpdateRequest
from app.predicates import build_predicate

logger = get_logger(__name__)

router = APIRouter(
    prefix="/rest/players",
    tags=["players"],
)


def _require_positive_id(player_id: int, operation: str) -> None:
    if player_id <= 0:
        logger.warning(f"{operation}_invalid_id", player_id=player_id)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Player id must be a positive integer, got {player_id}",
        )


@router.get(
    "",
    response_model=list[Player],
    status_code=status.HTTP_200_OK,
    summary="List players",
    description=(
        "Return one page of players matching every supplied filter.\n\n"
        "**Filters** (all optional, combined with AND):\n"
        "- `name`, `title`: case-sensitive substring\n"
        "- `race`, `profession`: exact enum member name\n"
        "- `minExperience`/`maxExperience`, `minLevel`/`maxLevel`: inclusive bounds\n"
        "- `after`/`before`: inclusive birthday bounds, ms since epoch\n"
        "- `banned`: true or false; omit to ignore the flag\n\n"
        "**Paging and order:**\n"
        "- `pageNumber` (default 0), `pageSize` (default 3)\n"
        "- `order`: ID, NAME, EXPERIENCE, BIRTHDAY or LEVEL (default ID), ascending\n\n"
        "**Error Responses:**\n"
        "- `400`: Unknown enum/order value, negative page, non-positive size, "
        "or a non-numeric numeric parameter\n"
        "- `500`: Storage failure"
    ),
)
async def list_players(
    repository: PlayerRepositoryDep,
    criteria: PlayerCriteriaDep,
    page: PageSpecDep,
    order: PlayerOrderDep,
) -> list[Player]:
    """
    List players.

    This endpoint:
    1. Builds one conjunctive predicate from the supplied filters
    2. Sorts the matches ascending by the resolved order field
    3. Returns the requested page
    """
    logger.info(
        "list_players_attempt",
        filtered=not criteria.is_empty(),
        order=order.name,
        page_number=page.page_number,
        page_size=page.page_size,
    )

    predicate = build_predicate(criteria)
    try:
        players = repository.fetch_page(predicate, order, page)
    except Exception as e:
        logger.error(
            "list_players_error",
            error_type=type(e).__name__,
            error_message=str(e),
            exc_info=True,
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list players due to an internal error",
        )

    logger.info("list_players_success", count=len(players))
    return players


@router.get(
    "/count",
    response_model=int,
    status_code=status.HTTP_200_OK,
    summary="Count players",
    description=(
        "Return the number of players matching every supplied filter. "
        "Accepts the same filters as `GET /rest/players`; paging and order "
        "parameters are not used.\n\n"
        "**Error Responses:**\n"
        "- `400`: Unknown enum value or a non-numeric numeric parameter\n"
        "- `500`: Storage failure"
    ),
)
async def count_players(
    repository: PlayerRepositoryDep,
    criteria: PlayerCriteriaDep,
) -> int:
    logger.info("count_players_attempt", filtered=not criteria.is_empty())

    predicate = build_predicate(criteria)
    try:
        total = repository.count(predicate)
    except Exception as e:
        logger.error(
            "count_players_error",
            error_type=type(e).__name__,
            error_message=str(e),
            exc_info=True,
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to count players due to an internal error",
        )

    logger.info("count_players_success", count=total)
    return total


@router.post(
    "",
    response_model=Player,
    status_code=status.HTTP_200_OK,
    summary="Create a player",
    description=(
        "Create a player and assign it a new id. `level` and `untilNextLevel` "
        "are derived from `experience`.\n\n"
        "**Error Responses:**\n"
        "- `400`: Missing field, name not 1-12 characters, title over 30 "
        "characters, experience outside 0-10,000,000, negative birthday, "
        "or unknown race/profession\n"
        "- `500`: Storage failure"
    ),
)
async def create_player(
    request: PlayerCreateRequest,
    repository: PlayerRepositoryDep,
) -> Player:
    logger.info(
        "create_player_attempt",
        name=request.name,
        race=request.race.value,
        profession=request.profession.value,
    )

    try:
        player = repository.create(request)
    except Exception as e:
        logger.error(
            "create_player_error",
            error_type=type(e).__name__,
            error_message=str(e),
            exc_info=True,
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create player: {str(e)}",
        )

    logger.info("create_player_success", player_id=player.id, name=player.name)
    return player


@router.get(
    "/{player_id}",
    response_model=Player,
    status_code=status.HTTP_200_OK,
    summary="Get a player by id",
    description=(
        "**Error Responses:**\n"
        "- `400`: id is not a positive integer\n"
        "- `404`: Player not found\n"
        "- `500`: Storage failure"
    ),
)
async def get_player(player_id: int, repository: PlayerRepositoryDep) -> Player:
    _require_positive_id(player_id, "get_player")

    logger.info("get_player_attempt", player_id=player_id)

    try:
        player = repository.get(player_id)
    except Exception as e:
        logger.error(
            "get_player_error",
            player_id=player_id,
            error_type=type(e).__name__,
            error_message=str(e),
            exc_info=True,
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve player due to an internal error",
        )

    if player is None:
        logger.warning("get_player_not_found", player_id=player_id)
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Player with ID '{player_id}' not found",
        )

    logger.info("get_player_success", player_id=player_id)
    return player


@router.post(
    "/{player_id}",
    response_model=Player,
    status_code=status.HTTP_200_OK,
    summary="Update a player",
    description=(
        "Overwrite the supplied fields of a player; omitted or null fields keep "
        "their value. The id never changes and level is recomputed.\n\n"
        "**Error Responses:**\n"
        "- `400`: id is not a positive integer, or a supplied field is out of bounds\n"
        "- `404`: Player not found\n"
        "- `500`: Storage failure"
    ),
)
async def update_player(
    player_id: int,
    request: PlayerUpdateRequest,
    repository: PlayerRepositoryDep,
) -> Player:
    _require_positive_id(player_id, "update_player")

    changes = request.changes()
    logger.info("update_player_attempt", player_id=player_id, fields=sorted(changes))

    try:
        player = repository.update(player_id, changes)
    except Exception as e:
        logger.error(
            "update_player_error",
            player_id=player_id,
            error_type=type(e).__name__,
            error_message=str(e),
            exc_info=True,
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update player: {str(e)}",
        )

    if player is None:
        logger.warning("update_player_not_found", player_id=player_id)
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Player with ID '{player_id}' not found",
        )

    logger.info("update_player_success", player_id=player_id)
    return player


@router.delete(
    "/{player_id}",
    status_code=status.HTTP_200_OK,
    response_class=Response,
    summary="Delete a player",
    description=(
        "Remove a player. Idempotent: returns 200 with an empty body for any "
        "integer ID, whether or not the player existed.\n\n"
        "**Error Responses:**\n"
        "- `400`: Player ID is not an integer\n"
        "- `500`: Storage failure"
    ),
)
async def delete_player(player_id: int, repository: PlayerRepositoryDep) -> Response:
    logger.info("delete_player_attempt", player_id=player_id)

    try:
        repository.delete(player_id)
    except Exception as e:
        logger.error(
            "delete_player_error",
            player_id=player_id,
            error_type=type(e).__name__,
            error_message=str(e),
            exc_info=True,
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to delete player: {str(e)}",
        )

    logger.info("delete_player_success", player_id=player_id)
    return Response(status_code=status.HTTP_200_OK)
