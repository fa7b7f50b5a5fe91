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
Request-level query inputs for player listing and counting.

- PlayerCriteria: the optional filter values of one request
- resolve_order: client sort key to PlayerOrder
- PageSpec / paginate: zero-based page selection

Enum-valued parameters arrive as raw strings and are parsed here so that an
unknown member fails with InvalidQueryError instead of being dropped.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Sequence, Type, TypeVar

from app.models import PlayerOrder, Profession, Race, millis_from_datetime

E = TypeVar("E", bound=Enum)
T = TypeVar("T")

MIN_EPOCH_MILLIS = millis_from_datetime(datetime.min.replace(tzinfo=timezone.utc))
MAX_EPOCH_MILLIS = millis_from_datetime(datetime.max.replace(tzinfo=timezone.utc))


class InvalidQueryError(ValueError):
    """A query parameter is present but unusable (HTTP 400)."""

    def __init__(self, parameter: str, message: str):
        super().__init__(f"{parameter}: {message}")
        self.parameter = parameter
        self.message = message


def parse_enum(enum_cls: Type[E], value: Optional[str], parameter: str) -> Optional[E]:
    """
    Parse an enum member by name.

    Returns None when the value is absent. Names are matched exactly.

    Raises:
        InvalidQueryError: If the value is not a member name of enum_cls
    """
    if value is None:
        return None
    try:
        return enum_cls[value]
    except KeyError:
        allowed = ", ".join(member.name for member in enum_cls)
        raise InvalidQueryError(
            parameter, f"'{value}' is not one of: {allowed}"
        ) from None


@dataclass(frozen=True)
class PlayerCriteria:
    """
    Optional filter values for one request.

    Every field is independently present (not None) or absent. ``banned`` is
    three-state: None means "any", False means "only not banned".
    ``after``/``before`` are milliseconds since the epoch.
    """

    name: Optional[str] = None
    title: Optional[str] = None
    race: Optional[Race] = None
    profession: Optional[Profession] = None
    min_experience: Optional[int] = None
    max_experience: Optional[int] = None
    min_level: Optional[int] = None
    max_level: Optional[int] = None
    after: Optional[int] = None
    before: Optional[int] = None
    banned: Optional[bool] = None

    def __post_init__(self) -> None:
        for parameter, value in (("after", self.after), ("before", self.before)):
            if value is not None and not MIN_EPOCH_MILLIS <= value <= MAX_EPOCH_MILLIS:
                raise InvalidQueryError(parameter, "timestamp is out of range")

    @classmethod
    def from_params(
        cls,
        *,
        name: Optional[str] = None,
        title: Optional[str] = None,
        race: Optional[str] = None,
        profession: Optional[str] = None,
        min_experience: Optional[int] = None,
        max_experience: Optional[int] = None,
        min_level: Optional[int] = None,
        max_level: Optional[int] = None,
        after: Optional[int] = None,
        before: Optional[int] = None,
        banned: Optional[bool] = None,
    ) -> "PlayerCriteria":
        """
        Build criteria from raw query parameters.

        Raises:
            InvalidQueryError: On an unknown race or profession
        """
        return cls(
            name=name,
            title=title,
            race=parse_enum(Race, race, "race"),
            profession=parse_enum(Profession, profession, "profession"),
            min_experience=min_experience,
            max_experience=max_experience,
            min_level=min_level,
            max_level=max_level,
            after=after,
            before=before,
            banned=banned,
        )

    def is_empty(self) -> bool:
        return all(value is None for value in vars(self).values())


def resolve_order(key: Optional[str]) -> PlayerOrder:
    """
    Resolve the ``order`` query parameter.

    An absent key sorts by id. Sorting is always ascending.

    Raises:
        InvalidQueryError: If key is not a PlayerOrder member name
    """
    return parse_enum(PlayerOrder, key, "order") or PlayerOrder.ID


@dataclass(frozen=True)
class PageSpec:
    """Zero-based page number and page size."""

    page_number: int = 0
    page_size: int = 3

    def __post_init__(self) -> None:
        if self.page_number < 0:
            raise InvalidQueryError("pageNumber", "must be greater than or equal to 0")
        if self.page_size < 1:
            raise InvalidQueryError("pageSize", "must be greater than 0")

    @classmethod
    def from_params(
        cls,
        page_number: Optional[int],
        page_size: Optional[int],
        *,
        default_size: int = 3,
    ) -> "PageSpec":
        """Defaults apply only to parameters that were not sent at all."""
        return cls(
            page_number=0 if page_number is None else page_number,
            page_size=default_size if page_size is None else page_size,
        )

    @property
    def offset(self) -> int:
        return self.page_number * self.page_size

    @property
    def limit(self) -> int:
        return self.page_size


def paginate(items: Sequence[T], page: PageSpec) -> list[T]:
    """Select ``items[offset:offset + limit]``."""
    return list(items[page.offset : page.offset + page.limit])
