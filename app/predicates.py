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
Composable player filters.

Each criterion of a PlayerCriteria is translated by its own ``filter_by_*``
function into a PlayerPredicate, or None when the criterion is absent. The
non-None predicates are ANDed together by ``combine``; an empty conjunction
matches every player.

Predicates are plain descriptors (field, operator, value). Storage backends
interpret them: the in-memory store calls ``matches`` directly, Firestore
pushes what it can into the query and evaluates the rest with ``matches``.

Example:
    >>> predicate = build_predicate(PlayerCriteria(min_experience=4000))
    >>> predicate.clauses
    (FieldPredicate(field='experience', op='>=', value=4000),)
"""

from dataclasses import dataclass
from typing import Any, Literal, Optional

from app.criteria import PlayerCriteria
from app.models import Player, Profession, Race, datetime_from_millis

Operator = Literal["contains", "==", ">=", "<="]


@dataclass(frozen=True)
class FieldPredicate:
    """A single test of one Player attribute against a value."""

    field: str
    op: Operator
    value: Any

    def matches(self, player: Player) -> bool:
        actual = getattr(player, self.field)
        if self.op == "contains":
            return actual is not None and self.value in actual
        if self.op == "==":
            return actual == self.value
        if self.op == ">=":
            return actual is not None and actual >= self.value
        if self.op == "<=":
            return actual is not None and actual <= self.value
        raise ValueError(f"Unsupported operator: {self.op}")


@dataclass(frozen=True)
class PlayerPredicate:
    """Conjunction of FieldPredicates. No clauses means match everything."""

    clauses: tuple[FieldPredicate, ...] = ()

    def __and__(self, other: "PlayerPredicate") -> "PlayerPredicate":
        return PlayerPredicate(self.clauses + other.clauses)

    @property
    def is_match_all(self) -> bool:
        return not self.clauses

    def matches(self, player: Player) -> bool:
        return all(clause.matches(player) for clause in self.clauses)


MATCH_ALL = PlayerPredicate()


def _single(field: str, op: Operator, value: Any) -> PlayerPredicate:
    return PlayerPredicate((FieldPredicate(field, op, value),))


def _range(field: str, low: Any, high: Any) -> Optional[PlayerPredicate]:
    # min > max is kept as-is and simply matches nothing
    clauses = []
    if low is not None:
        clauses.append(FieldPredicate(field, ">=", low))
    if high is not None:
        clauses.append(FieldPredicate(field, "<=", high))
    return PlayerPredicate(tuple(clauses)) if clauses else None


def filter_by_name(name: Optional[str]) -> Optional[PlayerPredicate]:
    """Case-sensitive substring match on name."""
    return _single("name", "contains", name) if name is not None else None


def filter_by_title(title: Optional[str]) -> Optional[PlayerPredicate]:
    """Case-sensitive substring match on title."""
    return _single("title", "contains", title) if title is not None else None


def filter_by_race(race: Optional[Race]) -> Optional[PlayerPredicate]:
    return _single("race", "==", race) if race is not None else None


def filter_by_profession(profession: Optional[Profession]) -> Optional[PlayerPredicate]:
    return _single("profession", "==", profession) if profession is not None else None


def filter_by_experience(
    min_experience: Optional[int], max_experience: Optional[int]
) -> Optional[PlayerPredicate]:
    """Inclusive experience bounds; either side may be omitted."""
    return _range("experience", min_experience, max_experience)


def filter_by_level(
    min_level: Optional[int], max_level: Optional[int]
) -> Optional[PlayerPredicate]:
    """Inclusive level bounds; either side may be omitted."""
    return _range("level", min_level, max_level)


def filter_by_birthday(
    after: Optional[int], before: Optional[int]
) -> Optional[PlayerPredicate]:
    """
    Inclusive birthday bounds given as milliseconds since the epoch.

    Bounds are converted to UTC datetimes so they compare against the
    stored birthday directly.
    """
    return _range(
        "birthday",
        datetime_from_millis(after) if after is not None else None,
        datetime_from_millis(before) if before is not None else None,
    )


def filter_by_banned(banned: Optional[bool]) -> Optional[PlayerPredicate]:
    """Equality on banned; an explicit False is a real filter."""
    return _single("banned", "==", banned) if banned is not None else None


def combine(*predicates: Optional[PlayerPredicate]) -> PlayerPredicate:
    """AND together every predicate that is not None."""
    result = MATCH_ALL
    for predicate in predicates:
        if predicate is not None:
            result = result & predicate
    return result


def build_predicate(criteria: PlayerCriteria) -> PlayerPredicate:
    """Translate a full PlayerCriteria into one conjunctive predicate."""
    return combine(
        filter_by_name(criteria.name),
        filter_by_title(criteria.title),
        filter_by_race(criteria.race),
        filter_by_profession(criteria.profession),
        filter_by_experience(criteria.min_experience, criteria.max_experience),
        filter_by_level(criteria.min_level, criteria.max_level),
        filter_by_birthday(criteria.after, criteria.before),
        filter_by_banned(criteria.banned),
    )
