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
Tests for the Firestore-backed player repository.

The Firestore client is mocked; tests verify which clauses are pushed to
Firestore, which are evaluated in-process, and how documents are written.
"""

from unittest.mock import Mock

import pytest

from app.criteria import PageSpec, PlayerCriteria
from app.firestore import FirestorePlayerRepository, split_predicate
from app.models import (
    PlayerCreateRequest,
    PlayerOrder,
    Race,
    build_player,
    player_to_firestore,
)
from app.predicates import MATCH_ALL, build_predicate


def make_player(player_id, name, race="HUMAN", banned=False, experience=5000):
    return build_player(
        player_id,
        PlayerCreateRequest.model_validate(
            {
                "name": name,
                "title": "",
                "race": race,
                "profession": "WARRIOR",
                "birthday": 1104537600000,
                "banned": banned,
                "experience": experience,
            }
        ),
    )


def make_doc(player):
    doc = Mock()
    doc.id = str(player.id)
    doc.exists = True
    doc.to_dict.return_value = player_to_firestore(player)
    return doc


@pytest.fixture
def mock_firestore_client():
    """Create a mock Firestore client with separate players/counters collections."""
    mock_client = Mock()
    players_ref = Mock(name="players")
    counters_ref = Mock(name="counters")
    mock_query = Mock(name="query")
    mock_transaction = Mock()

    # Configure transaction mock to work with @firestore.transactional decorator
    mock_transaction._max_attempts = 5
    mock_transaction._id = None

    collections = {"players": players_ref, "counters": counters_ref}
    mock_client.collection.side_effect = lambda name: collections[name]
    mock_client.transaction.return_value = mock_transaction

    players_ref.where.return_value = mock_query
    mock_query.where.return_value = mock_query
    players_ref.stream.return_value = []
    mock_query.stream.return_value = []

    return mock_client


@pytest.fixture
def players_ref(mock_firestore_client):
    return mock_firestore_client.collection("players")


@pytest.fixture
def counters_ref(mock_firestore_client):
    return mock_firestore_client.collection("counters")


@pytest.fixture
def repository(mock_firestore_client):
    return FirestorePlayerRepository(mock_firestore_client)


class TestSplitPredicate:
    def test_equality_on_enum_and_flag_fields_is_pushed(self):
        predicate = build_predicate(
            PlayerCriteria(name="Iv", race=Race.HUMAN, banned=False, min_experience=10)
        )
        pushed, residual = split_predicate(predicate)
        assert [(c.field, c.op) for c in pushed] == [("race", "=="), ("banned", "==")]
        assert [(c.field, c.op) for c in residual.clauses] == [
            ("name", "contains"),
            ("experience", ">="),
        ]

    def test_match_all(self):
        pushed, residual = split_predicate(MATCH_ALL)
        assert pushed == []
        assert residual.is_match_all


class TestFetchPage:
    def test_pushes_equality_and_filters_rest_in_process(self, repository, players_ref):
        mock_query = players_ref.where.return_value
        mock_query.stream.return_value = [
            make_doc(make_player(1, "Ivan")),
            make_doc(make_player(2, "Boris")),
            make_doc(make_player(3, "Ivanna")),
        ]
        predicate = build_predicate(PlayerCriteria(name="Ivan", race=Race.HUMAN))

        players = repository.fetch_page(predicate, PlayerOrder.ID, PageSpec(0, 10))

        players_ref.where.assert_called_once_with("race", "==", "HUMAN")
        assert [p.name for p in players] == ["Ivan", "Ivanna"]

    def test_sorts_and_pages(self, repository, players_ref):
        players_ref.stream.return_value = [
            make_doc(make_player(1, "Ivan", experience=900)),
            make_doc(make_player(2, "Boris", experience=100)),
            make_doc(make_player(3, "Anna", experience=500)),
        ]

        first = repository.fetch_page(MATCH_ALL, PlayerOrder.EXPERIENCE, PageSpec(0, 2))
        second = repository.fetch_page(MATCH_ALL, PlayerOrder.EXPERIENCE, PageSpec(1, 2))

        assert [p.id for p in first] == [2, 3]
        assert [p.id for p in second] == [1]
        players_ref.where.assert_not_called()


class TestCount:
    def test_pushed_only_uses_aggregation(self, repository, players_ref):
        mock_query = players_ref.where.return_value
        mock_query.count.return_value.get.return_value = [[Mock(value=7)]]

        total = repository.count(build_predicate(PlayerCriteria(banned=False)))

        assert total == 7
        players_ref.where.assert_called_once_with("banned", "==", False)
        mock_query.stream.assert_not_called()

    def test_match_all_counts_collection(self, repository, players_ref):
        players_ref.count.return_value.get.return_value = [[Mock(value=3)]]
        assert repository.count(MATCH_ALL) == 3

    def test_residual_counts_in_process(self, repository, players_ref):
        players_ref.stream.return_value = [
            make_doc(make_player(1, "Ivan", experience=5000)),
            make_doc(make_player(2, "Boris", experience=100)),
        ]
        predicate = build_predicate(PlayerCriteria(min_experience=1000))

        assert repository.count(predicate) == 1
        players_ref.count.assert_not_called()


class TestLifecycle:
    def test_get_existing(self, repository, players_ref):
        players_ref.document.return_value.get.return_value = make_doc(make_player(4, "Ivan"))

        player = repository.get(4)

        players_ref.document.assert_called_with("4")
        assert player.id == 4
        assert player.name == "Ivan"

    def test_get_missing(self, repository, players_ref):
        snapshot = Mock()
        snapshot.exists = False
        players_ref.document.return_value.get.return_value = snapshot

        assert repository.get(99) is None

    def test_create_assigns_next_id(
        self, repository, mock_firestore_client, players_ref, counters_ref
    ):
        sequence_snapshot = Mock()
        sequence_snapshot.exists = True
        sequence_snapshot.to_dict.return_value = {"next_id": 6}
        counters_ref.document.return_value.get.return_value = sequence_snapshot
        transaction = mock_firestore_client.transaction.return_value

        player = repository.create(
            PlayerCreateRequest.model_validate(
                {
                    "name": "Ivan",
                    "title": "",
                    "race": "HUMAN",
                    "profession": "WARRIOR",
                    "birthday": 0,
                    "experience": 5000,
                }
            )
        )

        assert player.id == 6
        assert player.level == 9
        players_ref.document.assert_called_with("6")
        transaction.set.assert_any_call(
            counters_ref.document.return_value, {"next_id": 7}
        )
        transaction.set.assert_any_call(
            players_ref.document.return_value, player_to_firestore(player)
        )

    def test_create_first_player_starts_at_one(
        self, repository, counters_ref
    ):
        sequence_snapshot = Mock()
        sequence_snapshot.exists = False
        counters_ref.document.return_value.get.return_value = sequence_snapshot

        player = repository.create(
            PlayerCreateRequest.model_validate(
                {
                    "name": "First",
                    "title": "",
                    "race": "ELF",
                    "profession": "DRUID",
                    "birthday": 0,
                    "experience": 0,
                }
            )
        )

        assert player.id == 1

    def test_update_merges_existing(self, repository, mock_firestore_client, players_ref):
        players_ref.document.return_value.get.return_value = make_doc(make_player(2, "Ivan"))
        transaction = mock_firestore_client.transaction.return_value

        updated = repository.update(2, {"title": "Reforged", "experience": 100})

        assert updated.id == 2
        assert updated.title == "Reforged"
        assert updated.level == 1
        transaction.set.assert_called_once_with(
            players_ref.document.return_value, player_to_firestore(updated)
        )

    def test_update_missing(self, repository, mock_firestore_client, players_ref):
        snapshot = Mock()
        snapshot.exists = False
        players_ref.document.return_value.get.return_value = snapshot

        assert repository.update(2, {"title": "x"}) is None
        mock_firestore_client.transaction.return_value.set.assert_not_called()

    def test_delete(self, repository, players_ref):
        repository.delete(5)
        players_ref.document.assert_called_with("5")
        players_ref.document.return_value.delete.assert_called_once_with()
