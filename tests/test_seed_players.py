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
Tests for the seed_players script.
"""

import json
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from app.firestore import FirestorePlayerRepository
from app.models import Race
from app.repository import InMemoryPlayerRepository
from scripts import seed_players

SAMPLE_FILE = Path(__file__).resolve().parent.parent / "scripts" / "players.sample.json"


def player_payload(name, race="HUMAN"):
    return {
        "name": name,
        "title": "",
        "race": race,
        "profession": "WARRIOR",
        "birthday": 1104537600000,
        "experience": 5000,
    }


@pytest.fixture
def seed_file(tmp_path):
    path = tmp_path / "players.json"
    path.write_text(
        json.dumps([player_payload("Ivan"), player_payload("Legolas", race="ELF")]),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def mock_firestore_client():
    """Create a mock Firestore client with separate players/counters collections."""
    mock_client = Mock()
    players_ref = Mock(name="players")
    counters_ref = Mock(name="counters")
    mock_transaction = Mock()

    # Configure transaction mock to work with @firestore.transactional decorator
    mock_transaction._max_attempts = 5
    mock_transaction._id = None

    collections = {"players": players_ref, "counters": counters_ref}
    mock_client.collection.side_effect = lambda name: collections[name]
    mock_client.transaction.return_value = mock_transaction

    sequence_snapshot = Mock()
    sequence_snapshot.exists = False
    counters_ref.document.return_value.get.return_value = sequence_snapshot

    return mock_client


class TestLoadRequests:
    def test_sample_file_is_valid(self):
        requests = seed_players.load_requests(SAMPLE_FILE)
        assert len(requests) == 5

    def test_parses_entries(self, seed_file):
        requests = seed_players.load_requests(seed_file)
        assert [r.name for r in requests] == ["Ivan", "Legolas"]
        assert requests[1].race is Race.ELF

    def test_rejects_non_array(self, tmp_path):
        path = tmp_path / "players.json"
        path.write_text(json.dumps(player_payload("Ivan")), encoding="utf-8")
        with pytest.raises(ValueError, match="JSON array"):
            seed_players.load_requests(path)

    def test_rejects_invalid_entry(self, tmp_path):
        path = tmp_path / "players.json"
        bad = player_payload("Ivan")
        bad["experience"] = -1
        path.write_text(json.dumps([player_payload("Boris"), bad]), encoding="utf-8")
        with pytest.raises(ValueError, match="Entry 1"):
            seed_players.load_requests(path)


class TestMain:
    def test_dry_run_writes_nothing(self, seed_file):
        with patch.object(seed_players, "get_player_repository") as get_repository:
            exit_code = seed_players.main([str(seed_file), "--dry-run"])

        assert exit_code == 0
        get_repository.assert_not_called()

    def test_invalid_file_exits_nonzero(self, tmp_path):
        path = tmp_path / "players.json"
        path.write_text("{}", encoding="utf-8")
        with patch.object(seed_players, "get_player_repository") as get_repository:
            exit_code = seed_players.main([str(path)])

        assert exit_code == 1
        get_repository.assert_not_called()

    def test_missing_file_exits_nonzero(self, tmp_path):
        assert seed_players.main([str(tmp_path / "absent.json")]) == 1

    def test_creates_players_in_configured_repository(self, seed_file):
        repository = InMemoryPlayerRepository()
        with patch.object(seed_players, "get_player_repository", return_value=repository):
            exit_code = seed_players.main([str(seed_file)])

        assert exit_code == 0
        assert repository.get(1).name == "Ivan"
        assert repository.get(2).name == "Legolas"

    def test_creates_players_in_firestore(self, seed_file, mock_firestore_client):
        repository = FirestorePlayerRepository(mock_firestore_client)
        with patch.object(seed_players, "get_player_repository", return_value=repository):
            exit_code = seed_players.main([str(seed_file)])

        assert exit_code == 0
        transaction = mock_firestore_client.transaction.return_value
        # sequence document and player document per entry
        assert transaction.set.call_count == 4
