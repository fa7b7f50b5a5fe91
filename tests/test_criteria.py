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
Tests for query parameter parsing: criteria, sort order and paging.
"""

import pytest

from app.criteria import (
    MAX_EPOCH_MILLIS,
    InvalidQueryError,
    PageSpec,
    PlayerCriteria,
    paginate,
    parse_enum,
    resolve_order,
)
from app.models import PlayerOrder, Profession, Race


class TestParseEnum:
    def test_member_name(self):
        assert parse_enum(Race, "HOBBIT", "race") is Race.HOBBIT

    def test_absent(self):
        assert parse_enum(Race, None, "race") is None

    def test_unknown_value_lists_members(self):
        with pytest.raises(InvalidQueryError) as exc_info:
            parse_enum(Race, "WIZARD", "race")
        assert exc_info.value.parameter == "race"
        assert "HUMAN" in exc_info.value.message

    def test_names_are_case_sensitive(self):
        with pytest.raises(InvalidQueryError):
            parse_enum(Profession, "warrior", "profession")


class TestPlayerCriteria:
    def test_from_params_parses_enums(self):
        criteria = PlayerCriteria.from_params(race="ELF", profession="DRUID")
        assert criteria.race is Race.ELF
        assert criteria.profession is Profession.DRUID

    def test_from_params_rejects_unknown_profession(self):
        with pytest.raises(InvalidQueryError) as exc_info:
            PlayerCriteria.from_params(profession="BARD")
        assert exc_info.value.parameter == "profession"

    def test_is_empty(self):
        assert PlayerCriteria().is_empty()
        assert not PlayerCriteria(banned=False).is_empty()
        assert not PlayerCriteria(name="").is_empty()

    def test_criteria_are_immutable(self):
        criteria = PlayerCriteria(name="Ivan")
        with pytest.raises(AttributeError):
            criteria.name = "Other"

    def test_out_of_range_timestamp_rejected(self):
        with pytest.raises(InvalidQueryError) as exc_info:
            PlayerCriteria(before=MAX_EPOCH_MILLIS + 1)
        assert exc_info.value.parameter == "before"


class TestResolveOrder:
    def test_default_is_id(self):
        assert resolve_order(None) is PlayerOrder.ID

    @pytest.mark.parametrize(
        "key,field",
        [
            ("ID", "id"),
            ("NAME", "name"),
            ("EXPERIENCE", "experience"),
            ("BIRTHDAY", "birthday"),
            ("LEVEL", "level"),
        ],
    )
    def test_members_resolve_to_fields(self, key, field):
        assert resolve_order(key).field_name == field

    def test_unknown_key_fails(self):
        with pytest.raises(InvalidQueryError) as exc_info:
            resolve_order("TITLE")
        assert exc_info.value.parameter == "order"


class TestPageSpec:
    def test_defaults_when_absent(self):
        page = PageSpec.from_params(None, None)
        assert (page.page_number, page.page_size) == (0, 3)

    def test_configured_default_size(self):
        assert PageSpec.from_params(None, None, default_size=10).page_size == 10

    def test_present_values_win(self):
        page = PageSpec.from_params(2, 5)
        assert page.offset == 10
        assert page.limit == 5

    def test_negative_page_rejected(self):
        with pytest.raises(InvalidQueryError) as exc_info:
            PageSpec.from_params(-1, None)
        assert exc_info.value.parameter == "pageNumber"

    @pytest.mark.parametrize("size", [0, -3])
    def test_non_positive_size_rejected(self, size):
        # present-but-invalid never falls back to the default
        with pytest.raises(InvalidQueryError) as exc_info:
            PageSpec.from_params(None, size)
        assert exc_info.value.parameter == "pageSize"


class TestPaginate:
    def test_selects_window(self):
        assert paginate(list(range(10)), PageSpec(1, 3)) == [3, 4, 5]

    def test_page_past_end_is_empty(self):
        assert paginate(list(range(4)), PageSpec(5, 3)) == []

    @pytest.mark.parametrize("total", [0, 1, 7, 9, 10])
    @pytest.mark.parametrize("size", [1, 3, 4])
    def test_pages_cover_all_items_once(self, total, size):
        items = list(range(total))
        collected = []
        page_number = 0
        while True:
            chunk = paginate(items, PageSpec(page_number, size))
            assert len(chunk) <= size
            if not chunk:
                break
            collected.extend(chunk)
            page_number += 1
        assert collected == items
