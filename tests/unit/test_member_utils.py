"""Unit tests for display-name parsing."""

import pytest
from libs.common.member_utils import parse_display_name, title_case


@pytest.mark.unit
class TestParseDisplayName:
    def test_last_comma_first(self):
        assert parse_display_name("DOE, JANE") == ("Jane", "Doe")

    def test_first_last(self):
        assert parse_display_name("jane doe") == ("Jane", "Doe")

    def test_multi_word_last_name_without_comma(self):
        # Everything after the first token is the last name
        assert parse_display_name("Mary Ann Smith") == ("Mary", "Ann Smith")

    def test_multi_word_with_comma(self):
        assert parse_display_name("VAN DER BERG, ANNA MARIE") == (
            "Anna Marie",
            "Van Der Berg",
        )

    def test_single_token(self):
        assert parse_display_name("Cher") == ("Cher", "")

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_empty(self, value):
        assert parse_display_name(value) == ("", "")

    def test_title_case_hyphenated(self):
        assert title_case("MARY-KATE O'NEIL") == "Mary-Kate O'Neil"
