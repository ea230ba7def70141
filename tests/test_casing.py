"""Tests for controller and action name casing."""

import pytest

from waymark._internal.casing import snake_case, studly_case


class TestStudlyCase:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("user", "User"),
            ("user-profile", "UserProfile"),
            ("user_profile", "UserProfile"),
            ("userProfile", "UserProfile"),
            ("api2", "Api2"),
        ],
    )
    def test_studly_case(self, name: str, expected: str) -> None:
        assert studly_case(name) == expected


class TestSnakeCase:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("show", "show"),
            ("show-all", "show_all"),
            ("showAll", "show_all"),
            ("show_all", "show_all"),
            ("Show All", "show_all"),
        ],
    )
    def test_snake_case(self, name: str, expected: str) -> None:
        assert snake_case(name) == expected
