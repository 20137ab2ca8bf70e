"""Tests for presence override parsing."""

from facetflow.pipeline.configuration import Configuration
from facetflow.pipeline.overrides import PresenceOverride, merge_overrides, parse_overrides


class TestParseOverrides:
    """Test suite for parse_overrides."""

    def test_empty(self) -> None:
        assert parse_overrides(None).overrides == {}
        assert parse_overrides("").overrides == {}
        assert parse_overrides([]).overrides == {}

    def test_plain_and_prefixed_keys(self) -> None:
        result = parse_overrides("archived, +export,-page")

        assert result.overrides == {
            "archived": PresenceOverride.PRESENT,
            "export": PresenceOverride.PRESENT,
            "page": PresenceOverride.ABSENT,
        }
        assert result.raw == "archived, +export,-page"

    def test_iterable_input(self) -> None:
        result = parse_overrides(["a", "-b"])

        assert result.get_override("a") is PresenceOverride.PRESENT
        assert result.get_override("b") is PresenceOverride.ABSENT
        assert result.get_override("c") is None
        assert result.raw == "a,-b"

    def test_blank_parts_and_bare_signs_ignored(self) -> None:
        assert parse_overrides("a,,-, +").overrides == {"a": PresenceOverride.PRESENT}

    def test_last_mention_wins(self) -> None:
        assert parse_overrides("a,-a").get_override("a") is PresenceOverride.ABSENT

    def test_as_params(self) -> None:
        assert parse_overrides("archived,-page").as_params() == {"archived": True, "page": None}


class TestMergeOverrides:
    """Test suite for merge_overrides."""

    def test_presence_keys_over_params(self) -> None:
        assert merge_overrides({"a": "x", "b": 1}, ["a"]) == {"a": True, "b": 1}

    def test_extra_over_presence_keys(self) -> None:
        assert merge_overrides({}, ["a"], {"a": "x"}) == {"a": "x"}

    def test_none_params(self) -> None:
        assert merge_overrides(None) == {}

    def test_input_not_mutated(self) -> None:
        params = {"a": 1}
        merge_overrides(params, ["b"])

        assert params == {"a": 1}


class TestAbsentOverrideMasksDefault:
    """An absent override hides a default for that key."""

    def test_masks_default(self) -> None:
        config = Configuration(subject=lambda session, _: [], defaults={"page": 1})
        config.query("page")(lambda session, page: session.subject + [page])

        assert config.resolve({}) == [1]
        assert config.resolve({}, extra=parse_overrides("-page").as_params()) == []
