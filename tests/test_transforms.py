import logging

from rulescraper.rule_models import Transform
from rulescraper.transforms import apply_transform, apply_transforms, default_transforms


def test_default_transform_upgrades_protocol_relative_links():
    assert apply_transform("//cdn.example.com/a.png", default_transforms()) == ["https://cdn.example.com/a.png"]


def test_non_matching_value_is_unchanged():
    assert apply_transform("https://example.com/a.png", default_transforms()) == ["https://example.com/a.png"]


def test_replace_is_idempotent_once_applied():
    once = apply_transform("//x", default_transforms())
    assert apply_transform(once[0], default_transforms()) == once


def test_split_drops_empty_fragments():
    transforms = [Transform(match=r"\s*\|\s*", split=True)]
    assert apply_transform("a | b || c |", transforms) == ["a", "b", "c"]


def test_replace_then_split_in_order():
    transforms = [
        Transform(match=";", replace=","),
        Transform(match=",", split=True),
    ]
    assert apply_transform("x;y,z", transforms) == ["x", "y", "z"]


def test_lists_are_transformed_element_wise():
    transforms = [Transform(match=",", split=True)]
    assert apply_transforms(["a,b", "c", "d,e"], transforms) == ["a", "b", "c", "d", "e"]


def test_invalid_pattern_is_skipped():
    transforms = [Transform(match="(unclosed", replace="x"), Transform(match="a", replace="b")]
    assert apply_transform("aaa", transforms) == ["bbb"]


def test_named_and_braced_group_references():
    transforms = [Transform(match=r"(?P<word>\w+)-(\d+)", replace="${2}:${word}")]
    assert apply_transform("item-42", transforms) == ["42:item"]


def test_dollar_escape_and_backslash_are_literal():
    transforms = [Transform(match=r"(\d+)", replace=r"$$$1\n")]
    assert apply_transform("cost 5", transforms) == ["cost $5\\n"]


def test_unknown_groups_expand_to_empty():
    assert apply_transform("abc", [Transform(match=r"(a)", replace="$2")]) == ["bc"]
    transforms = [Transform(match=r"(\d+)", replace="${2}")]
    assert apply_transform("price: 10 USD", transforms) == ["price:  USD"]
    assert apply_transform("k=v", [Transform(match=r"(?P<k>\w)=", replace="${missing}")]) == ["v"]


def test_unbraced_named_references():
    transforms = [Transform(match=r"(?P<y>\d+)-(?P<m>\d+)", replace="$m/$y")]
    assert apply_transforms("2024-05", transforms) == ["05/2024"]


def test_unbraced_reference_takes_longest_name():
    # "$1x" names group "1x", which does not exist
    assert apply_transform("ab", [Transform(match=r"(a)", replace="$1x")]) == ["b"]
    assert apply_transform("ab", [Transform(match=r"(a)", replace="${1}x")]) == ["axb"]


def test_lone_dollar_is_literal():
    assert apply_transform("5", [Transform(match=r"(\d)", replace="$ $1")]) == ["$ 5"]


def test_invalid_pattern_is_logged_every_time():
    records = []
    handler = logging.Handler()
    handler.emit = records.append
    module_logger = logging.getLogger("rulescraper.transforms")
    module_logger.addHandler(handler)
    try:
        transforms = [Transform(match="[broken", replace="x")]
        assert apply_transform("one", transforms) == ["one"]
        assert apply_transform("two", transforms) == ["two"]
    finally:
        module_logger.removeHandler(handler)
    assert len([r for r in records if "[broken" in r.getMessage()]) == 2


def test_non_string_and_empty_values_pass_through():
    transforms = [Transform(match=".", replace="x")]
    assert apply_transform(None, transforms) == [None]
    assert apply_transform({"a": 1}, transforms) == [{"a": 1}]
    assert apply_transform("", transforms) == [""]


def test_integers_are_treated_as_text():
    transforms = [Transform(match="0", replace="9")]
    assert apply_transform(100, transforms) == ["199"]


def test_no_transforms_returns_value():
    assert apply_transform("abc", []) == ["abc"]
