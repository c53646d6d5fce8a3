import random
import uuid

from rulescraper.placeholders import PlaceholderResolver
from rulescraper.remapper import Remapper, assign, locate, remap
from rulescraper.result import MISSING
from rulescraper.rule_models import Mapping


def seeded_resolver(seed=7):
    return PlaceholderResolver(rng=random.Random(seed), clock=lambda: 1700000000.0)


# --- locate / assign ---

def test_locate_nested_keys_and_indexes():
    source = {"a": {"b": [{"c": 1}, {"c": 2}]}}
    assert locate(source, "a.b.1.c") == 2
    assert locate(source, "a.b[0].c") == 1
    assert locate(source, "a.b.#") == 2
    assert locate(source, "a.b.#.c") == [1, 2]
    assert locate(source, ".") is source
    assert locate(source, "") is source


def test_locate_missing_paths():
    source = {"a": [1, 2], "s": "text"}
    assert locate(source, "nope") is MISSING
    assert locate(source, "a.5") is MISSING
    assert locate(source, "a.x") is MISSING
    assert locate(source, "s.inner") is MISSING
    assert locate(source, "s.#") is MISSING


def test_locate_hash_skips_elements_without_the_key():
    source = {"items": [{"id": 1}, {"name": "x"}, {"id": 3}]}
    assert locate(source, "items.#.id") == [1, 3]


def test_assign_then_locate_round_trip():
    root = {}
    assign(root, "x.y.z", "v")
    assert root == {"x": {"y": {"z": "v"}}}
    assert locate(root, "x.y.z") == "v"


def test_assign_bracket_index_selects_one_element():
    root = assign({}, "a.b[1]", ["x", "y", "z"])
    assert root == {"a": {"b": "y"}}


def test_assign_bracket_out_of_range_stores_whole_value():
    assert assign({}, "a.b[9]", ["x", "y"]) == {"a": {"b": ["x", "y"]}}
    assert assign({}, "first[0]", "scalar") == {"first": "scalar"}


def test_assign_collision_leaves_root_unchanged():
    root = {"a": "already a string"}
    assert assign(root, "a.b", 1) == {"a": "already a string"}


# --- directives ---

def test_remap_moves_values_to_new_paths():
    source = {"items": ["1", "2"], "title": "Shop"}
    mappings = [
        Mapping(key="items", to="payload.ids"),
        Mapping(key="title", to="payload.meta.title"),
        Mapping(key="items", to="payload.first[0]"),
    ]
    assert remap(source, mappings) == {
        "payload": {"ids": ["1", "2"], "meta": {"title": "Shop"}, "first": "1"}
    }


def test_later_directive_wins():
    mappings = [Mapping(key="a", to="out"), Mapping(key="b", to="out")]
    assert remap({"a": 1, "b": 2}, mappings) == {"out": 2}


def test_collision_aborts_only_that_directive():
    mappings = [
        Mapping(key="a", to="out"),
        Mapping(key="b", to="out.nested"),
        Mapping(key="b", to="other"),
    ]
    assert remap({"a": "x", "b": "y"}, mappings) == {"out": "x", "other": "y"}


def test_missing_key_writes_null_and_empty_destination_is_skipped():
    mappings = [Mapping(key="absent", to="out"), Mapping(key="a", to="")]
    assert remap({"a": 1}, mappings) == {"out": None}


def test_whole_source_with_dot_key():
    assert remap({"a": 1}, [Mapping(key=".", to="copy")]) == {"copy": {"a": 1}}


def test_output_does_not_alias_source():
    source = {"items": [{"id": 1}]}
    out = remap(source, [Mapping(key="items", to="list")])
    out["list"][0]["id"] = 99
    assert source["items"][0]["id"] == 1


def test_is_array_wraps_scalars_and_record_values():
    source = {"one": "x", "rec": {"k1": "a", "k2": "b"}}
    mappings = [
        Mapping(key="one", to="ones", is_array=True),
        Mapping(key="rec", to="recs", is_array=True),
    ]
    assert remap(source, mappings) == {"ones": ["x"], "recs": ["a", "b"]}


def test_array_obj_map_builds_one_object_per_element():
    source = {"books": [{"title": "B1", "tags": ["t1"]}, {"title": "B2", "tags": []}]}
    mapping = Mapping.model_validate({
        "key": "books",
        "to": "payload.entries",
        "isArray": True,
        "arrayObjMap": [
            {"key": "title", "to": "name", "format": {"position": "{{index+1}}", "kind": "book"}},
            {"key": "tags", "to": "labels"},
        ],
    })
    result = remap(source, [mapping], resolver=seeded_resolver())
    assert result == {
        "payload": {
            "entries": [
                {"position": 1, "kind": "book", "name": "B1", "labels": ["t1"]},
                {"position": 2, "kind": "book", "name": "B2", "labels": []},
            ]
        }
    }


def test_format_templates_are_fresh_per_element():
    source = {"rows": ["a", "b", "c"]}
    mapping = Mapping(
        key="rows",
        to="out",
        array_obj_map=[Mapping(key=".", to="value", format={"id": "{{uuid}}", "meta": {"tags": []}})],
    )
    result = remap(source, [mapping], resolver=seeded_resolver())
    entries = result["out"]
    assert [e["value"] for e in entries] == ["a", "b", "c"]
    ids = [e["id"] for e in entries]
    assert len(set(ids)) == 3
    assert all(uuid.UUID(i).version == 4 for i in ids)

    entries[0]["meta"]["tags"].append("changed")
    assert entries[1]["meta"]["tags"] == []
    assert mapping.array_obj_map[0].format == {"id": "{{uuid}}", "meta": {"tags": []}}


def test_seeded_resolver_makes_remap_deterministic():
    source = {"rows": ["a", "b"]}
    mapping = Mapping(key="rows", to="out", array_obj_map=[Mapping(key=".", to="v", format={"id": "{{hex}}"})])
    first = remap(source, [mapping], resolver=seeded_resolver(3))
    second = remap(source, [mapping], resolver=seeded_resolver(3))
    assert first == second


def test_named_object_buckets():
    source = {"a": 1, "b": 2}
    mappings = [
        Mapping(key="a", to="value"),
        Mapping(object="extra", key="b", to="value"),
    ]
    root, buckets = Remapper().remap_with_objects(source, mappings)
    assert root == {"value": 1}
    assert buckets == {"extra": {"value": 2}}


def test_mapping_aliases_are_accepted():
    mapping = Mapping.model_validate({"key": "k", "to": "t", "isArray": True, "isObject": True})
    assert mapping.is_array and mapping.is_object
    same = Mapping(key="k", to="t", is_array=True)
    assert same.is_array
