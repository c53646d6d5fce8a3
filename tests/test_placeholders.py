import base64
import random
import uuid

from rulescraper.placeholders import PlaceholderResolver, has_placeholders


def make_resolver(seed=1):
    return PlaceholderResolver(rng=random.Random(seed), clock=lambda: 1700000000.5)


def test_has_placeholders():
    assert has_placeholders("images/{{uuid}}")
    assert not has_placeholders("images/plain")


def test_text_without_tokens_is_returned_unchanged():
    assert make_resolver().resolve("plain/dir") == "plain/dir"


def test_uuid_is_version_4():
    value = make_resolver().resolve("{{uuid}}")
    assert uuid.UUID(value).version == 4


def test_hex_and_base64_lengths():
    resolver = make_resolver()
    assert len(resolver.resolve("{{hex}}")) == 32
    encoded = resolver.resolve("{{base64}}")
    assert len(encoded) == 24
    assert len(base64.b64decode(encoded)) == 18


def test_unix_and_index():
    assert make_resolver().resolve("out/{{unix}}/{{index}}", index=4) == "out/1700000000/4"


def test_each_occurrence_is_fresh():
    value = make_resolver().resolve("{{hex}}-{{hex}}")
    left, right = value.split("-")
    assert left != right


def test_seeded_resolution_is_deterministic():
    assert make_resolver(9).resolve("{{uuid}}/{{base64}}") == make_resolver(9).resolve("{{uuid}}/{{base64}}")


def test_typed_format_values():
    resolver = make_resolver()
    assert resolver.resolve_value("{{unix}}") == 1700000000
    assert resolver.resolve_value("{{time}}") == "2023-11-14T22:13:20.500000+00:00"
    assert resolver.resolve_value("{{index}}", index=2) == 2
    assert resolver.resolve_value("{{index+1}}", index=2) == 3
    assert resolver.resolve_value("item-{{index}}", index=2) == "item-2"
    assert resolver.resolve_value(5) == 5


def test_copy_template_is_deep():
    template = {"a": ["{{index}}", {"b": "{{index+1}}"}]}
    copied = make_resolver().copy_template(template, index=0)
    assert copied == {"a": [0, {"b": 1}]}
    assert template == {"a": ["{{index}}", {"b": "{{index+1}}"}]}
