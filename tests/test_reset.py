import pytest
import yaml

from composeloader.reset import ResetProcessor, parse_documents, path_matches


def test_reset_removes_entry():
    base = {"name": "test-reset", "networks": {"test": {"name": "test", "external": True}}}
    [(document, processor)] = list(parse_documents("networks:\n  test: !reset {}\n"))
    assert document == {"networks": {}}
    assert processor.paths == ["networks.test"]
    processor.apply(base)
    assert base == {"name": "test-reset", "networks": {}}


def test_override_replaces_entry():
    base = {"name": "test-override", "networks": {"test": {"name": "test", "external": True}}}
    [(document, processor)] = list(parse_documents("networks:\n  test: !override {}\n"))
    assert document == {"networks": {"test": {}}}
    assert processor.paths == ["networks.test"]
    processor.apply(base)
    assert base == {"name": "test-override", "networks": {}}


def test_override_scalars_keep_their_types():
    [(document, processor)] = list(parse_documents("a: !override 5\nb: !override '5'\n"))
    assert document == {"a": 5, "b": "5"}
    assert processor.paths == ["a", "b"]


def test_reset_in_sequence_removes_item():
    [(document, processor)] = list(parse_documents("volumes:\n  - a\n  - !reset b\n  - c\n"))
    assert document == {"volumes": ["a", "c"]}
    assert processor.paths == ["volumes.1"]


def test_reset_at_top_level_gives_no_document():
    [(document, processor)] = list(parse_documents("!reset {}\n"))
    assert document is None
    assert processor.paths == [""]


def test_multiple_documents_have_their_own_processor():
    source = "a: !reset 1\nb: 2\n---\nc: !reset 3\nd: 4\n"
    documents = list(parse_documents(source))
    assert [doc for doc, _ in documents] == [{"b": 2}, {"d": 4}]
    assert [proc.paths for _, proc in documents] == [["a"], ["c"]]


def test_merge_key_segment_is_removed_from_paths():
    source = "svc:\n  <<: {x: !reset 1, y: 2}\n  z: 3\n"
    [(document, processor)] = list(parse_documents(source))
    assert document == {"svc": {"y": 2, "z": 3}}
    assert processor.paths == ["svc.x"]


def test_alias_is_followed():
    [(document, processor)] = list(parse_documents("base: &b {k: 1}\nuse: *b\n"))
    assert document == {"base": {"k": 1}, "use": {"k": 1}}
    assert processor.paths == []


def test_empty_source_yields_nothing():
    assert list(parse_documents("")) == []


def test_invalid_yaml_raises():
    with pytest.raises(yaml.YAMLError):
        list(parse_documents("a: [1, 2\n"))


def test_apply_with_wildcard_pattern():
    processor = ResetProcessor(paths=["services.*.volumes"])
    target = {"services": {"a": {"volumes": [1], "image": "x"}, "b": {"volumes": []}}}
    processor.apply(target)
    assert target == {"services": {"a": {"image": "x"}, "b": {}}}


def test_apply_does_not_remove_sequence_items():
    processor = ResetProcessor(paths=["items.[0]"])
    target = {"items": [1, 2]}
    processor.apply(target)
    assert target == {"items": [1, 2]}


def test_apply_descends_into_sequences():
    processor = ResetProcessor(paths=["items.[1].x"])
    target = {"items": [{"x": 1}, {"x": 2, "y": 3}]}
    processor.apply(target)
    assert target == {"items": [{"x": 1}, {"y": 3}]}


@pytest.mark.parametrize(
    "path, pattern, expected",
    [
        ("a.b", "a.b", True),
        ("a.b", "a.*", True),
        ("a.b", "*.b", True),
        ("a.b", "a.c", False),
        ("a.b.c", "a.b", False),
        ("a", "a.b", False),
    ],
)
def test_path_matches(path, pattern, expected):
    assert path_matches(path, pattern) is expected