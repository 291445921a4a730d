from snipq.models import Group, Snippet
from snipq.snippet_index import SnippetIndex


def _snippet(sid, trigger, group_id, template="x"):
    return Snippet(id=sid, name=sid, trigger=trigger, template=template, group_id=group_id)


def test_lookup_strips_prefix_from_snippet_triggers():
    groups = [Group(id="personal", name="Personal")]
    index = SnippetIndex.build(groups, [_snippet("hello", ":hello", "personal")], prefix=":")
    assert [s.id for s in index.lookup("hello")] == ["hello"]
    assert index.resolve("hello").id == "hello"
    assert len(index) == 1


def test_lookup_miss_returns_empty():
    index = SnippetIndex.build([Group(id="g", name="G")], [], prefix=":")
    assert index.lookup("nope") == ()
    assert index.resolve("nope") is None


def test_disabled_groups_are_not_eligible():
    groups = [Group(id="on", name="On"), Group(id="off", name="Off", enabled=False)]
    snippets = [_snippet("a", ":a", "on"), _snippet("b", ":b", "off")]
    index = SnippetIndex.build(groups, snippets, prefix=":")
    assert index.resolve("a") is not None
    assert index.resolve("b") is None
    assert len(index) == 1


def test_snippets_with_unknown_group_are_skipped():
    index = SnippetIndex.build([Group(id="g", name="G")], [_snippet("orphan", ":o", "missing")], prefix=":")
    assert index.resolve("o") is None


def test_duplicate_trigger_resolved_by_group_priority():
    groups = [
        Group(id="work", name="Work", order=20),
        Group(id="personal", name="Personal", order=10),
        Group(id="alpha", name="Alpha", order=20),
    ]
    snippets = [
        _snippet("w", ":sig", "work"),
        _snippet("a", ":sig", "alpha"),
        _snippet("p", ":sig", "personal"),
    ]
    index = SnippetIndex.build(groups, snippets, prefix=":")
    assert [s.id for s in index.lookup("sig")] == ["p", "a", "w"]
    assert index.resolve("sig").id == "p"


def test_duplicate_trigger_in_same_group_uses_snippet_id():
    groups = [Group(id="g", name="G")]
    snippets = [_snippet("z", ":dup", "g"), _snippet("b", ":dup", "g")]
    index = SnippetIndex.build(groups, snippets, prefix=":")
    assert index.resolve("dup").id == "b"


def test_tie_break_does_not_depend_on_input_order():
    groups = [Group(id="x", name="X", order=5), Group(id="y", name="Y", order=1)]
    snippets = [_snippet("sx", ":t", "x"), _snippet("sy", ":t", "y")]
    forward = SnippetIndex.build(groups, snippets, prefix=":")
    backward = SnippetIndex.build(list(reversed(groups)), list(reversed(snippets)), prefix=":")
    assert forward.resolve("t").id == backward.resolve("t").id == "sy"
