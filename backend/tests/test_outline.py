from dataclasses import replace

import pytest

from smart_assessment.outline import (
    DEFAULT_TRANSITION,
    ENTER,
    ESCAPE,
    ChapterItem,
    InvalidOrder,
    ItemNotFound,
    OutlineEditor,
    SubjectOutline,
    TopicItem,
    Transform,
    apply_order,
    css_transform,
    move_item,
    topic_count_label,
)


class MemoryOutlineStore:
    """Owning container kept in memory; records every call it receives."""

    def __init__(self, outline: SubjectOutline):
        self.snapshot = outline
        self.calls = []

    def outline(self, subject_id):
        assert subject_id == self.snapshot.id
        return self.snapshot

    def _set_chapters(self, chapters):
        self.snapshot = replace(self.snapshot, chapters=tuple(chapters))

    def _chapter_pos(self, chapter_id):
        return [c.id for c in self.snapshot.chapters].index(chapter_id)

    def rename_chapter(self, subject_id, chapter_id, name, topics=None):
        self.calls.append(("rename_chapter", subject_id, chapter_id, name, list(topics or [])))
        chapters = list(self.snapshot.chapters)
        pos = self._chapter_pos(chapter_id)
        chapters[pos] = replace(chapters[pos], name=name)
        self._set_chapters(chapters)

    def delete_chapter(self, subject_id, chapter_id):
        self.calls.append(("delete_chapter", subject_id, chapter_id))
        self._set_chapters(c for c in self.snapshot.chapters if c.id != chapter_id)

    def reorder_chapters(self, subject_id, order):
        self.calls.append(("reorder_chapters", subject_id, list(order)))
        self._set_chapters(apply_order(self.snapshot.chapters, order))

    def _set_topics(self, chapter_id, topics):
        chapters = list(self.snapshot.chapters)
        pos = self._chapter_pos(chapter_id)
        chapters[pos] = replace(chapters[pos], topics=tuple(topics))
        self._set_chapters(chapters)

    def rename_topic(self, subject_id, chapter_id, topic_id, name):
        self.calls.append(("rename_topic", subject_id, chapter_id, topic_id, name))
        chapter = self.snapshot.chapter(chapter_id)
        self._set_topics(chapter_id, [replace(t, name=name) if t.id == topic_id else t for t in chapter.topics])

    def delete_topic(self, subject_id, chapter_id, topic_id):
        self.calls.append(("delete_topic", subject_id, chapter_id, topic_id))
        chapter = self.snapshot.chapter(chapter_id)
        self._set_topics(chapter_id, [t for t in chapter.topics if t.id != topic_id])

    def reorder_topics(self, subject_id, chapter_id, order):
        self.calls.append(("reorder_topics", subject_id, chapter_id, list(order)))
        self._set_topics(chapter_id, apply_order(self.snapshot.chapter(chapter_id).topics, order))


@pytest.fixture
def outline():
    return SubjectOutline(
        id="math",
        name="Mathematics",
        chapters=(
            ChapterItem("c1", "Algebra", (TopicItem("t1", "Linear equations"), TopicItem("t2", "Quadratics"))),
            ChapterItem("c2", "Geometry", (TopicItem("t3", "Triangles"),)),
            ChapterItem("c3", "Calculus", ()),
        ),
    )


@pytest.fixture
def store(outline):
    return MemoryOutlineStore(outline)


@pytest.fixture
def editor(store):
    return OutlineEditor.for_store(store, "math")


def chapter_names(editor):
    return [c.name for c in editor.outline.chapters]


# ---- list helpers ----

def test_move_item_moves_to_target_slot(outline):
    moved = move_item(outline.chapters, "c3", "c1")
    assert [c.id for c in moved] == ["c3", "c1", "c2"]


def test_move_item_ignores_unknown_or_same_id(outline):
    assert move_item(outline.chapters, "c1", "c1") == list(outline.chapters)
    assert move_item(outline.chapters, "nope", "c2") == list(outline.chapters)


def test_apply_order_requires_permutation(outline):
    with pytest.raises(InvalidOrder):
        apply_order(outline.chapters, ["c1", "c2"])
    with pytest.raises(InvalidOrder):
        apply_order(outline.chapters, ["c1", "c1", "c2"])
    assert [c.id for c in apply_order(outline.chapters, ["c2", "c3", "c1"])] == ["c2", "c3", "c1"]


def test_css_transform():
    assert css_transform(None) is None
    assert css_transform(Transform(x=10, y=-4.5)) == "translate3d(10px, -4.5px, 0) scaleX(1) scaleY(1)"


def test_topic_count_label():
    assert topic_count_label(0) == "0 topics"
    assert topic_count_label(1) == "1 topic"
    assert topic_count_label(2) == "2 topics"


# ---- chapter rows ----

@pytest.mark.parametrize("chapter_id", ["c1", "c2", "c3"])
def test_escape_leaves_name_and_clears_cursor(editor, store, chapter_id):
    before = editor.outline.chapter(chapter_id).name
    editor.chapter_row(chapter_id).start_edit()
    editor.chapter_row(chapter_id).type("Something else")
    editor.chapter_row(chapter_id).handle_key(ESCAPE)

    assert editor.chapter_cursor is None
    assert editor.outline.chapter(chapter_id).name == before
    assert store.calls == []


def test_enter_commits_draft_with_unchanged_topics(editor, store):
    editor.chapter_row("c1").start_edit()
    editor.chapter_row("c1").type("  Linear Algebra ")
    editor.chapter_row("c1").handle_key(ENTER)

    assert store.calls == [("rename_chapter", "math", "c1", "Linear Algebra", ["Linear equations", "Quadratics"])]
    assert editor.chapter_cursor is None
    # Reading back through the same accessor returns the committed value
    assert editor.outline.chapter("c1").name == "Linear Algebra"
    assert editor.outline.chapter("c1").topic_names == ["Linear equations", "Quadratics"]


def test_blank_draft_is_not_committed(editor, store):
    editor.begin_chapter_edit("c2")
    editor.set_chapter_draft("   ")
    assert editor.commit_chapter_edit() is False
    assert store.calls == []
    assert editor.chapter_cursor is not None


def test_keys_are_ignored_when_not_editing(editor, store):
    editor.chapter_row("c1").handle_key(ENTER)
    editor.chapter_row("c1").handle_key(ESCAPE)
    editor.chapter_row("c1").handle_key("a")
    assert store.calls == []


def test_only_one_chapter_editable(editor):
    editor.chapter_row("c1").start_edit()
    editor.chapter_row("c2").start_edit()
    editing = [row.id for row in editor.chapter_rows() if row.is_editing]
    assert editing == ["c2"]


def test_delete_chapter_removes_one_and_keeps_order(editor, store):
    editor.chapter_row("c2").delete()
    assert store.calls == [("delete_chapter", "math", "c2")]
    assert [c.id for c in editor.outline.chapters] == ["c1", "c3"]


def test_delete_clears_cursor_on_deleted_chapter(editor):
    editor.begin_chapter_edit("c3")
    editor.delete_chapter("c3")
    assert editor.chapter_cursor is None


def test_delete_other_chapter_keeps_cursor(editor):
    editor.begin_chapter_edit("c3", "Draft")
    editor.delete_chapter("c1")
    assert editor.chapter_cursor is not None
    assert editor.chapter_cursor.chapter_id == "c3"
    # Index follows the current list, not the one at edit time
    assert editor.chapter_row("c3").props.chapter_index == 1


def test_refresh_drops_dangling_cursor(editor, store, outline):
    editor.begin_chapter_edit("c2")
    editor.toggle_expand("c2")
    editor.refresh(replace(outline, chapters=outline.chapters[:1]))
    assert editor.chapter_cursor is None
    assert editor.expanded == set()


def test_begin_edit_unknown_chapter(editor):
    with pytest.raises(ItemNotFound):
        editor.begin_chapter_edit("missing")


def test_toggle_expand_renders_topics(editor):
    editor.chapter_row("c1").toggle_expand()
    view = editor.render()
    first = view["chapters"][0]
    assert first["expanded"] is True
    assert [t["name"] for t in first["topics"]] == ["Linear equations", "Quadratics"]
    assert first["topic_count_label"] == "2 topics"
    assert "topics" not in view["chapters"][1]

    editor.chapter_row("c1").toggle_expand()
    assert editor.render()["chapters"][0]["expanded"] is False


# ---- reorder ----

def test_drop_chapter_reports_new_order(editor, store):
    editor.drag_move("c3", Transform(y=-80))
    assert editor.chapter_row("c3").style() == {
        "transform": "translate3d(0px, -80px, 0) scaleX(1) scaleY(1)",
        "transition": DEFAULT_TRANSITION,
    }
    assert editor.drop_chapter("c3", "c1") is True
    assert store.calls == [("reorder_chapters", "math", ["c3", "c1", "c2"])]
    assert [row.props.chapter_index for row in editor.chapter_rows()] == [0, 1, 2]
    assert [row.id for row in editor.chapter_rows()] == ["c3", "c1", "c2"]
    assert editor.chapter_row("c3").style() == {"transform": None, "transition": None}


def test_drop_on_self_is_noop(editor, store):
    assert editor.drop_chapter("c1", "c1") is False
    assert store.calls == []


def test_cursor_survives_reorder(editor, store):
    editor.begin_chapter_edit("c1", "Renamed")
    editor.drop_chapter("c1", "c3")
    assert editor.chapter_cursor.chapter_id == "c1"
    editor.chapter_row("c1").handle_key(ENTER)
    assert store.calls[-1][:4] == ("rename_chapter", "math", "c1", "Renamed")
    assert chapter_names(editor) == ["Geometry", "Calculus", "Renamed"]


# ---- topic rows ----

def test_topic_edit_is_exclusive(editor):
    editor.toggle_expand("c1")
    editor.topic_row("c1", "t1").start_edit()
    editor.topic_row("c1", "t2").start_edit()
    editing = [
        (row.props.chapter_id, row.id)
        for chapter in editor.outline.chapters
        for row in editor.topic_rows(chapter.id)
        if row.is_editing
    ]
    assert editing == [("c1", "t2")]


def test_topic_cursor_requires_matching_chapter(editor):
    editor.begin_topic_edit("c1", "t1")
    # Same topic position in another chapter is not in edit mode
    assert editor.topic_row("c2", "t3").is_editing is False
    assert editor.topic_row("c1", "t1").is_editing is True


def test_topic_enter_commits(editor, store):
    row = editor.topic_row("c1", "t2")
    row.start_edit()
    editor.topic_row("c1", "t2").type("Quadratic equations")
    editor.topic_row("c1", "t2").handle_key(ENTER)
    assert store.calls == [("rename_topic", "math", "c1", "t2", "Quadratic equations")]
    assert editor.topic_cursor is None
    assert editor.outline.chapter("c1").topic_names == ["Linear equations", "Quadratic equations"]


def test_topic_escape_cancels(editor, store):
    editor.topic_row("c2", "t3").start_edit()
    editor.topic_row("c2", "t3").type("Circles")
    editor.topic_row("c2", "t3").handle_key(ESCAPE)
    assert editor.topic_cursor is None
    assert store.calls == []
    assert editor.outline.chapter("c2").topic_names == ["Triangles"]


def test_delete_topic_clears_cursor(editor, store):
    editor.begin_topic_edit("c1", "t1")
    editor.topic_row("c1", "t1").delete()
    assert store.calls == [("delete_topic", "math", "c1", "t1")]
    assert editor.topic_cursor is None
    assert editor.outline.chapter("c1").topic_names == ["Quadratics"]


def test_drop_topic(editor, store):
    assert editor.drop_topic("c1", "t2", "t1") is True
    assert store.calls == [("reorder_topics", "math", "c1", ["t2", "t1"])]
    assert [row.props.topic_index for row in editor.topic_rows("c1")] == [0, 1]
    assert [row.id for row in editor.topic_rows("c1")] == ["t2", "t1"]


def test_deleting_chapter_drops_its_topic_cursor(editor):
    editor.begin_topic_edit("c2", "t3")
    editor.delete_chapter("c2")
    assert editor.topic_cursor is None
