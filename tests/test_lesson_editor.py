"""Editing slides and blocks before saving."""

from datetime import datetime, timezone

import pytest

from lesson_app.core.lesson_editor import LessonEditor, new_block
from lesson_app.core.models import (
    BlockType,
    ColumnLayout,
    GridLayout,
    GridPosition,
    InvalidBlockError,
    Lesson,
    LessonSlide,
    SlideLayout,
    TextBlock,
)


@pytest.fixture
def editor():
    now = datetime.now(timezone.utc)
    lesson = Lesson(
        id="l1",
        title="Lesson",
        created_by="u1",
        created_at=now,
        updated_at=now,
        slides=[LessonSlide(id="s1", title="First")],
    )
    return LessonEditor(lesson)


class TestSlides:
    def test_add_and_insert(self, editor):
        editor.add_slide("Last")
        editor.add_slide("Middle", index=1)
        assert [s.title for s in editor.slides] == ["First", "Middle", "Last"]
        assert editor.is_dirty

    def test_add_out_of_range(self, editor):
        with pytest.raises(IndexError):
            editor.add_slide("Far", index=5)

    def test_last_slide_cannot_be_removed(self, editor):
        with pytest.raises(ValueError):
            editor.remove_slide(0)

    def test_move(self, editor):
        editor.add_slide("Second")
        editor.move_slide(1, 0)
        assert [s.title for s in editor.slides] == ["Second", "First"]

    def test_rename_blank_uses_default(self, editor):
        editor.rename_slide(0, "  ")
        assert editor.slides[0].title == "Untitled Slide"

    def test_rename_lesson(self, editor):
        editor.rename_lesson(" Fractions ")
        assert editor.lesson.title == "Fractions"
        with pytest.raises(ValueError):
            editor.rename_lesson("")

    def test_mark_saved(self, editor):
        editor.add_slide()
        editor.mark_saved()
        assert not editor.is_dirty


class TestBlocks:
    def test_new_block_defaults(self):
        block = new_block(BlockType.QUESTION)
        assert block.options == ["Option 1", "Option 2"]
        assert new_block("graph").equation == "y = x"

    def test_new_image_needs_url(self):
        with pytest.raises(InvalidBlockError):
            new_block(BlockType.IMAGE)
        assert new_block(BlockType.IMAGE, url="http://x/a.png").url == "http://x/a.png"

    def test_add_update_remove(self, editor):
        block = editor.add_block(0, TextBlock(id="t1", content="one"))
        editor.update_block(0, TextBlock(id="t1", content="two"))
        assert editor.slides[0].blocks[0].content == "two"
        assert editor.remove_block(0, block.id).content == "two"
        assert editor.slides[0].blocks == []

    def test_duplicate_block_id(self, editor):
        editor.add_block(0, TextBlock(id="t1"))
        with pytest.raises(ValueError):
            editor.add_block(0, TextBlock(id="t1"))

    def test_block_type_cannot_change(self, editor):
        editor.add_block(0, TextBlock(id="t1"))
        with pytest.raises(ValueError):
            editor.update_block(0, new_block(BlockType.GRAPH, id="t1"))

    def test_update_unknown_block(self, editor):
        with pytest.raises(KeyError):
            editor.update_block(0, TextBlock(id="ghost"))

    def test_move_block(self, editor):
        for block_id in ("a", "b", "c"):
            editor.add_block(0, TextBlock(id=block_id))
        editor.move_block(0, 2, 0)
        assert [b.id for b in editor.slides[0].blocks] == ["c", "a", "b"]
        with pytest.raises(IndexError):
            editor.move_block(0, 0, 3)

    def test_removing_a_block_cleans_the_layout(self, editor):
        editor.add_block(0, TextBlock(id="a"))
        editor.add_block(0, TextBlock(id="b"))
        editor.set_layout(
            0,
            SlideLayout(
                grid=GridLayout(rows=1, columns=2, block_positions={"a": GridPosition(0, 0), "b": GridPosition(0, 1)}),
                columns=ColumnLayout(column_count=2, column_widths=[50.0, 50.0], block_assignments={"a": 1}),
            ),
        )
        editor.remove_block(0, "a")
        layout = editor.slides[0].layout
        assert list(layout.grid.block_positions) == ["b"]
        assert layout.columns.block_assignments == {}

    def test_layout_must_reference_slide_blocks(self, editor):
        with pytest.raises(ValueError):
            editor.set_layout(
                0, SlideLayout(grid=GridLayout(block_positions={"ghost": GridPosition(0, 0)}))
            )


def test_every_block_type_has_editor_defaults():
    from lesson_app.core import lesson_editor

    assert set(lesson_editor._NEW_BLOCK_DEFAULTS) == set(BlockType)
