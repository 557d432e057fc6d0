"""Block and layout conversion tests."""

import pytest

from lesson_app.core.errors import InvalidInputError
from lesson_app.core.models import (
    BlockType,
    ColumnLayout,
    GraphBlock,
    GraphSettings,
    GridLayout,
    ImageBlock,
    InvalidBlockError,
    QuestionBlock,
    QuestionType,
    TextBlock,
    block_from_dict,
    block_to_dict,
    layout_from_dict,
    slide_from_content,
    slide_to_content,
)


class TestBlockFromDict:
    def test_text_block(self):
        block = block_from_dict({"id": "b1", "type": "text", "content": "Hello"})
        assert isinstance(block, TextBlock)
        assert block.content == "Hello"
        assert block.block_type is BlockType.TEXT

    def test_image_block(self):
        block = block_from_dict({"id": "b2", "type": "image", "url": "http://x/y.png", "alt": "y"})
        assert isinstance(block, ImageBlock)
        assert block.storage_path is None

    def test_question_block(self):
        block = block_from_dict(
            {
                "id": "b3",
                "type": "question",
                "question_type": "multiple-choice",
                "question": "Which?",
                "options": ["a", "b"],
                "correct_answer": "a",
            }
        )
        assert isinstance(block, QuestionBlock)
        assert block.question_type is QuestionType.MULTIPLE_CHOICE
        assert block.options == ["a", "b"]

    def test_graph_block_defaults(self):
        block = block_from_dict({"id": "b4", "type": "graph", "equation": "y = x^2"})
        assert isinstance(block, GraphBlock)
        assert block.settings == GraphSettings()

    def test_unknown_type(self):
        with pytest.raises(InvalidBlockError):
            block_from_dict({"id": "b1", "type": "video"})

    def test_missing_id(self):
        with pytest.raises(InvalidBlockError):
            block_from_dict({"type": "text", "content": "x"})

    def test_fields_of_another_variant_are_rejected(self):
        with pytest.raises(InvalidBlockError):
            block_from_dict({"id": "b1", "type": "text", "content": "x", "url": "http://x"})

    def test_missing_required_field(self):
        with pytest.raises(InvalidBlockError):
            block_from_dict({"id": "b1", "type": "question", "question": "No type"})

    def test_image_without_url(self):
        with pytest.raises(InvalidBlockError):
            block_from_dict({"id": "b1", "type": "image", "url": ""})

    def test_unknown_question_type(self):
        with pytest.raises(InvalidBlockError):
            block_from_dict({"id": "b1", "type": "question", "question_type": "essay", "question": "?"})

    def test_graph_bounds_must_be_ordered(self):
        with pytest.raises(InvalidBlockError):
            block_from_dict(
                {"id": "b1", "type": "graph", "equation": "y = x", "settings": {"x_min": 5, "x_max": 1}}
            )

    def test_invalid_block_error_is_a_value_error(self):
        assert issubclass(InvalidBlockError, InvalidInputError)
        assert issubclass(InvalidBlockError, ValueError)

    def test_block_dict_keeps_its_fields(self):
        data = {
            "id": "b3",
            "type": "question",
            "question_type": "true-false",
            "question": "Sky is blue",
            "options": [],
            "correct_answer": True,
        }
        assert block_to_dict(block_from_dict(data)) == data


class TestLayouts:
    def test_empty_layout_is_none(self):
        assert layout_from_dict(None) is None
        assert layout_from_dict({}) is None

    def test_grid_layout(self):
        layout = layout_from_dict(
            {
                "grid": {
                    "rows": 2,
                    "columns": 2,
                    "block_positions": {"a": {"row": 1, "column": 1}},
                    "block_sizes": {"a": {"width": "50%", "height": "auto"}},
                }
            }
        )
        assert layout.grid.block_positions["a"].column == 1
        assert layout.grid.block_sizes["a"].width == "50%"
        assert layout.columns is None

    def test_grid_needs_a_cell(self):
        with pytest.raises(InvalidBlockError):
            GridLayout(rows=0, columns=1)

    def test_column_widths_must_sum_to_100(self):
        with pytest.raises(InvalidBlockError):
            ColumnLayout(column_count=2, column_widths=[50.0, 40.0])

    def test_too_many_columns(self):
        with pytest.raises(InvalidBlockError):
            ColumnLayout(column_count=5, column_widths=[20.0] * 5)

    def test_assignment_to_missing_column(self):
        with pytest.raises(InvalidBlockError):
            ColumnLayout(column_count=2, column_widths=[50.0, 50.0], block_assignments={"a": 2})

    def test_malformed_grid_position(self):
        with pytest.raises(InvalidBlockError):
            layout_from_dict({"grid": {"rows": 1, "columns": 1, "block_positions": {"a": {"row": 0}}}})


class TestSlideContent:
    def test_missing_title_uses_default(self):
        slide = slide_from_content("s1", {"blocks": []})
        assert slide.title == "Untitled Slide"
        assert slide.blocks == []
        assert slide.layout is None

    def test_content_survives_conversion(self):
        content = {
            "title": "Columns",
            "blocks": [{"id": "a", "type": "text", "content": "Left"}],
            "layout": {
                "columns": {"column_count": 2, "column_widths": [60.0, 40.0], "block_assignments": {"a": 1}}
            },
        }
        slide = slide_from_content("s1", content)
        assert slide_to_content(slide) == content


def test_every_block_type_has_a_class_and_field_set():
    from lesson_app.core import models

    assert set(models.BLOCK_CLASSES) == set(BlockType)
    assert set(models._BLOCK_FIELDS) == set(BlockType)
    assert set(models._REQUIRED_FIELDS) == set(BlockType)
