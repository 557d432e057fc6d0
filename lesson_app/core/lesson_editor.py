"""In-memory editing of a lesson before it is saved."""

from __future__ import annotations

import uuid
from typing import Any

from lesson_app.constants.session_constants import DEFAULT_SLIDE_TITLE
from lesson_app.core.models import (
    BlockType,
    Lesson,
    LessonBlock,
    LessonSlide,
    SlideLayout,
    block_from_dict,
)

_NEW_BLOCK_DEFAULTS: dict[BlockType, dict[str, Any]] = {
    BlockType.TEXT: {"content": ""},
    BlockType.IMAGE: {"alt": ""},
    BlockType.QUESTION: {
        "question_type": "multiple-choice",
        "question": "",
        "options": ["Option 1", "Option 2"],
        "correct_answer": None,
    },
    BlockType.GRAPH: {"equation": "y = x"},
}


def new_id() -> str:
    return str(uuid.uuid4())


def new_block(block_type: BlockType | str, **fields: Any) -> LessonBlock:
    """Create a block of ``block_type`` with default content overridden by ``fields``."""

    block_type = BlockType(block_type)
    data = {"id": new_id(), "type": block_type.value, **_NEW_BLOCK_DEFAULTS[block_type], **fields}
    return block_from_dict(data)


class LessonEditor:
    """Slide and block operations on a lesson, tracking unsaved changes."""

    def __init__(self, lesson: Lesson) -> None:
        self.lesson = lesson
        self._dirty = False

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    def mark_saved(self) -> None:
        self._dirty = False

    @property
    def slides(self) -> list[LessonSlide]:
        return self.lesson.slides

    def rename_lesson(self, title: str) -> None:
        cleaned = title.strip()
        if not cleaned:
            raise ValueError("Lesson title must not be empty.")
        self.lesson.title = cleaned
        self._dirty = True

    # -- slides --------------------------------------------------------------

    def get_slide(self, index: int) -> LessonSlide:
        if not 0 <= index < len(self.slides):
            raise IndexError(f"Slide index {index} out of range")
        return self.slides[index]

    def add_slide(self, title: str = DEFAULT_SLIDE_TITLE, index: int | None = None) -> LessonSlide:
        slide = LessonSlide(id=new_id(), title=title.strip() or DEFAULT_SLIDE_TITLE)
        if index is None:
            self.slides.append(slide)
        else:
            if not 0 <= index <= len(self.slides):
                raise IndexError(f"Slide index {index} out of range")
            self.slides.insert(index, slide)
        self._dirty = True
        return slide

    def remove_slide(self, index: int) -> LessonSlide:
        self.get_slide(index)
        if len(self.slides) == 1:
            raise ValueError("A lesson must keep at least one slide.")
        self._dirty = True
        return self.slides.pop(index)

    def move_slide(self, from_index: int, to_index: int) -> None:
        slide = self.get_slide(from_index)
        if not 0 <= to_index < len(self.slides):
            raise IndexError(f"Slide index {to_index} out of range")
        if from_index == to_index:
            return
        self.slides.pop(from_index)
        self.slides.insert(to_index, slide)
        self._dirty = True

    def rename_slide(self, index: int, title: str) -> None:
        self.get_slide(index).title = title.strip() or DEFAULT_SLIDE_TITLE
        self._dirty = True

    def set_layout(self, index: int, layout: SlideLayout | None) -> None:
        slide = self.get_slide(index)
        if layout is not None:
            known = {block.id for block in slide.blocks}
            referenced: set[str] = set()
            if layout.grid is not None:
                referenced |= set(layout.grid.block_positions) | set(layout.grid.block_sizes)
            if layout.columns is not None:
                referenced |= set(layout.columns.block_assignments)
            unknown = referenced - known
            if unknown:
                raise ValueError(f"Layout references blocks not on this slide: {sorted(unknown)}")
        slide.layout = layout
        self._dirty = True

    # -- blocks --------------------------------------------------------------

    def add_block(self, slide_index: int, block: LessonBlock) -> LessonBlock:
        slide = self.get_slide(slide_index)
        if any(existing.id == block.id for existing in slide.blocks):
            raise ValueError(f"Block {block.id} is already on this slide.")
        slide.blocks.append(block)
        self._dirty = True
        return block

    def update_block(self, slide_index: int, block: LessonBlock) -> None:
        slide = self.get_slide(slide_index)
        position = self._block_position(slide, block.id)
        if type(slide.blocks[position]) is not type(block):
            raise ValueError("A block cannot change its type.")
        slide.blocks[position] = block
        self._dirty = True

    def remove_block(self, slide_index: int, block_id: str) -> LessonBlock:
        slide = self.get_slide(slide_index)
        removed = slide.blocks.pop(self._block_position(slide, block_id))
        if slide.layout is not None:
            if slide.layout.grid is not None:
                slide.layout.grid.block_positions.pop(block_id, None)
                slide.layout.grid.block_sizes.pop(block_id, None)
            if slide.layout.columns is not None:
                slide.layout.columns.block_assignments.pop(block_id, None)
        self._dirty = True
        return removed

    def move_block(self, slide_index: int, from_index: int, to_index: int) -> None:
        slide = self.get_slide(slide_index)
        for index in (from_index, to_index):
            if not 0 <= index < len(slide.blocks):
                raise IndexError(f"Block index {index} out of range")
        slide.blocks.insert(to_index, slide.blocks.pop(from_index))
        self._dirty = True

    @staticmethod
    def _block_position(slide: LessonSlide, block_id: str) -> int:
        for position, block in enumerate(slide.blocks):
            if block.id == block_id:
                return position
        raise KeyError(f"Block {block_id} is not on slide {slide.id}")
