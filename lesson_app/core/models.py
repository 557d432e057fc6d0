"""Domain models for lessons, slides, blocks and live sessions.

Blocks and layouts are closed variants: every block carries exactly the fields
of its ``BlockType`` and nothing else. ``block_from_dict`` is the only way a
stored dict becomes a block, so a malformed or mixed-up block is rejected at
the data boundary instead of surfacing later in a renderer or the progress
grid.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Union

from lesson_app.constants.session_constants import DEFAULT_SLIDE_TITLE
from lesson_app.core.errors import InvalidInputError

AnswerValue = Union[str, int, float, bool]

_COLUMN_WIDTH_TOLERANCE = 0.5
_MAX_LEGACY_COLUMNS = 4


class InvalidBlockError(InvalidInputError):
    """Raised when a block or layout dict does not match its declared shape."""


class BlockType(str, Enum):
    """Tag of the block variant."""

    TEXT = "text"
    IMAGE = "image"
    QUESTION = "question"
    GRAPH = "graph"


class QuestionType(str, Enum):
    """Kind of question a question block asks."""

    MULTIPLE_CHOICE = "multiple-choice"
    FREE_RESPONSE = "free-response"
    TRUE_FALSE = "true-false"


class UserRole(str, Enum):
    TEACHER = "teacher"
    STUDENT = "student"


@dataclass(slots=True)
class TextBlock:
    id: str
    content: str = ""

    block_type: ClassVar[BlockType] = BlockType.TEXT


@dataclass(slots=True)
class ImageBlock:
    id: str
    url: str
    alt: str = ""
    storage_path: str | None = None

    block_type: ClassVar[BlockType] = BlockType.IMAGE


@dataclass(slots=True)
class QuestionBlock:
    id: str
    question_type: QuestionType
    question: str = ""
    options: list[str] = field(default_factory=list)
    correct_answer: AnswerValue | None = None

    block_type: ClassVar[BlockType] = BlockType.QUESTION


@dataclass(slots=True)
class GraphSettings:
    """Axis bounds of a graph block."""

    x_min: float = -10.0
    x_max: float = 10.0
    y_min: float = -10.0
    y_max: float = 10.0

    def __post_init__(self) -> None:
        if self.x_min >= self.x_max:
            raise InvalidBlockError("Graph x_min must be smaller than x_max.")
        if self.y_min >= self.y_max:
            raise InvalidBlockError("Graph y_min must be smaller than y_max.")


@dataclass(slots=True)
class GraphBlock:
    id: str
    equation: str
    settings: GraphSettings = field(default_factory=GraphSettings)

    block_type: ClassVar[BlockType] = BlockType.GRAPH


LessonBlock = Union[TextBlock, ImageBlock, QuestionBlock, GraphBlock]

BLOCK_CLASSES: dict[BlockType, type] = {
    BlockType.TEXT: TextBlock,
    BlockType.IMAGE: ImageBlock,
    BlockType.QUESTION: QuestionBlock,
    BlockType.GRAPH: GraphBlock,
}

_BLOCK_FIELDS: dict[BlockType, frozenset[str]] = {
    BlockType.TEXT: frozenset({"content"}),
    BlockType.IMAGE: frozenset({"url", "alt", "storage_path"}),
    BlockType.QUESTION: frozenset({"question_type", "question", "options", "correct_answer"}),
    BlockType.GRAPH: frozenset({"equation", "settings"}),
}

_REQUIRED_FIELDS: dict[BlockType, frozenset[str]] = {
    BlockType.TEXT: frozenset({"content"}),
    BlockType.IMAGE: frozenset({"url"}),
    BlockType.QUESTION: frozenset({"question_type", "question"}),
    BlockType.GRAPH: frozenset({"equation"}),
}


@dataclass(slots=True)
class GridPosition:
    row: int
    column: int


@dataclass(slots=True)
class BlockSize:
    width: str
    height: str


@dataclass(slots=True)
class GridLayout:
    """Grid-based positioning: one cell per block."""

    rows: int = 1
    columns: int = 1
    block_positions: dict[str, GridPosition] = field(default_factory=dict)
    block_sizes: dict[str, BlockSize] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.rows < 1 or self.columns < 1:
            raise InvalidBlockError("Grid layouts need at least one row and one column.")


@dataclass(slots=True)
class ColumnLayout:
    """Legacy column-based positioning kept for older lessons."""

    column_count: int = 1
    column_widths: list[float] = field(default_factory=lambda: [100.0])
    block_assignments: dict[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not 1 <= self.column_count <= _MAX_LEGACY_COLUMNS:
            raise InvalidBlockError(f"Column count must be between 1 and {_MAX_LEGACY_COLUMNS}.")
        if len(self.column_widths) != self.column_count:
            raise InvalidBlockError("Provide exactly one width per column.")
        if abs(sum(self.column_widths) - 100.0) > _COLUMN_WIDTH_TOLERANCE:
            raise InvalidBlockError("Column widths must sum to 100 percent.")
        for block_id, column in self.block_assignments.items():
            if not 0 <= column < self.column_count:
                raise InvalidBlockError(f"Block {block_id} is assigned to missing column {column}.")


@dataclass(slots=True)
class SlideLayout:
    """Optional per-slide positioning; the grid wins when both are present."""

    grid: GridLayout | None = None
    columns: ColumnLayout | None = None


@dataclass(slots=True)
class LessonSlide:
    id: str
    title: str = DEFAULT_SLIDE_TITLE
    blocks: list[LessonBlock] = field(default_factory=list)
    layout: SlideLayout | None = None


def slide_plain_text(slide: LessonSlide) -> str:
    """Title, text blocks and questions of a slide, for read aloud and the assistant."""
    parts = [slide.title]
    for block in slide.blocks:
        if isinstance(block, TextBlock) and block.content.strip():
            parts.append(block.content.strip())
        elif isinstance(block, QuestionBlock) and block.question.strip():
            parts.append(block.question.strip())
    return "\n\n".join(parts)


@dataclass(slots=True)
class Lesson:
    id: str
    title: str
    created_by: str
    created_at: datetime
    updated_at: datetime
    slides: list[LessonSlide] = field(default_factory=list)
    settings: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class StudentResponse:
    """One submitted answer. Repeated attempts produce new records."""

    student_id: str
    lesson_id: str
    slide_id: str
    block_id: str
    response: str
    is_correct: bool | None
    timestamp: datetime


@dataclass(slots=True)
class StudentProgress:
    """Derived per-student summary used by the progress grid."""

    student_id: str
    student_name: str
    lesson_id: str
    current_slide: int
    completed_blocks: list[str] = field(default_factory=list)
    responses: list[StudentResponse] = field(default_factory=list)
    joined_at: datetime | None = None


@dataclass(slots=True)
class AuthUser:
    """Authenticated user with the role and display name from their metadata."""

    id: str
    email: str
    role: UserRole
    name: str


@dataclass(slots=True)
class JoinedSession:
    session_id: str
    presentation_id: str


# --- dict conversion -------------------------------------------------------


def block_from_dict(data: dict[str, Any]) -> LessonBlock:
    """Build a block from its stored dict, rejecting unknown or mixed shapes."""

    if not isinstance(data, dict):
        raise InvalidBlockError("Block data must be a mapping.")
    try:
        block_type = BlockType(data.get("type"))
    except ValueError as exc:
        raise InvalidBlockError(f"Unknown block type: {data.get('type')!r}") from exc

    block_id = data.get("id")
    if not isinstance(block_id, str) or not block_id:
        raise InvalidBlockError("Blocks need a non-empty string id.")

    extra = set(data) - {"id", "type"} - _BLOCK_FIELDS[block_type]
    if extra:
        raise InvalidBlockError(
            f"Fields {sorted(extra)} do not belong to a {block_type.value} block."
        )

    missing = _REQUIRED_FIELDS[block_type] - set(data)
    if missing:
        raise InvalidBlockError(
            f"A {block_type.value} block is missing fields {sorted(missing)}."
        )

    if block_type is BlockType.TEXT:
        return TextBlock(id=block_id, content=str(data["content"]))
    if block_type is BlockType.IMAGE:
        url = data.get("url")
        if not url:
            raise InvalidBlockError("Image blocks need a url.")
        return ImageBlock(
            id=block_id,
            url=str(url),
            alt=str(data.get("alt", "")),
            storage_path=data.get("storage_path"),
        )
    if block_type is BlockType.QUESTION:
        try:
            question_type = QuestionType(data.get("question_type"))
        except ValueError as exc:
            raise InvalidBlockError(
                f"Unknown question type: {data.get('question_type')!r}"
            ) from exc
        options = data.get("options") or []
        if not isinstance(options, list):
            raise InvalidBlockError("Question options must be a list.")
        correct_answer = data.get("correct_answer")
        if correct_answer is not None and not isinstance(correct_answer, (str, int, float, bool)):
            raise InvalidBlockError("Correct answers must be a string, number or boolean.")
        return QuestionBlock(
            id=block_id,
            question_type=question_type,
            question=str(data["question"]),
            options=[str(option) for option in options],
            correct_answer=correct_answer,
        )
    equation = data.get("equation")
    if not equation:
        raise InvalidBlockError("Graph blocks need an equation.")
    raw_settings = data.get("settings") or {}
    try:
        settings = GraphSettings(**{key: float(value) for key, value in raw_settings.items()})
    except InvalidBlockError:
        raise
    except (TypeError, ValueError) as exc:
        raise InvalidBlockError(f"Invalid graph settings: {exc}") from exc
    return GraphBlock(id=block_id, equation=str(equation), settings=settings)


def block_to_dict(block: LessonBlock) -> dict[str, Any]:
    data: dict[str, Any] = {"id": block.id, "type": block.block_type.value}
    if isinstance(block, TextBlock):
        data["content"] = block.content
    elif isinstance(block, ImageBlock):
        data.update(url=block.url, alt=block.alt, storage_path=block.storage_path)
    elif isinstance(block, QuestionBlock):
        data.update(
            question_type=block.question_type.value,
            question=block.question,
            options=list(block.options),
            correct_answer=block.correct_answer,
        )
    elif isinstance(block, GraphBlock):
        data.update(
            equation=block.equation,
            settings={
                "x_min": block.settings.x_min,
                "x_max": block.settings.x_max,
                "y_min": block.settings.y_min,
                "y_max": block.settings.y_max,
            },
        )
    else:
        raise TypeError(f"Unsupported block: {block!r}")
    return data


def layout_from_dict(data: dict[str, Any] | None) -> SlideLayout | None:
    if not data:
        return None
    grid = None
    columns = None
    try:
        grid_data = data.get("grid")
        if grid_data:
            grid = GridLayout(
                rows=int(grid_data.get("rows", 1)),
                columns=int(grid_data.get("columns", 1)),
                block_positions={
                    block_id: GridPosition(row=int(pos["row"]), column=int(pos["column"]))
                    for block_id, pos in (grid_data.get("block_positions") or {}).items()
                },
                block_sizes={
                    block_id: BlockSize(width=str(size["width"]), height=str(size["height"]))
                    for block_id, size in (grid_data.get("block_sizes") or {}).items()
                },
            )
        column_data = data.get("columns")
        if column_data:
            columns = ColumnLayout(
                column_count=int(column_data.get("column_count", 1)),
                column_widths=[float(width) for width in column_data.get("column_widths", [100.0])],
                block_assignments={
                    block_id: int(column)
                    for block_id, column in (column_data.get("block_assignments") or {}).items()
                },
            )
    except InvalidBlockError:
        raise
    except (KeyError, TypeError, ValueError) as exc:
        raise InvalidBlockError(f"Invalid slide layout: {exc}") from exc
    if grid is None and columns is None:
        return None
    return SlideLayout(grid=grid, columns=columns)


def layout_to_dict(layout: SlideLayout | None) -> dict[str, Any] | None:
    if layout is None:
        return None
    data: dict[str, Any] = {}
    if layout.grid is not None:
        data["grid"] = {
            "rows": layout.grid.rows,
            "columns": layout.grid.columns,
            "block_positions": {
                block_id: {"row": pos.row, "column": pos.column}
                for block_id, pos in layout.grid.block_positions.items()
            },
            "block_sizes": {
                block_id: {"width": size.width, "height": size.height}
                for block_id, size in layout.grid.block_sizes.items()
            },
        }
    if layout.columns is not None:
        data["columns"] = {
            "column_count": layout.columns.column_count,
            "column_widths": list(layout.columns.column_widths),
            "block_assignments": dict(layout.columns.block_assignments),
        }
    return data


def slide_from_content(slide_id: str, content: dict[str, Any]) -> LessonSlide:
    """Convert the JSON content column of a slide row into a slide."""

    return LessonSlide(
        id=slide_id,
        title=content.get("title") or DEFAULT_SLIDE_TITLE,
        blocks=[block_from_dict(block) for block in content.get("blocks") or []],
        layout=layout_from_dict(content.get("layout")),
    )


def slide_to_content(slide: LessonSlide) -> dict[str, Any]:
    return {
        "title": slide.title,
        "blocks": [block_to_dict(block) for block in slide.blocks],
        "layout": layout_to_dict(slide.layout),
    }
