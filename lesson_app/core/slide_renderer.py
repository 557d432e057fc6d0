"""Turn slides into HTML for the teacher preview and the student page."""

from __future__ import annotations

from enum import Enum
from html import escape
from typing import Callable

from lesson_app.core.layout_resolver import PlacementMode, ResolvedLayout, resolve_layout
from lesson_app.core.markdown_math_renderer import MarkdownMathRenderer, renderer as shared_renderer
from lesson_app.core.models import (
    BlockType,
    GraphBlock,
    ImageBlock,
    LessonBlock,
    LessonSlide,
    QuestionBlock,
    QuestionType,
    TextBlock,
)


class Audience(str, Enum):
    TEACHER = "teacher"
    STUDENT = "student"


class SlideRenderer:
    """Renders slides block by block following the resolved layout.

    Students never see correct answers; their question blocks become small
    answer forms that the student page submits.
    """

    def __init__(
        self,
        audience: Audience = Audience.TEACHER,
        markdown: MarkdownMathRenderer | None = None,
    ) -> None:
        self.audience = audience
        self._markdown = markdown or shared_renderer
        self.block_renderers: dict[BlockType, Callable[[LessonSlide, LessonBlock], str]] = {
            BlockType.TEXT: self._render_text,
            BlockType.IMAGE: self._render_image,
            BlockType.QUESTION: self._render_question,
            BlockType.GRAPH: self._render_graph,
        }

    def render_slide(self, slide: LessonSlide) -> str:
        layout = resolve_layout(slide)
        blocks = {block.id: block for block in slide.blocks}
        cells = []
        for placement in layout.placements:
            block = blocks[placement.block_id]
            style = f"grid-row: {placement.row + 1}; grid-column: {placement.column + 1};"
            if placement.width:
                style += f" width: {escape(placement.width)};"
            if placement.height:
                style += f" height: {escape(placement.height)};"
            cells.append(
                f'<div class="block {block.block_type.value}" data-block-id="{escape(block.id)}" '
                f'style="{style}">{self.block_renderers[block.block_type](slide, block)}</div>'
            )
        if not cells:
            cells.append('<p class="notice">This slide has no content yet.</p>')
        return (
            f'<section class="slide" data-slide-id="{escape(slide.id)}">'
            f'<h1 class="slide-title">{escape(slide.title)}</h1>'
            f'<div class="slide-grid" style="{_grid_template(layout)}">{"".join(cells)}</div>'
            "</section>"
        )

    def render_document(self, slide: LessonSlide, stylesheet: str = "", banner: str = "") -> str:
        body = self.render_slide(slide)
        if banner:
            body = f'<div class="banner">{escape(banner)}</div>{body}'
        return self._markdown.wrap_document(body, title=slide.title, stylesheet=stylesheet)

    # -- blocks --------------------------------------------------------------

    def _render_text(self, slide: LessonSlide, block: TextBlock) -> str:
        return self._markdown.render_fragment(block.content)

    def _render_image(self, slide: LessonSlide, block: ImageBlock) -> str:
        return f'<img src="{escape(block.url)}" alt="{escape(block.alt)}" />'

    def _render_question(self, slide: LessonSlide, block: QuestionBlock) -> str:
        prompt = self._markdown.render_fragment(block.question)
        if self.audience is Audience.TEACHER:
            return prompt + self._question_key(block)
        return prompt + self._answer_form(slide, block)

    def _render_graph(self, slide: LessonSlide, block: GraphBlock) -> str:
        settings = block.settings
        return (
            f'<div class="equation">$$ {escape(block.equation)} $$</div>'
            f'<div class="axes">x ∈ [{settings.x_min:g}, {settings.x_max:g}], '
            f"y ∈ [{settings.y_min:g}, {settings.y_max:g}]</div>"
        )

    def _question_key(self, block: QuestionBlock) -> str:
        expected = "" if block.correct_answer is None else str(block.correct_answer)
        if block.question_type is QuestionType.MULTIPLE_CHOICE:
            items = []
            for index, option in enumerate(block.options):
                correct = expected in (option, str(index))
                css = ' class="correct"' if correct else ""
                items.append(f"<li{css}>{self._markdown.render_inline(option)}</li>")
            return f'<ol class="options">{"".join(items)}</ol>'
        if not expected:
            return '<p class="notice">Answers are reviewed by the teacher.</p>'
        return f'<p class="notice">Answer: {escape(expected)}</p>'

    def _answer_form(self, slide: LessonSlide, block: QuestionBlock) -> str:
        attrs = f'class="answer-form" data-slide-id="{escape(slide.id)}" data-block-id="{escape(block.id)}"'
        name = f"answer-{escape(block.id)}"
        if block.question_type is QuestionType.MULTIPLE_CHOICE:
            inputs = "".join(
                f'<li><label><input type="radio" name="{name}" value="{escape(option)}" /> '
                f"{self._markdown.render_inline(option)}</label></li>"
                for option in block.options
            )
            fields = f'<ul class="options">{inputs}</ul>'
        elif block.question_type is QuestionType.TRUE_FALSE:
            fields = (
                f'<label><input type="radio" name="{name}" value="true" /> True</label> '
                f'<label><input type="radio" name="{name}" value="false" /> False</label>'
            )
        else:
            fields = f'<textarea name="{name}" rows="3"></textarea>'
        return f'<form {attrs}>{fields}<button type="submit">Submit</button></form>'


def _grid_template(layout: ResolvedLayout) -> str:
    if layout.mode is PlacementMode.COLUMNS:
        columns = " ".join(f"{width:g}fr" for width in layout.column_widths)
    else:
        columns = f"repeat({max(layout.columns, 1)}, 1fr)"
    return f"grid-template-columns: {columns};"
