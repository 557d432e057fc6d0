"""Resolve a slide's layout data into concrete block placements."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from lesson_app.core.models import LessonSlide


class PlacementMode(str, Enum):
    GRID = "grid"
    COLUMNS = "columns"
    STACKED = "stacked"


@dataclass(slots=True)
class BlockPlacement:
    block_id: str
    row: int
    column: int
    width: str | None = None
    height: str | None = None


@dataclass(slots=True)
class ResolvedLayout:
    mode: PlacementMode
    rows: int
    columns: int
    placements: list[BlockPlacement] = field(default_factory=list)
    column_widths: list[float] = field(default_factory=list)

    def placement_for(self, block_id: str) -> BlockPlacement | None:
        for placement in self.placements:
            if placement.block_id == block_id:
                return placement
        return None


def resolve_layout(slide: LessonSlide) -> ResolvedLayout:
    """Place every block of ``slide``.

    A grid layout that positions at least one of the slide's blocks wins over
    legacy columns. Blocks the grid does not mention go into extra rows below
    it. Without usable layout data, blocks are stacked in one column.
    """

    block_ids = [block.id for block in slide.blocks]
    layout = slide.layout
    if layout is not None and layout.grid is not None:
        grid = layout.grid
        positioned = [block_id for block_id in block_ids if block_id in grid.block_positions]
        if positioned:
            placements: list[BlockPlacement] = []
            for block_id in positioned:
                position = grid.block_positions[block_id]
                size = grid.block_sizes.get(block_id)
                placements.append(
                    BlockPlacement(
                        block_id=block_id,
                        row=position.row,
                        column=position.column,
                        width=size.width if size else None,
                        height=size.height if size else None,
                    )
                )
            rows = max(grid.rows, max(p.row for p in placements) + 1)
            columns = max(grid.columns, max(p.column for p in placements) + 1)
            for block_id in block_ids:
                if block_id not in grid.block_positions:
                    placements.append(BlockPlacement(block_id=block_id, row=rows, column=0))
                    rows += 1
            return ResolvedLayout(PlacementMode.GRID, rows, columns, placements)

    if layout is not None and layout.columns is not None:
        legacy = layout.columns
        next_row = [0] * legacy.column_count
        placements = []
        for block_id in block_ids:
            column = legacy.block_assignments.get(block_id, 0)
            placements.append(BlockPlacement(block_id=block_id, row=next_row[column], column=column))
            next_row[column] += 1
        return ResolvedLayout(
            PlacementMode.COLUMNS,
            rows=max(next_row) if block_ids else 0,
            columns=legacy.column_count,
            placements=placements,
            column_widths=list(legacy.column_widths),
        )

    return ResolvedLayout(
        PlacementMode.STACKED,
        rows=len(block_ids),
        columns=1,
        placements=[BlockPlacement(block_id=block_id, row=index, column=0) for index, block_id in enumerate(block_ids)],
        column_widths=[100.0],
    )
