from __future__ import annotations

import dataclasses
import json
from typing import Any, List, Sequence, TextIO

PADDING = 2


def to_jsonable(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {key: to_jsonable(item) for key, item in dataclasses.asdict(value).items()}
    if isinstance(value, dict):
        return {str(key): to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    return value


def print_json(out: TextIO, value: Any) -> None:
    out.write(json.dumps(to_jsonable(value), indent=2, default=str))
    out.write("\n")


def format_table(headers: Sequence[str], rows: Sequence[Sequence[Any]]) -> List[str]:
    """Left-aligned columns separated by two spaces; the last column is not padded."""
    table = [[str(cell) for cell in headers]] if headers else []
    table.extend([str(cell) for cell in row] for row in rows)
    if not table:
        return []
    columns = max(len(row) for row in table)
    widths = [0] * columns
    for row in table:
        for index, cell in enumerate(row[:-1]):
            widths[index] = max(widths[index], len(cell))

    lines = []
    for row in table:
        cells = [
            cell.ljust(widths[index] + PADDING) if index < len(row) - 1 else cell
            for index, cell in enumerate(row)
        ]
        lines.append("".join(cells))
    return lines


def print_table(out: TextIO, headers: Sequence[str], rows: Sequence[Sequence[Any]]) -> None:
    for line in format_table(headers, rows):
        out.write(line + "\n")
