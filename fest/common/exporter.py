from pathlib import Path
from typing import Iterable, Sequence

from openpyxl import Workbook

from fest.common.config import get_settings
from fest.common.storage import ensure_dir

settings = get_settings()


def write_rows_to_xlsx(headers: Sequence[str], rows: Iterable[Sequence], filename: str, title: str = "Roster") -> Path:
    wb = Workbook()
    ws = wb.active
    ws.title = title[:31]
    ws.append(list(headers))
    for row in rows:
        ws.append(list(row))
    dest_dir = ensure_dir(settings.export_dir)
    path = dest_dir / filename
    # Swapped into place in one step
    partial = dest_dir / f".{filename}.partial"
    wb.save(partial)
    partial.replace(path)
    return path
