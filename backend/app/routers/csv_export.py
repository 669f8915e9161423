"""
CSV 导出响应
"""
import csv
import io
from typing import Iterable, List
from fastapi.responses import StreamingResponse


def csv_response(filename: str, header: List[str], rows: Iterable[list]) -> StreamingResponse:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(header)
    writer.writerows(rows)
    output.seek(0)
    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
