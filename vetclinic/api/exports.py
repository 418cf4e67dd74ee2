import csv
import io
from datetime import datetime

from flask import Response, stream_with_context

from .dispatch import action, clinic, fail, ok

CSV_HEADER = ["id", "name", "age", "species", "birth_date", "condition", "owners"]


def _csv_lines(rows):
    buf = io.StringIO()
    writer = csv.writer(buf)
    for row in rows:
        writer.writerow(row)
        yield buf.getvalue()
        buf.seek(0)
        buf.truncate(0)


@action("export_csv")
def export_csv(data: dict):
    rows = [CSV_HEADER, *clinic.export_rows()]
    filename = f"pets_export_{datetime.now():%Y%m%d_%H%M%S}.csv"
    return Response(
        stream_with_context(_csv_lines(rows)),
        mimetype="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@action("autocomplete")
def autocomplete(data: dict):
    q = str(data.get("q") or "").strip()
    if not q:
        return fail("q is required", 422)
    return ok(data=clinic.autocomplete(data.get("field"), q, data.get("limit", 10)))
