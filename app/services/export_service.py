"""
Export of screening results as CSV or JSON.
"""
import csv
import io
import logging
from datetime import datetime, timezone
from typing import List, Sequence

from app.schemas.screening import ScreeningExportResponse, ScreeningResultResponse
from app.services.matching_service import rank_candidates

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("csv", "json")

CSV_HEADERS = [
    "Candidate ID",
    "Match %",
    "Skills Matched",
    "Skills Missing",
    "Strengths",
    "Areas for Improvement",
]

LIST_SEPARATOR = "; "


def results_to_csv(results: Sequence[ScreeningResultResponse]) -> str:
    """
    Header row plus one row per result.

    Every data field is double-quoted with embedded quotes doubled; list
    fields are joined with "; ". Rows end with a bare newline.
    """
    buffer = io.StringIO()
    buffer.write(",".join(CSV_HEADERS) + "\n")

    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for result in results:
        writer.writerow([
            result.candidate_id,
            str(result.match_percentage),
            LIST_SEPARATOR.join(result.skills_matched),
            LIST_SEPARATOR.join(result.skills_missing),
            LIST_SEPARATOR.join(result.strengths),
            LIST_SEPARATOR.join(result.improvement_areas),
        ])

    # no trailing newline after the last row
    return buffer.getvalue().rstrip("\n")


def results_to_json(results: List[ScreeningResultResponse]) -> ScreeningExportResponse:
    """JSON export; results carry their rank by match percentage across the export."""
    ranks = {
        entry["candidate_id"]: entry["rank"]
        for entry in rank_candidates((r.candidate_id, r.match_percentage) for r in results)
    }
    ranked = [r.model_copy(update={"rank": ranks.get(r.candidate_id)}) for r in results]
    return ScreeningExportResponse(
        results=ranked,
        total=len(ranked),
        exported_at=datetime.now(timezone.utc),
    )


def export_filename(screening_job_id: int) -> str:
    return f"screening-{screening_job_id}.csv"
