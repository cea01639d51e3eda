"""CSV and Excel export of a date-range report.

Column headers are fixed per entity. The CSV holds three titled sections
separated by a blank line and is written as UTF-8 with a BOM so
spreadsheet tools pick the encoding up. The Excel export writes one sheet
per entity and needs the ``excel`` extra (openpyxl).
"""

import csv
import io
import logging
from pathlib import Path
from typing import Any

from cancheito.analytics.reports import Report

logger = logging.getLogger(__name__)

USER_HEADERS = [
    "User ID", "Full Name", "Email", "Registration Date", "User Type",
    "Account State", "Verified", "Location", "Education", "Experience",
]
OFFER_HEADERS = [
    "Offer ID", "Title", "Publisher ID", "Publisher Name", "Publisher Email",
    "Posted Date", "Offer Status", "Location", "Modality", "Approx. Payment",
]
POSTULATION_HEADERS = [
    "Postulation ID", "Applicant ID", "Applicant Name", "Applicant Email",
    "Offer ID", "Offer Title", "Publisher ID", "Publisher Name",
    "Postulation Date", "Postulation Status",
]

_HEADER_FILL = "FFD9EAD3"


def user_rows(report: Report) -> list[list[Any]]:
    return [
        [
            u.id, u.full_name, u.email, u.registration_date, u.user_type.value,
            u.account_state.value, "true" if u.is_verified else "false",
            u.location, u.education, u.experience,
        ]
        for u in report.users
    ]


def offer_rows(report: Report) -> list[list[Any]]:
    return [
        [
            o.id, o.title, o.employer.id, o.employer.name, o.employer.email,
            o.posted_date, o.status.value, o.location, o.modality, o.approx_payment,
        ]
        for o in report.offers
    ]


def postulation_rows(report: Report) -> list[list[Any]]:
    return [
        [
            p.id, p.applicant.id, p.applicant.name, p.applicant.email,
            p.offer.id, p.offer.title, p.offer.employer.id, p.offer.employer.name,
            p.postulation_date, p.status.value,
        ]
        for p in report.postulations
    ]


def _sections(report: Report) -> list[tuple[str, list[str], list[list[Any]]]]:
    return [
        ("Users", USER_HEADERS, user_rows(report)),
        ("Offers", OFFER_HEADERS, offer_rows(report)),
        ("Postulations", POSTULATION_HEADERS, postulation_rows(report)),
    ]


def _require_data(report: Report) -> None:
    if report.is_empty:
        msg = "No data to export in the selected date range."
        raise ValueError(msg)


def render_csv(report: Report) -> str:
    """CSV text for the report (no BOM)."""
    _require_data(report)
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    for i, (title, headers, rows) in enumerate(_sections(report)):
        if i:
            buf.write("\n")
        buf.write(f"{title}\n")
        writer.writerow(headers)
        writer.writerows(rows)
    return buf.getvalue()


def export_csv(report: Report, output_dir: str | Path = ".", filename: str | None = None) -> Path:
    """Write the report as CSV and return the file path.

    Raises:
        ValueError: If the report has no rows at all.
    """
    text = render_csv(report)
    path = Path(output_dir) / (filename or f"{report.window.file_stem}.csv")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8-sig")
    logger.info("Exported CSV report to %s", path)
    return path


def export_xlsx(report: Report, output_dir: str | Path = ".", filename: str | None = None) -> Path:
    """Write the report as an Excel workbook, one sheet per entity.

    Raises:
        ValueError: If the report has no rows at all.
        ImportError: If openpyxl is not installed.
    """
    _require_data(report)
    try:
        import openpyxl
        from openpyxl.styles import Border, Font, PatternFill, Side
        from openpyxl.utils import get_column_letter
    except ImportError:
        msg = (
            "openpyxl is required for Excel export. "
            "Install with: pip install 'cancheito-admin[excel]'"
        )
        raise ImportError(msg) from None

    wb = openpyxl.Workbook()
    wb.remove(wb.active)
    header_font = Font(bold=True)
    header_fill = PatternFill(start_color=_HEADER_FILL, end_color=_HEADER_FILL, fill_type="solid")
    header_border = Border(bottom=Side(style="thin"))

    for title, headers, rows in _sections(report):
        ws = wb.create_sheet(title=title)
        ws.append(headers)
        for row in rows:
            ws.append(row)
        for cell in ws[1]:
            cell.font = header_font
            cell.fill = header_fill
            cell.border = header_border
        for col, header in enumerate(headers, start=1):
            width = max([len(header)] + [len(str(row[col - 1])) for row in rows if row[col - 1]])
            ws.column_dimensions[get_column_letter(col)].width = width + 2

    path = Path(output_dir) / (filename or f"{report.window.file_stem}.xlsx")
    path.parent.mkdir(parents=True, exist_ok=True)
    wb.save(path)
    logger.info("Exported Excel report to %s", path)
    return path
