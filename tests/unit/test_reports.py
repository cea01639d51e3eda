"""Tests for date-range reports and CSV/Excel export."""

from datetime import date, datetime
from pathlib import Path
from unittest.mock import patch

import pytest

from cancheito.analytics.export import (
    OFFER_HEADERS,
    POSTULATION_HEADERS,
    USER_HEADERS,
    export_csv,
    export_xlsx,
    render_csv,
)
from cancheito.analytics.reports import DateRange, build_report
from cancheito.sync.aggregator import join_collections


def _ms(*args: int) -> int:
    return int(datetime(*args).timestamp() * 1000)


USERS = {
    "u1": {"nombre_completo": "Ana Torres", "email": "ana@x.com", "tiempo_registro": _ms(2026, 10, 5),
           "tipoUsuario": "empleador", "usuario_verificado": True},
    "u2": {"nombre_completo": "Luis Rojas", "email": "luis@x.com", "tiempo_registro": _ms(2026, 9, 1)},
    "u3": {"nombre_completo": "No Date"},
}
OFFERS = {
    "o1": {"cargo": "Backend Dev", "employerId": "u1", "estado": "ACTIVA",
           "createdAt": _ms(2026, 10, 6), "modalidad": "Remoto", "pago_aprox": "1500"},
    "o2": {"cargo": "Cashier", "employerId": "u1", "estado": "CERRADA", "createdAt": _ms(2026, 10, 20)},
}
POSTULATIONS = {
    "p1": {"postulanteId": "u2", "offerId": "o1", "fechaPostulacion": _ms(2026, 10, 7, 23, 59),
           "estado_postulacion": "Aceptada"},
}

WINDOW = DateRange(start=date(2026, 10, 5), end=date(2026, 10, 7))


def _report():  # type: ignore[no-untyped-def]
    return build_report(join_collections(USERS, OFFERS, POSTULATIONS), WINDOW)


class TestDateRange:
    def test_days_inclusive(self) -> None:
        assert WINDOW.days() == [date(2026, 10, 5), date(2026, 10, 6), date(2026, 10, 7)]

    def test_reversed_rejected(self) -> None:
        with pytest.raises(ValueError, match="after end"):
            DateRange(start=date(2026, 10, 7), end=date(2026, 10, 5))

    def test_file_stem(self) -> None:
        assert WINDOW.file_stem == "report_2026-10-05_to_2026-10-07"


class TestBuildReport:
    def test_filters_by_primary_date(self) -> None:
        report = _report()
        assert [u.id for u in report.users] == ["u1"]
        assert [o.id for o in report.offers] == ["o1"]
        assert [p.id for p in report.postulations] == ["p1"]

    def test_series_per_day(self) -> None:
        report = _report()
        assert [(d.date, d.count) for d in report.user_series] == [("Oct 5", 1), ("Oct 6", 0), ("Oct 7", 0)]
        assert [d.count for d in report.offer_series] == [0, 1, 0]
        assert [d.count for d in report.postulation_series] == [0, 0, 1]

    def test_empty_range(self) -> None:
        report = build_report(
            join_collections(USERS, OFFERS, POSTULATIONS),
            DateRange(start=date(2025, 1, 1), end=date(2025, 1, 2)),
        )
        assert report.is_empty


class TestCsvExport:
    def test_sections_and_headers(self) -> None:
        lines = render_csv(_report()).split("\n")
        assert lines[0] == "Users"
        assert lines[1] == ",".join(USER_HEADERS)
        assert lines[2] == "u1,Ana Torres,ana@x.com,2026-10-05,employer,Active,true,Unspecified,Unspecified,Unspecified"
        assert lines[3] == ""
        assert lines[4] == "Offers"
        assert lines[5] == ",".join(OFFER_HEADERS)
        assert lines[6].startswith("o1,Backend Dev,u1,Ana Torres,ana@x.com,2026-10-06,Active,")
        assert lines[8] == "Postulations"
        assert lines[9] == ",".join(POSTULATION_HEADERS)
        assert lines[10] == (
            "p1,u2,Luis Rojas,luis@x.com,o1,Backend Dev,u1,Ana Torres,2026-10-07 23:59,Accepted"
        )

    def test_quotes_commas(self) -> None:
        users = {"u1": {**USERS["u1"], "nombre_completo": "Torres, Ana"}}
        report = build_report(join_collections(users, {}, {}), WINDOW)
        assert '"Torres, Ana"' in render_csv(report)

    def test_written_with_bom(self, tmp_path: Path) -> None:
        path = export_csv(_report(), tmp_path)
        assert path.name == "report_2026-10-05_to_2026-10-07.csv"
        raw = path.read_bytes()
        assert raw.startswith(b"\xef\xbb\xbf")
        assert raw.decode("utf-8-sig").startswith("Users\n")

    def test_empty_report_refused(self, tmp_path: Path) -> None:
        report = build_report(join_collections({}, {}, {}), WINDOW)
        with pytest.raises(ValueError, match="No data to export"):
            export_csv(report, tmp_path)
        assert list(tmp_path.iterdir()) == []


class TestXlsxExport:
    def test_missing_openpyxl(self, tmp_path: Path) -> None:
        with (
            patch.dict("sys.modules", {"openpyxl": None}),
            pytest.raises(ImportError, match="openpyxl is required"),
        ):
            export_xlsx(_report(), tmp_path)

    def test_one_sheet_per_entity(self, tmp_path: Path) -> None:
        openpyxl = pytest.importorskip("openpyxl")
        path = export_xlsx(_report(), tmp_path)
        assert path.suffix == ".xlsx"
        wb = openpyxl.load_workbook(path)
        assert wb.sheetnames == ["Users", "Offers", "Postulations"]
        header = [c.value for c in wb["Offers"][1]]
        assert header == OFFER_HEADERS
        assert wb["Users"]["A1"].font.bold is True
        assert wb["Postulations"]["A2"].value == "p1"
