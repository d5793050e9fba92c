from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path
from typing import IO, Iterable

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from fermes_backend.core.stock_views import total_stock_summary
from fermes_backend.domain import Actor, Ferme, StockItem

HEADER = ["Article", "Quantité", "Unité", "Dernière MAJ"]
COLUMN_WIDTHS = [25, 12, 12, 15]
SUMMARY_HEADER = ["Article", "Quantité Totale", "Unité", "Secteurs Concernés"]
SUMMARY_WIDTHS = [25, 15, 12, 40]
EMPTY_ROW = ["Aucun stock disponible", "", "", ""]

_INVALID_SHEET_CHARS = re.compile(r"[\[\]\\/?*:]")


def sheet_title(name: str) -> str:
    """Excel sheet names: no ``[]\\/?*:`` and at most 31 characters."""

    cleaned = _INVALID_SHEET_CHARS.sub("", name).strip()[:31]
    return cleaned or "Secteur"


def _format_date(value: str | None) -> str:
    if not value:
        return ""
    try:
        return datetime.fromisoformat(value).strftime("%d/%m/%Y")
    except ValueError:
        return str(value)


def _fill_sheet(sheet, header: list[str], widths: list[int], rows: list[list[object]]) -> None:
    sheet.append(header)
    for cell in sheet[1]:
        cell.font = Font(bold=True)
    for row in rows:
        sheet.append(row)
    for index, width in enumerate(widths):
        sheet.column_dimensions[get_column_letter(index + 1)].width = width


def _stock_rows(stocks: Iterable[StockItem]) -> list[list[object]]:
    rows = [[s.item, s.quantity, s.unit, _format_date(s.last_updated)] for s in stocks]
    return rows or [list(EMPTY_ROW)]


def build_stock_workbook(actor: Actor, stocks: list[StockItem], fermes: list[Ferme]) -> Workbook:
    names = {ferme.id: ferme.nom for ferme in fermes}
    workbook = Workbook()
    default_sheet = workbook.active

    if actor.is_elevated:
        summary = total_stock_summary(stocks)
        if summary:
            sheet = workbook.create_sheet("Résumé Total")
            _fill_sheet(
                sheet,
                SUMMARY_HEADER,
                SUMMARY_WIDTHS,
                [
                    [entry.item, entry.total_quantity, entry.unit, ", ".join(names.get(s, s) for s in entry.secteurs)]
                    for entry in summary
                ],
            )
        used: set[str] = set(workbook.sheetnames)
        for ferme in fermes:
            title = sheet_title(ferme.nom)
            suffix = 2
            while title in used:
                tail = f" ({suffix})"
                title = sheet_title(ferme.nom)[: 31 - len(tail)] + tail
                suffix += 1
            used.add(title)
            sheet = workbook.create_sheet(title)
            _fill_sheet(sheet, HEADER, COLUMN_WIDTHS, _stock_rows(s for s in stocks if s.secteur_id == ferme.id))
    else:
        sheet = workbook.create_sheet("Mon Inventaire")
        own = [s for s in stocks if s.secteur_id == actor.ferme_id]
        _fill_sheet(sheet, HEADER, COLUMN_WIDTHS, _stock_rows(own))

    if len(workbook.sheetnames) > 1:
        workbook.remove(default_sheet)
    else:
        _fill_sheet(default_sheet, HEADER, COLUMN_WIDTHS, [list(EMPTY_ROW)])
    return workbook


def export_stock_workbook(target: Path | IO[bytes], actor: Actor, stocks: list[StockItem], fermes: list[Ferme]) -> Path | IO[bytes]:
    workbook = build_stock_workbook(actor, stocks, fermes)
    if isinstance(target, Path):
        target.parent.mkdir(parents=True, exist_ok=True)
    workbook.save(target)
    return target


def report_filename(actor: Actor, fermes: list[Ferme], today: str | None = None) -> str:
    today = today or datetime.now().strftime("%Y-%m-%d")
    if actor.is_elevated:
        return f"inventaire_resume_complet_{today}.xlsx"
    name = next((ferme.nom for ferme in fermes if ferme.id == actor.ferme_id), actor.ferme_id or "secteur")
    slug = re.sub(r"\s+", "_", name)
    return f"inventaire_{slug}_{today}.xlsx"
