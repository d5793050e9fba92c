"""Stock report rendered with reportlab."""
from __future__ import annotations

from datetime import datetime
from typing import IO

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from fermes_backend.domain import Actor, Ferme, StockAddition, StockItem, StockTransfer, WorkflowStatus

HEADER_GREEN = colors.Color(34 / 255, 197 / 255, 94 / 255)
SECTION_BLUE = colors.Color(59 / 255, 130 / 255, 246 / 255)


def summary_lines(
    stocks: list[StockItem],
    transfers: list[StockTransfer],
    additions: list[StockAddition],
) -> list[str]:
    pending_transfers = sum(1 for t in transfers if t.status == WorkflowStatus.PENDING)
    confirmed_transfers = sum(1 for t in transfers if t.status == WorkflowStatus.CONFIRMED)
    pending_additions = sum(1 for a in additions if a.status == WorkflowStatus.PENDING)
    return [
        f"{len(stocks)} articles en stock dans le systeme",
        f"{sum(s.quantity for s in stocks)} pieces au total",
        f"{len({s.item for s in stocks})} types d'articles differents",
        f"{len({s.secteur_id for s in stocks})} secteurs avec du stock",
        f"{pending_transfers} transferts en attente",
        f"{confirmed_transfers} transferts confirmes",
        f"{pending_additions} ajouts de stock en attente",
    ]


def _status_label(status: WorkflowStatus) -> str:
    return "Confirme" if status == WorkflowStatus.CONFIRMED else "En attente"


def _date(value: object) -> str:
    if not value:
        return ""
    try:
        return datetime.fromisoformat(str(value)).strftime("%d/%m/%Y")
    except ValueError:
        return str(value)


def _table(rows: list[list[str]], fill: colors.Color) -> Table:
    table = Table(rows, repeatRows=1)
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), fill),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 9),
                ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.whitesmoke]),
                ("GRID", (0, 0), (-1, -1), 0.25, colors.lightgrey),
            ]
        )
    )
    return table


def export_stock_pdf(
    target: IO[bytes],
    actor: Actor,
    stocks: list[StockItem],
    transfers: list[StockTransfer],
    additions: list[StockAddition],
    fermes: list[Ferme],
) -> IO[bytes]:
    names = {ferme.id: ferme.nom for ferme in fermes}
    styles = getSampleStyleSheet()
    document = SimpleDocTemplate(
        target,
        pagesize=A4,
        leftMargin=20 * mm,
        rightMargin=20 * mm,
        topMargin=20 * mm,
        bottomMargin=20 * mm,
        title="Rapport complet de stock",
    )

    role = "Super Admin" if actor.is_elevated else "Admin Secteur"
    story: list = [
        Paragraph("RAPPORT COMPLET DE STOCK", styles["Title"]),
        Paragraph(f"Genere le: {datetime.now().strftime('%d/%m/%Y %H:%M')}", styles["Normal"]),
        Paragraph(f"Utilisateur: {actor.nom or 'Utilisateur'} ({role})", styles["Normal"]),
        Spacer(1, 8 * mm),
        Paragraph("RESUME EXECUTIF", styles["Heading2"]),
    ]
    story.extend(Paragraph(f"• {line}", styles["Normal"]) for line in summary_lines(stocks, transfers, additions))

    story += [Spacer(1, 6 * mm), Paragraph("INVENTAIRE ACTUEL", styles["Heading2"])]
    stock_rows = [["Article", "Secteur", "Quantite", "Unite", "Derniere MAJ"]]
    stock_rows += [
        [s.item, names.get(s.secteur_id, s.secteur_id), str(s.quantity), s.unit, _date(s.last_updated)]
        for s in stocks
    ]
    story.append(_table(stock_rows, SECTION_BLUE))

    if transfers:
        story += [Spacer(1, 6 * mm), Paragraph("HISTORIQUE DES TRANSFERTS", styles["Heading2"])]
        transfer_rows = [["Date", "Article", "De", "Vers", "Quantite", "Statut"]]
        transfer_rows += [
            [
                _date(t.created_at),
                t.item,
                names.get(t.from_secteur_id, t.from_secteur_id),
                names.get(t.to_secteur_id, t.to_secteur_id),
                f"{t.quantity} {t.unit}",
                _status_label(t.status),
            ]
            for t in transfers
        ]
        story.append(_table(transfer_rows, HEADER_GREEN))

    if additions:
        story += [Spacer(1, 6 * mm), Paragraph("AJOUTS DE STOCK", styles["Heading2"])]
        addition_rows = [["Date", "Article", "Secteur", "Quantite", "Statut"]]
        addition_rows += [
            [
                _date(a.created_at),
                a.item,
                names.get(a.secteur_id, a.secteur_id),
                f"{a.quantity} {a.unit}",
                _status_label(a.status),
            ]
            for a in additions
        ]
        story.append(_table(addition_rows, HEADER_GREEN))

    document.build(story)
    return target
