import sys
from datetime import date
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from fermes_backend.core.stock_views import (
    available_items,
    filter_transfers,
    pending_count,
    total_stock_summary,
)
from fermes_backend.domain import Actor, Role, StockAddition, StockItem, StockTransfer, WorkflowStatus

STOCKS = [
    StockItem(id="s1", secteur_id="A", item="ciment", quantity=10, unit="sac"),
    StockItem(id="s2", secteur_id="B", item="ciment", quantity=4, unit="sac"),
    StockItem(id="s3", secteur_id="B", item="sable", quantity=0, unit="m3"),
]

TRANSFERS = [
    StockTransfer(
        id="t1",
        from_secteur_id="A",
        to_secteur_id="B",
        item="Ciment gris",
        quantity=2,
        unit="sac",
        created_at="2024-03-01T08:00:00+00:00",
    ),
    StockTransfer(
        id="t2",
        from_secteur_id="B",
        to_secteur_id="A",
        item="sable",
        quantity=1,
        unit="m3",
        status=WorkflowStatus.CONFIRMED,
        created_at="2024-03-05T23:30:00+00:00",
    ),
    StockTransfer(
        id="t3",
        from_secteur_id="B",
        to_secteur_id="A",
        item="engrais",
        quantity=3,
        unit="kg",
        created_at="2024-03-10T10:00:00",
    ),
]


def test_total_summary_groups_by_item_and_unit():
    summary = total_stock_summary(STOCKS)

    ciment = next(entry for entry in summary if entry.item == "ciment")
    assert ciment.total_quantity == 14
    assert ciment.secteurs == ["A", "B"]
    assert len(summary) == 2


def test_available_items_skip_empty_rows():
    assert available_items(STOCKS, "B") == [{"item": "ciment", "unit": "sac", "available": 4}]
    assert available_items(STOCKS, "Z") == []


def test_filter_transfers_by_article_status_and_dates():
    assert [t.id for t in filter_transfers(TRANSFERS, article="CIMENT")] == ["t1"]
    assert [t.id for t in filter_transfers(TRANSFERS, status="confirmed")] == ["t2"]
    assert [t.id for t in filter_transfers(TRANSFERS, status="pending")] == ["t1", "t3"]
    assert [t.id for t in filter_transfers(TRANSFERS, date_from="2024-03-02")] == ["t2", "t3"]
    assert [t.id for t in filter_transfers(TRANSFERS, date_to=date(2024, 3, 5))] == ["t1", "t2"]
    assert filter_transfers(TRANSFERS, article="ciment", status="confirmed") == []


def test_pending_count_depends_on_role():
    additions = [
        StockAddition(id="a1", secteur_id="A", item="engrais", quantity=5),
        StockAddition(id="a2", secteur_id="A", item="sable", quantity=1, status=WorkflowStatus.CONFIRMED),
    ]
    admin_a = Actor(uid="u1", role=Role.ADMIN, ferme_id="A")
    admin_b = Actor(uid="u2", role=Role.ADMIN, ferme_id="B")
    superadmin = Actor(uid="root", role=Role.SUPERADMIN)

    assert pending_count(admin_a, TRANSFERS, additions) == 2
    assert pending_count(admin_b, TRANSFERS, []) == 1
    assert pending_count(superadmin, TRANSFERS, additions) == 0
