"""
End-to-end tests for the MCP server.

Drives a full session through tool calls: seeding categories, importing a
CSV file, recording expenses and reading back analytics.
"""

import json

import pytest

from spendsight_mcp.core.auth import AuthSession, make_user
from spendsight_mcp.models.user import UserRole
from spendsight_mcp.server import SpendSightServer

CSV = (
    "Date,Merchant,Amount,Currency,Category,CardId,Reimbursable,Notes\n"
    "2024-01-15,Starbucks,5.50,USD,Coffee,card_1,false,Morning\n"
    '2024-01-15,"Amazon, Inc.",49.99,USD,Office Supplies,card_1,TRUE,Books\n'
    "\n"
    "2024-01-16,Delta Airlines,250.00,usd,Flights,card_2,true,Flight to NY\n"
    "2024-01-17,Hotel Ritz,-20,EUR,Hotels,card_2,false,Bad row\n"
    "2024-01-18,Hotel Ritz,180,EUR,Hotels,card_2,false,\n"
)


async def call(server: SpendSightServer, name: str, **arguments):
    result = await server.dispatch(name, arguments)
    text = result[0].text
    assert not text.startswith("Error"), text
    return json.loads(text)


@pytest.fixture
def server(settings):
    return SpendSightServer(settings=settings)


@pytest.mark.e2e
@pytest.mark.asyncio
async def test_full_session(server, write_csv):
    seeded = await call(server, "seed_default_categories")
    assert seeded["total"] == 53

    outcome = await call(server, "import_csv", path=str(write_csv(CSV)))
    assert outcome == {
        "status": "success",
        "imported_count": 4,
        "skipped_count": 1,
        "errors": [outcome["errors"][0]],
    }
    assert outcome["errors"][0].startswith("Row 5:")

    reimbursable = await call(server, "get_transactions", is_reimbursable=True)
    assert {t["merchant"] for t in reimbursable["transactions"]} == {
        "Amazon, Inc.",
        "Delta Airlines",
    }

    stats = await call(server, "get_stats")
    assert stats["total_count"] == 4
    assert stats["currency_breakdown"] == {"USD": pytest.approx(305.49), "EUR": 180}

    added = await call(
        server,
        "add_transaction",
        date="2024-01-15",
        merchant="starbucks",
        amount=5.5,
        category="Coffee",
    )
    assert added["possible_duplicate"] is True

    card_2 = await call(server, "get_stats", card_id="card_2")
    assert card_2["total_count"] == 2

    spending = await call(server, "get_spending_by_category", start_date="2024-01-01", end_date="2024-01-31")
    assert spending["categories"][0]["name"] == "Flights"


@pytest.mark.e2e
@pytest.mark.asyncio
async def test_import_failure_is_reported_not_raised(server, write_csv):
    outcome = await call(
        server, "import_csv", path=str(write_csv("Date,Merchant,Amount,Currency\n"))
    )
    assert outcome["status"] == "error"
    assert outcome["kind"] == "empty_file"
    assert len(server.ledger) == 0


@pytest.mark.e2e
@pytest.mark.asyncio
async def test_viewer_session_is_read_only(settings, write_csv):
    session = AuthSession(make_user("viewer@example.com", UserRole.VIEWER))
    server = SpendSightServer(session=session, settings=settings)

    denied = await server.dispatch("import_csv", {"path": str(write_csv(CSV))})
    assert denied[0].text.startswith("Error: Permission")
    assert len(server.ledger) == 0

    stats = await call(server, "get_stats")
    assert stats["total_count"] == 0
