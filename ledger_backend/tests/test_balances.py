"""
Balance Aggregator and ledger read scope tests.
"""

import random
import uuid
from collections import defaultdict
from datetime import timedelta
from decimal import Decimal

import pytest

from ledger_backend.app.core.clock import utcnow
from ledger_backend.app.domain.ledger.balances import BalanceAggregator
from ledger_backend.app.models.business import Business, Customer
from ledger_backend.app.models.ledger_enums import Currency, EntryStatus
from helpers import CUSTOMER_USER_ID, STRANGER_ID, auth_headers


@pytest.fixture
async def walk_in(db_session, business):
    wallet = Customer(business_id=business.id, user_id=STRANGER_ID + 1, name="Walk-in")
    db_session.add(wallet)
    await db_session.commit()
    return wallet


@pytest.mark.asyncio
async def test_only_settled_entries_count(db_session, business, customer, make_entry):
    await make_entry(business.id, customer.id, "100.00", status=EntryStatus.FINALIZED)
    await make_entry(business.id, customer.id, "-30.00", status=EntryStatus.COMPLETED)
    await make_entry(business.id, customer.id, "500.00", status=EntryStatus.PENDING)
    await make_entry(business.id, customer.id, "40.00", status=EntryStatus.DISPUTED)
    await make_entry(business.id, customer.id, "60.00", status=EntryStatus.CANCELLED)
    await make_entry(business.id, customer.id, "9.99", currency=Currency.USD)

    balances = await BalanceAggregator.summarize(db_session, business.id, customer.id)

    by_currency = {line.currency: line for line in balances}
    assert by_currency[Currency.SAR].balance == Decimal("70.00")
    assert by_currency[Currency.SAR].count == 2
    assert by_currency[Currency.USD].balance == Decimal("9.99")
    assert by_currency[Currency.USD].count == 1


@pytest.mark.asyncio
async def test_summary_matches_sum_for_random_entry_sets(db_session, business, customer, walk_in, make_entry):
    rng = random.Random(20240611)
    expected = defaultdict(lambda: [Decimal("0"), 0])
    wallets = [customer, walk_in]
    statuses = list(EntryStatus)

    for _ in range(60):
        wallet = rng.choice(wallets)
        currency = rng.choice(list(Currency))
        status = rng.choice(statuses)
        magnitude = Decimal(rng.randint(1, 1_000_000)) / 100
        amount = magnitude if rng.random() < 0.6 else -magnitude

        await make_entry(business.id, wallet.id, amount, currency=currency, status=status)

        if status in (EntryStatus.FINALIZED, EntryStatus.COMPLETED):
            expected[(wallet.id, currency)][0] += amount
            expected[(wallet.id, currency)][1] += 1

    for wallet in wallets:
        balances = await BalanceAggregator.summarize(db_session, business.id, wallet.id)
        actual = {line.currency: (line.balance, line.count) for line in balances}
        wanted = {
            currency: (total, count)
            for (wallet_id, currency), (total, count) in expected.items()
            if wallet_id == wallet.id
        }
        assert actual == wanted

    whole_business = await BalanceAggregator.summarize(db_session, business.id)
    for line in whole_business:
        assert line.balance == sum(
            (total for (_, currency), (total, _) in expected.items() if currency == line.currency),
            Decimal("0"),
        )


@pytest.mark.asyncio
async def test_merchant_summary_whole_business_or_one_customer(client, merchant_headers, business, customer, walk_in, make_entry):
    await make_entry(business.id, customer.id, "10.00")
    await make_entry(business.id, walk_in.id, "15.00")

    whole = await client.get(f"/v1/ledger/summary?business_id={business.id}", headers=merchant_headers)
    one = await client.get(
        f"/v1/ledger/summary?business_id={business.id}&customer_id={walk_in.id}", headers=merchant_headers
    )

    assert Decimal(whole.json()[0]["balance"]) == Decimal("25.00")
    assert whole.json()[0]["count"] == 2
    assert Decimal(one.json()[0]["balance"]) == Decimal("15.00")


@pytest.mark.asyncio
async def test_customer_summary_ignores_supplied_customer_id(client, customer_headers, business, customer, walk_in, make_entry):
    await make_entry(business.id, customer.id, "10.00")
    await make_entry(business.id, walk_in.id, "15.00")

    response = await client.get(
        f"/v1/ledger/summary?business_id={business.id}&customer_id={walk_in.id}", headers=customer_headers
    )

    assert response.status_code == 200
    [line] = response.json()
    assert Decimal(line["balance"]) == Decimal("10.00")
    assert line["count"] == 1


@pytest.mark.asyncio
async def test_summary_without_wallet_is_empty(client, stranger_headers, business, customer, make_entry):
    await make_entry(business.id, customer.id, "10.00")

    response = await client.get(f"/v1/ledger/summary?business_id={business.id}", headers=stranger_headers)

    assert response.status_code == 200
    assert response.json() == []


@pytest.mark.asyncio
async def test_summary_requires_business_id(client, customer_headers):
    response = await client.get("/v1/ledger/summary", headers=customer_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_summary_all_spans_businesses(client, customer_headers, db_session, business, other_business, customer, make_entry):
    pharmacy_wallet = Customer(business_id=other_business.id, user_id=CUSTOMER_USER_ID, name="Amal")
    db_session.add(pharmacy_wallet)
    await db_session.commit()

    await make_entry(business.id, customer.id, "100.00", currency=Currency.YER)
    await make_entry(other_business.id, pharmacy_wallet.id, "-40.00", currency=Currency.YER)
    await make_entry(other_business.id, pharmacy_wallet.id, "5.00", currency=Currency.USD)
    await make_entry(other_business.id, pharmacy_wallet.id, "1000.00", status=EntryStatus.PENDING)

    response = await client.get("/v1/ledger/summary-all", headers=customer_headers)

    assert response.status_code == 200
    data = response.json()
    by_currency = {line["currency"]: line for line in data["data"]}
    assert Decimal(by_currency["YER"]["balance"]) == Decimal("60.00")
    assert by_currency["YER"]["count"] == 2
    assert Decimal(by_currency["USD"]["balance"]) == Decimal("5.00")
    assert Decimal(data["total"]) == Decimal("65.00")


@pytest.mark.asyncio
async def test_summary_all_without_wallets(client, stranger_headers):
    response = await client.get("/v1/ledger/summary-all", headers=stranger_headers)

    assert response.status_code == 200
    assert response.json()["data"] == []
    assert Decimal(response.json()["total"]) == Decimal("0")


@pytest.mark.asyncio
async def test_summary_all_requires_token(client):
    response = await client.get("/v1/ledger/summary-all")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_list_entries_scopes(client, merchant_headers, customer_headers, stranger_headers, business, customer, walk_in, make_entry):
    mine = await make_entry(business.id, customer.id, "10.00", status=EntryStatus.PENDING)
    theirs = await make_entry(business.id, walk_in.id, "-15.00")

    merchant_view = await client.get(f"/v1/ledger/entries?business_id={business.id}", headers=merchant_headers)
    assert {item["id"] for item in merchant_view.json()} == {str(mine.id), str(theirs.id)}

    customer_view = await client.get(
        f"/v1/ledger/entries?business_id={business.id}&customer_id={walk_in.id}", headers=customer_headers
    )
    assert [item["id"] for item in customer_view.json()] == [str(mine.id)]

    stranger_view = await client.get(f"/v1/ledger/entries?business_id={business.id}", headers=stranger_headers)
    assert stranger_view.status_code == 403
    assert stranger_view.json()["error_code"] == "FORBIDDEN"


@pytest.mark.asyncio
async def test_list_entries_newest_first_and_paginated(client, merchant_headers, business, customer, make_entry):
    created = [await make_entry(business.id, customer.id, f"{n}.00") for n in range(1, 6)]

    page = await client.get(
        f"/v1/ledger/entries?business_id={business.id}&limit=2&offset=1", headers=merchant_headers
    )

    assert page.status_code == 200
    assert [item["id"] for item in page.json()] == [str(created[3].id), str(created[2].id)]


@pytest.mark.asyncio
@pytest.mark.parametrize("query", ["limit=0", "limit=101", "offset=-1"])
async def test_list_entries_rejects_bad_paging(client, merchant_headers, business, query):
    response = await client.get(f"/v1/ledger/entries?business_id={business.id}&{query}", headers=merchant_headers)

    assert response.status_code == 400
    assert response.json()["error_code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_entry_history_scope(client, merchant_headers, customer_headers, business, customer, walk_in, make_entry):
    mine = await make_entry(business.id, customer.id, "10.00")
    theirs = await make_entry(business.id, walk_in.id, "10.00")

    assert (await client.get(f"/v1/ledger/entries/{mine.id}/events", headers=customer_headers)).status_code == 200
    assert (await client.get(f"/v1/ledger/entries/{theirs.id}/events", headers=merchant_headers)).status_code == 200

    denied = await client.get(f"/v1/ledger/entries/{theirs.id}/events", headers=customer_headers)
    assert denied.status_code == 403

    other_merchant = auth_headers(999, roles=["merchant"])
    assert (await client.get(f"/v1/ledger/entries/{mine.id}/events", headers=other_merchant)).status_code == 403

    missing = await client.get(f"/v1/ledger/entries/{uuid.uuid4()}/events", headers=merchant_headers)
    assert missing.status_code == 404


@pytest.fixture
async def shops(db_session):
    """Three more businesses where the customer user holds a wallet."""
    wallets = []
    for index, name in enumerate(["Bakery", "Tailor", "Garage"]):
        shop = Business(owner_user_id=600 + index, name=name, is_active=True)
        db_session.add(shop)
        await db_session.flush()
        wallet = Customer(business_id=shop.id, user_id=CUSTOMER_USER_ID, name="Amal")
        db_session.add(wallet)
        wallets.append((shop, wallet))
    await db_session.commit()
    return wallets


@pytest.mark.asyncio
async def test_top_businesses_ranking(db_session, business, customer, shops, make_entry):
    (bakery, bakery_wallet), (tailor, tailor_wallet), (garage, garage_wallet) = shops
    now = utcnow()

    # Corner Shop: three settled entries, one pending that must not count
    for amount in ("10.00", "-4.00", "1.00"):
        await make_entry(business.id, customer.id, amount)
    await make_entry(business.id, customer.id, "500.00", status=EntryStatus.PENDING)
    # Bakery and Tailor tie on count; Tailor is more recent
    await make_entry(bakery.id, bakery_wallet.id, "900.00", created_at=now - timedelta(days=3))
    await make_entry(tailor.id, tailor_wallet.id, "1.00", created_at=now - timedelta(hours=1))
    # Garage has no settled activity at all

    ranked = await BalanceAggregator.summarize_by_business(db_session, CUSTOMER_USER_ID, limit=4)

    assert [line.business_name for line in ranked] == ["Corner Shop", "Tailor", "Bakery", "Garage"]
    corner = ranked[0]
    assert corner.customer_id == customer.id
    assert corner.transaction_count == 3
    assert corner.balance == Decimal("7.00")
    assert ranked[-1].transaction_count == 0
    assert ranked[-1].balance == Decimal("0.00")
    assert ranked[-1].last_transaction_at is None

    top = await BalanceAggregator.summarize_by_business(db_session, CUSTOMER_USER_ID)
    assert len(top) == 3


@pytest.mark.asyncio
async def test_top_businesses_balance_breaks_ties(db_session, shops, make_entry):
    (bakery, bakery_wallet), (tailor, tailor_wallet), (garage, garage_wallet) = shops
    same_moment = utcnow() - timedelta(hours=2)

    await make_entry(bakery.id, bakery_wallet.id, "20.00", created_at=same_moment)
    await make_entry(tailor.id, tailor_wallet.id, "-50.00", created_at=same_moment)
    # Unsettled entries never count towards activity
    await make_entry(garage.id, garage_wallet.id, "5.00", status=EntryStatus.PENDING)
    await make_entry(garage.id, garage_wallet.id, "80.00", status=EntryStatus.CANCELLED)

    ranked = await BalanceAggregator.summarize_by_business(db_session, CUSTOMER_USER_ID)

    assert [line.business_name for line in ranked] == ["Tailor", "Bakery", "Garage"]
    assert ranked[0].balance == Decimal("-50.00")
    assert ranked[2].transaction_count == 0


@pytest.mark.asyncio
async def test_top_businesses_route(client, customer_headers, stranger_headers, business, customer, make_entry):
    await make_entry(business.id, customer.id, "125.50")

    response = await client.get("/v1/ledger/top-businesses", headers=customer_headers)

    assert response.status_code == 200
    [line] = response.json()
    assert line["business_id"] == str(business.id)
    assert line["business_name"] == "Corner Shop"
    assert line["balance"] == "125.50"
    assert line["transaction_count"] == 1
    assert line["last_transaction_at"]

    empty = await client.get("/v1/ledger/top-businesses", headers=stranger_headers)
    assert empty.json() == []

    assert (await client.get("/v1/ledger/top-businesses?limit=0", headers=customer_headers)).status_code == 400
    assert (await client.get("/v1/ledger/top-businesses")).status_code == 401


@pytest.mark.asyncio
async def test_balances_are_decimal_strings_on_the_wire(client, customer_headers, business, customer, make_entry):
    await make_entry(business.id, customer.id, "9.99")
    await make_entry(business.id, customer.id, "0.01")

    summary = await client.get(f"/v1/ledger/summary?business_id={business.id}", headers=customer_headers)
    summary_all = await client.get("/v1/ledger/summary-all", headers=customer_headers)

    assert summary.json() == [{"currency": "SAR", "balance": "10.00", "count": 2}]
    assert summary_all.json()["total"] == "10.00"
