"""Domain resource tests — paths, payloads and list normalization."""

import pytest
import pytest_asyncio

from partner_portal.auth.tokens import TokenPair
from partner_portal.client import TOKEN_REFRESH_PATH
from partner_portal.errors import AccessForbidden
from partner_portal.resources import PortalApi, unwrap_results
from partner_portal.schemas.billing import (
    CustomerType,
    PlanType,
    TransactionType,
    type_label,
)


@pytest_asyncio.fixture()
async def portal(api):
    return PortalApi(api)


# ═══════════════════════════════════════════════════════════
# Helpers
# ═══════════════════════════════════════════════════════════


def test_unwrap_results_accepts_both_shapes():
    assert unwrap_results([{"id": 1}]) == [{"id": 1}]
    assert unwrap_results({"count": 1, "results": [{"id": 1}]}) == [{"id": 1}]
    assert unwrap_results({"count": 0}) == []
    assert unwrap_results(None) == []


def test_type_labels():
    assert type_label(CustomerType, 2) == "PPPoE"
    assert type_label(PlanType, "2") == "Coupon"
    assert type_label(TransactionType, 4) == "Cash payment"
    assert type_label(TransactionType, 42) == "Type 42"


def test_type_labels_same_code_across_enums():
    """Code 1 means something different for each type family."""
    assert type_label(CustomerType, 1) == "Hotspot"
    assert type_label(PlanType, 1) == "Billing Plan"
    assert type_label(TransactionType, 1) == "M-Pesa Top up"


# ═══════════════════════════════════════════════════════════
# Customers
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_customers_list_mine_with_search(portal, backend):
    backend.add("GET", "/api/v1/customers/my_customers/", 200, [{"id": "c1"}])

    result = await portal.customers.list_mine(search="jane doe")

    assert result == [{"id": "c1"}]
    req = backend.requests[0]
    assert req.url.params["search"] == "jane doe"


@pytest.mark.asyncio
async def test_customers_list_mine_without_search(portal, backend):
    backend.add("GET", "/api/v1/customers/my_customers/", 200, {"results": [{"id": "c1"}]})

    assert await portal.customers.list_mine() == [{"id": "c1"}]
    assert backend.requests[0].url.query == b""


@pytest.mark.asyncio
async def test_customers_crud_paths(portal, backend):
    backend.add("GET", "/api/v1/customers/c1/", 200, {"id": "c1"})
    backend.add("POST", "/api/v1/customers/", 201, {"id": "c2"})
    backend.add("PUT", "/api/v1/customers/c1/", 200, {"id": "c1"})
    backend.add("DELETE", "/api/v1/customers/c1/", 204)

    assert await portal.customers.get("c1") == {"id": "c1"}
    assert await portal.customers.create({"account_no": "ACC2"}) == {"id": "c2"}
    assert await portal.customers.update("c1", {"mac_address": "aa:bb"}) == {"id": "c1"}
    assert await portal.customers.delete("c1") is None

    assert [(r.method, r.url.path) for r in backend.requests] == [
        ("GET", "/api/v1/customers/c1/"),
        ("POST", "/api/v1/customers/"),
        ("PUT", "/api/v1/customers/c1/"),
        ("DELETE", "/api/v1/customers/c1/"),
    ]


# ═══════════════════════════════════════════════════════════
# Billing plans / NAS
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_billing_plans_list_and_update(portal, backend):
    backend.add("GET", "/api/v1/billing_plans/", 200, {"results": [{"id": "p1"}]})
    backend.add("PUT", "/api/v1/billing_plans/p1/", 200, {"id": "p1", "price": 60})

    assert await portal.billing_plans.list_all() == [{"id": "p1"}]
    updated = await portal.billing_plans.update("p1", {"price": 60})

    assert updated["price"] == 60
    assert backend.body(backend.requests[1]) == {"price": 60}


@pytest.mark.asyncio
async def test_nas_list(portal, backend):
    backend.add("GET", "/api/v1/nas/", 200, [{"id": "n1", "name": "core", "nas_ip": "10.0.0.1"}])
    assert await portal.nas.list_all() == [{"id": "n1", "name": "core", "nas_ip": "10.0.0.1"}]


# ═══════════════════════════════════════════════════════════
# Vouchers / transactions
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_voucher_purchase_payload(portal, backend):
    backend.add("POST", "/api/v1/vouchers/purchase/", 201, {"rad_username": "v-1"})

    await portal.vouchers.purchase("plan-1", "cust-1")

    assert backend.body(backend.requests[0]) == {
        "billing_id": "plan-1",
        "customer_profile": "cust-1",
    }


@pytest.mark.asyncio
async def test_vouchers_list_mine(portal, backend):
    backend.add("GET", "/api/v1/vouchers/my_customers_vouchers/", 200, [{"id": "v1"}])
    assert await portal.vouchers.list_mine() == [{"id": "v1"}]


@pytest.mark.asyncio
async def test_transaction_create_is_cash(portal, backend):
    backend.add("POST", "/api/v1/transactions/", 201, {"id": "t1"})

    await portal.transactions.create("cust-1", 250, narrative="March")

    assert backend.body(backend.requests[0]) == {
        "customer": "cust-1",
        "amount": 250.0,
        "narrative": "March",
        "type": 4,
    }


@pytest.mark.asyncio
async def test_transaction_create_omits_empty_narrative(portal, backend):
    backend.add("POST", "/api/v1/transactions/", 201, {"id": "t1"})

    await portal.transactions.create("cust-1", 100, narrative="")

    assert "narrative" not in backend.body(backend.requests[0])


# ═══════════════════════════════════════════════════════════
# Dashboard
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_dashboard_stats_combines_three_endpoints(portal, backend):
    backend.add("GET", "/api/v1/customers/stats/", 200, {"total_customers": 3})
    backend.add("GET", "/api/v1/billing_plans/stats/", 200, {"total_plans": 2})
    backend.add("GET", "/api/v1/transactions/stats/", 200, {"total_transactions": 9})

    stats = await portal.dashboard_stats()

    assert stats == {
        "customers": {"total_customers": 3},
        "billing_plans": {"total_plans": 2},
        "transactions": {"total_transactions": 9},
    }


@pytest.mark.asyncio
async def test_concurrent_calls_refresh_independently(portal, backend, token_store):
    """No single-flight: each 401 triggers its own refresh."""
    token_store.write(TokenPair(access="A1", refresh="R1"))
    for path in (
        "/api/v1/customers/stats/",
        "/api/v1/billing_plans/stats/",
        "/api/v1/transactions/stats/",
    ):
        backend.add("GET", path, 401)
        backend.add("GET", path, 200, {"ok": True})
    backend.add("POST", TOKEN_REFRESH_PATH, 200, {"access": "A2"})

    stats = await portal.dashboard_stats()

    assert stats["customers"] == {"ok": True}
    assert len(backend.calls("POST", TOKEN_REFRESH_PATH)) == 3
    assert token_store.access_token == "A2"


@pytest.mark.asyncio
async def test_resource_errors_propagate(portal, backend, navigator):
    backend.add("GET", "/api/v1/nas/", 403)

    with pytest.raises(AccessForbidden):
        await portal.nas.list_all()

    assert navigator.current == "/403"
