"""Typed helpers for the portal's domain endpoints.

Learn: These are thin — each method is one ApiClient call with the right
path. All auth handling (bearer header, refresh, redirects) stays in the
client; errors propagate unchanged.

List endpoints answer either a bare JSON list or a paginated envelope
({"count": .., "results": [...]}) depending on backend settings.
unwrap_results() normalizes both to a list.
"""

import asyncio
from typing import Any, Optional
from urllib.parse import urlencode

from partner_portal.client import ApiClient
from partner_portal.schemas.billing import TransactionCreate, VoucherPurchase

API_PREFIX = "/api/v1"


def unwrap_results(data: Any) -> list:
    """Return the list of items from a list or paginated response."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        return data.get("results") or []
    return []


def _with_query(path: str, **params) -> str:
    query = {k: v for k, v in params.items() if v is not None and v != ""}
    if not query:
        return path
    return f"{path}?{urlencode(query)}"


class _Resource:
    """Shared CRUD for endpoints shaped /api/v1/<name>/ and /api/v1/<name>/<id>/."""

    name: str = ""

    def __init__(self, client: ApiClient):
        self.client = client

    @property
    def base_path(self) -> str:
        return f"{API_PREFIX}/{self.name}/"

    def item_path(self, item_id: str) -> str:
        return f"{self.base_path}{item_id}/"


class CustomersApi(_Resource):
    name = "customers"

    async def list_mine(self, search: Optional[str] = None) -> list[dict]:
        """Customers owned by the logged-in partner, optionally filtered."""
        path = _with_query(f"{self.base_path}my_customers/", search=search)
        return unwrap_results(await self.client.get(path))

    async def get(self, customer_id: str) -> dict:
        return await self.client.get(self.item_path(customer_id))

    async def create(self, payload: dict) -> dict:
        return await self.client.post(self.base_path, payload)

    async def update(self, customer_id: str, payload: dict) -> dict:
        return await self.client.put(self.item_path(customer_id), payload)

    async def delete(self, customer_id: str) -> Any:
        return await self.client.delete(self.item_path(customer_id))

    async def stats(self) -> dict:
        return await self.client.get(f"{self.base_path}stats/")


class BillingPlansApi(_Resource):
    name = "billing_plans"

    async def list_all(self) -> list[dict]:
        return unwrap_results(await self.client.get(self.base_path))

    async def get(self, plan_id: str) -> dict:
        return await self.client.get(self.item_path(plan_id))

    async def create(self, payload: dict) -> dict:
        return await self.client.post(self.base_path, payload)

    async def update(self, plan_id: str, payload: dict) -> dict:
        return await self.client.put(self.item_path(plan_id), payload)

    async def delete(self, plan_id: str) -> Any:
        return await self.client.delete(self.item_path(plan_id))

    async def stats(self) -> dict:
        return await self.client.get(f"{self.base_path}stats/")


class VouchersApi(_Resource):
    name = "vouchers"

    async def list_mine(self) -> list[dict]:
        """Vouchers of every customer the partner owns."""
        return unwrap_results(
            await self.client.get(f"{self.base_path}my_customers_vouchers/")
        )

    async def purchase(self, billing_id: str, customer_profile: str) -> Any:
        body = VoucherPurchase(billing_id=billing_id, customer_profile=customer_profile)
        return await self.client.post(f"{self.base_path}purchase/", body)


class TransactionsApi(_Resource):
    name = "transactions"

    async def list_all(self) -> list[dict]:
        return unwrap_results(await self.client.get(self.base_path))

    async def create(self, customer: str, amount, narrative: Optional[str] = None) -> Any:
        """Record a cash payment against a customer account."""
        body = TransactionCreate(customer=customer, amount=amount, narrative=narrative or None)
        return await self.client.post(self.base_path, body)

    async def stats(self) -> dict:
        return await self.client.get(f"{self.base_path}stats/")


class NasApi(_Resource):
    name = "nas"

    async def list_all(self) -> list[dict]:
        return unwrap_results(await self.client.get(self.base_path))


class PortalApi:
    """All domain resources over one client."""

    def __init__(self, client: ApiClient):
        self.client = client
        self.customers = CustomersApi(client)
        self.billing_plans = BillingPlansApi(client)
        self.vouchers = VouchersApi(client)
        self.transactions = TransactionsApi(client)
        self.nas = NasApi(client)

    async def dashboard_stats(self) -> dict:
        """Fetch customer, plan and transaction stats concurrently."""
        customers, billing_plans, transactions = await asyncio.gather(
            self.customers.stats(),
            self.billing_plans.stats(),
            self.transactions.stats(),
        )
        return {
            "customers": customers,
            "billing_plans": billing_plans,
            "transactions": transactions,
        }
