#!/usr/bin/env python3
"""
Partner Portal Quickstart — sign in, look around, sell a voucher.

Signs in → dashboard stats → customers → billing plans → buys a voucher
for the first customer on the cheapest plan.
Run with: python examples/quickstart.py

Requires: pip install -e .
Backend must be running: http://localhost:8000 (or PARTNER_PORTAL_API_URL)
"""

import asyncio
import sys

from _common import create_client

from partner_portal.errors import PortalError
from partner_portal.resources import PortalApi


async def main():
    client = await create_client()
    portal = PortalApi(client)

    try:
        # ── Dashboard ─────────────────────────────────────────────────
        print("\n1. Dashboard stats...")
        stats = await portal.dashboard_stats()
        print(f"   Customers:    {stats['customers'].get('total_customers', 0)}")
        print(f"   Plans:        {stats['billing_plans'].get('total_plans', 0)}")
        print(f"   Transactions: {stats['transactions'].get('total_transactions', 0)}")

        # ── Customers ─────────────────────────────────────────────────
        print("\n2. Listing customers...")
        customers = await portal.customers.list_mine()
        for c in customers[:5]:
            print(f"   {c['account_no']}  ({c['id'][:8]}...)")
        if not customers:
            print("   No customers yet — create one in the dashboard first.")
            return

        # ── Plans ─────────────────────────────────────────────────────
        print("\n3. Listing billing plans...")
        plans = await portal.billing_plans.list_all()
        for p in plans:
            print(f"   {p['display_name']:24s}  {p['price']}")
        if not plans:
            print("   No billing plans yet.")
            return

        # ── Voucher ───────────────────────────────────────────────────
        cheapest = min(plans, key=lambda p: float(p["price"]))
        customer = customers[0]
        print(f"\n4. Buying '{cheapest['display_name']}' for {customer['account_no']}...")
        voucher = await portal.vouchers.purchase(cheapest["id"], customer["id"])
        if isinstance(voucher, dict) and voucher.get("rad_username"):
            print(f"   Voucher: {voucher['rad_username']} / {voucher.get('rad_password')}")
        else:
            print("   Voucher purchased.")

    except PortalError as e:
        print(f"ERROR: {e}")
        sys.exit(1)
    finally:
        await client.aclose()

    print("\nDone.")


if __name__ == "__main__":
    asyncio.run(main())
