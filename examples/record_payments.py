#!/usr/bin/env python3
"""
Record a batch of cash payments from a CSV file.

CSV columns: account_no,amount[,narrative]
Run with: python examples/record_payments.py payments.csv

Each row is matched to one of your customers by account number and
recorded as a cash transaction. Unknown accounts are skipped.
"""

import asyncio
import csv
import sys

from _common import create_client

from partner_portal.errors import ApiError, PortalError
from partner_portal.resources import PortalApi


async def main(path: str):
    client = await create_client()
    portal = PortalApi(client)

    try:
        customers = await portal.customers.list_mine()
        by_account = {c["account_no"]: c for c in customers}
        print(f"\nLoaded {len(by_account)} customers")

        recorded = skipped = 0
        with open(path, newline="") as f:
            for row in csv.DictReader(f):
                account = row["account_no"].strip()
                customer = by_account.get(account)
                if not customer:
                    print(f"  skip  {account}: not one of your customers")
                    skipped += 1
                    continue

                try:
                    await portal.transactions.create(
                        customer["id"], float(row["amount"]), row.get("narrative")
                    )
                except ApiError as e:
                    print(f"  fail  {account}: {e}")
                    skipped += 1
                    continue

                print(f"  ok    {account}: {row['amount']}")
                recorded += 1

        print(f"\nRecorded {recorded}, skipped {skipped}")

    except PortalError as e:
        print(f"ERROR: {e}")
        sys.exit(1)
    finally:
        await client.aclose()


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(2)
    asyncio.run(main(sys.argv[1]))
