#!/usr/bin/env python3
# =============================================================================
# File: scripts/tenant_report.py
# Description: Print every user that holds data for one tenant
# =============================================================================
"""
List a tenant's users as they would be served by GET /users/{id}.

    python scripts/tenant_report.py acme
    python scripts/tenant_report.py acme --json
"""

import argparse
import asyncio
import json

from rich.console import Console
from rich.table import Table

from tenantsync.config.logging_config import setup_logging
from tenantsync.infra.persistence.pg_client import PostgresClient
from tenantsync.user_sync import tenant_fields
from tenantsync.user_sync.user_store import UserStore


async def load_views(tenant_id: str) -> list:
    pg = PostgresClient()
    await pg.init()
    try:
        records = await UserStore(pg).list_by_tenant(tenant_id)
    finally:
        await pg.close()
    return [tenant_fields.project(record, tenant_id) for record in records]


def render(tenant_id: str, views: list) -> None:
    console = Console()
    custom_keys = sorted({k for v in views for k in v} - {
        "id", "name", "email", "password", "role", "created_at", "updated_at",
    })

    table = Table(title=f"Users for tenant '{tenant_id}' ({len(views)})")
    for column in ["id", "name", "email", "role", *custom_keys]:
        table.add_column(column)
    for view in views:
        table.add_row(*(str(view.get(column, "")) for column in ["id", "name", "email", "role", *custom_keys]))

    console.print(table)


def main():
    parser = argparse.ArgumentParser(description="List a tenant's users")
    parser.add_argument("tenant_id")
    parser.add_argument("--json", action="store_true", help="Emit JSON instead of a table")
    args = parser.parse_args()

    setup_logging(service_name="tenant_report", log_level="WARNING")
    views = asyncio.run(load_views(args.tenant_id))

    if args.json:
        for view in views:
            view.pop("password", None)
        print(json.dumps(views, indent=2, default=str))
    else:
        render(args.tenant_id, views)


if __name__ == "__main__":
    main()
