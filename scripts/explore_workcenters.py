#!/usr/bin/env python3
"""
Exploration script for the configured ERP.

Prints the work center fields relevant to routing, a few full work center
records, routing operations, work center tags, alternative work centers and
the work orders currently ready or in progress.
"""

import asyncio
from typing import Any

from workorder_launcher.config import configure_logging, settings
from workorder_launcher.errors import RemoteCallError
from workorder_launcher.repositories import XmlRpcTransport
from workorder_launcher.services import ResilientRpcClient

FIELD_ATTRIBUTES = {"attributes": ["string", "type", "relation"]}
WORKCENTER_FIELD_HINTS = ("operation", "type", "tag", "capab", "alternative")


def print_section(title: str) -> None:
    """Print a section header."""
    print("\n" + "=" * 70)
    print(f"  {title}")
    print("=" * 70)


def describe_field(name: str, info: dict[str, Any]) -> str:
    relation = f" -> {info['relation']}" if info.get("relation") else ""
    return f"  - {name}: {info.get('string')} ({info.get('type')}{relation})"


def ref_name(value: Any) -> str:
    """Display name of a many2one value ``[id, name]`` or ``False``."""
    if isinstance(value, (list, tuple)) and len(value) > 1:
        return str(value[1])
    return "N/A"


async def explore_workcenters(client: ResilientRpcClient) -> None:
    print_section("Work center fields")
    fields = await client.execute_kw("mrp.workcenter", "fields_get", [], FIELD_ATTRIBUTES)
    for name, info in sorted(fields.items()):
        if any(hint in name for hint in WORKCENTER_FIELD_HINTS) or "routing" in (info.get("relation") or ""):
            print(describe_field(name, info))

    print_section("Work centers (first 3, non-empty fields)")
    workcenters = await client.execute_kw("mrp.workcenter", "search_read", [[["active", "=", True]]], {})
    for wc in workcenters[:3]:
        print(f"\n--- {wc['name']} (ID: {wc['id']}) ---")
        for key, value in wc.items():
            if value not in (False, None, "") and not key.startswith("__"):
                print(f"  {key}: {value!r}")

    print_section("Alternative work centers")
    alternatives = await client.execute_kw(
        "mrp.workcenter",
        "search_read",
        [[["active", "=", True]]],
        {"fields": ["name", "alternative_workcenter_ids"]},
    )
    for wc in alternatives:
        if wc.get("alternative_workcenter_ids"):
            print(f"  {wc['name']} -> alternatives: {wc['alternative_workcenter_ids']}")


async def explore_operations(client: ResilientRpcClient) -> None:
    print_section("Routing operation fields")
    try:
        fields = await client.execute_kw("mrp.routing.workcenter", "fields_get", [], FIELD_ATTRIBUTES)
        for name, info in sorted(fields.items()):
            if any(hint in name for hint in ("workcenter", "name", "type")):
                print(describe_field(name, info))

        print_section("Operations (first 10)")
        operations = await client.execute_kw("mrp.routing.workcenter", "search_read", [[]], {"limit": 10})
        for op in operations:
            print(f"  - {op['name']}: workcenter={ref_name(op.get('workcenter_id'))}")
    except RemoteCallError as e:
        print(f"  Could not read operations: {e.message}")


async def explore_tags(client: ResilientRpcClient) -> None:
    print_section("Work center tags")
    try:
        tags = await client.execute_kw("mrp.workcenter.tag", "search_read", [[]], {})
    except RemoteCallError:
        print("  Model mrp.workcenter.tag is not available")
        return
    for tag in tags:
        print(f"  - {tag['name']} (ID: {tag['id']})")


async def explore_workorders(client: ResilientRpcClient) -> None:
    print_section("Work orders with operation")
    workorders = await client.execute_kw(
        "mrp.workorder",
        "search_read",
        [[["state", "in", ["ready", "progress"]]]],
        {"fields": ["name", "workcenter_id", "operation_id"], "limit": 10},
    )
    for wo in workorders:
        print(
            f"  {wo['name']}: workcenter={ref_name(wo.get('workcenter_id'))}, "
            f"operation={ref_name(wo.get('operation_id'))}"
        )


async def main() -> None:
    """Run all explorations against the configured ERP."""
    configure_logging("WARNING")
    if not settings.erp_configured:
        print("Set ERP_URL, ERP_DB, ERP_USER and ERP_API_KEY (e.g. in .env) first.")
        return

    client = ResilientRpcClient.create(transport=XmlRpcTransport.create())
    try:
        print(f"Connecting to {settings.erp_url} ...")
        uid = await client.test_connection()
        print(f"UID: {uid}")

        await explore_workcenters(client)
        await explore_operations(client)
        await explore_tags(client)
        await explore_workorders(client)
    except RemoteCallError as e:
        print(f"\n❌ Error: {e.message}")
    finally:
        await client.close()


if __name__ == "__main__":
    asyncio.run(main())
