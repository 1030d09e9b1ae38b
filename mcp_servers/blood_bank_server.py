"""
Blood Bank MCP Server

Exposes the stock ledger and request triage operations as MCP tools.
Admin tools take an `authorization` argument ("Bearer <token>") that is checked
on every call.
"""

import json
import logging
import os
import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from typing import Callable, Dict, List, Optional
from mcp.server import Server
from mcp.types import Tool, TextContent

from src.config import Settings
from src.services.blood_bank_service import BloodBankService
from src.services.bootstrap import build_service
from src.services.errors import BloodBankError
from src.services.triage import TriageQuery

logger = logging.getLogger("blood_bank_server")

app = Server("blood-bank")

# Ilk cagrida lazy init edilir
_service: Optional[BloodBankService] = None

_AUTH = {"authorization": {"type": "string", "description": "Bearer <token>"}}
_BLOOD_GROUPS = ["A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-"]


def get_service() -> BloodBankService:
    global _service
    if _service is None:
        _service = build_service(Settings.from_env())
    return _service


def _result(data):
    return [TextContent(type="text", text=json.dumps(data, indent=2, ensure_ascii=False))]


def _guarded(fn: Callable[[], Dict]) -> Dict:
    """Servis hatalarini {success: False, ...} yanitina cevirir."""
    try:
        return fn()
    except BloodBankError as e:
        return {"success": False, "status_code": e.status_code, **e.to_dict()}


@app.list_tools()
async def list_tools() -> List[Tool]:
    return [
        Tool(name="get_inventory", description="List stock per blood group with summary",
             inputSchema={"type": "object", "properties": {**_AUTH}}),
        Tool(name="adjust_inventory", description="Replace units and price for a blood group",
             inputSchema={"type": "object", "properties": {
                 **_AUTH,
                 "blood_group": {"type": "string", "enum": _BLOOD_GROUPS},
                 "units_available": {"type": "integer", "minimum": 0},
                 "price_per_unit": {"type": "integer", "minimum": 0},
                 "expected_version": {"type": "integer"},
             }, "required": ["authorization", "blood_group", "units_available", "price_per_unit"]}),
        Tool(name="create_request", description="Submit a blood request (public intake)",
             inputSchema={"type": "object", "properties": {"request": {"type": "object"}},
                          "required": ["request"]}),
        Tool(name="list_requests", description="List all blood requests in insertion order",
             inputSchema={"type": "object", "properties": {**_AUTH}, "required": ["authorization"]}),
        Tool(name="triage_requests", description="Filter, sort by urgency and paginate requests",
             inputSchema={"type": "object", "properties": {
                 **_AUTH,
                 "search": {"type": "string"},
                 "blood_group": {"type": "string"},
                 "status": {"type": "string"},
                 "urgency": {"type": "string"},
                 "page": {"type": "integer", "default": 1},
             }, "required": ["authorization"]}),
        Tool(name="update_request_status", description="Set request status",
             inputSchema={"type": "object", "properties": {
                 **_AUTH,
                 "request_id": {"type": "string"},
                 "status": {"type": "string", "enum": ["Pending", "Out for delivery", "Completed"]},
             }, "required": ["authorization", "request_id", "status"]}),
        Tool(name="mark_request_delivered", description="Mark a request as Completed",
             inputSchema={"type": "object", "properties": {**_AUTH, "request_id": {"type": "string"}},
                          "required": ["authorization", "request_id"]}),
        Tool(name="delete_request", description="Delete a blood request",
             inputSchema={"type": "object", "properties": {**_AUTH, "request_id": {"type": "string"}},
                          "required": ["authorization", "request_id"]}),
        Tool(name="dashboard_stats", description="Request and stock counters for the admin dashboard",
             inputSchema={"type": "object", "properties": {**_AUTH}, "required": ["authorization"]}),
        Tool(name="recent_requests", description="Newest blood requests",
             inputSchema={"type": "object", "properties": {**_AUTH, "limit": {"type": "integer", "default": 5}},
                          "required": ["authorization"]}),
    ]


@app.call_tool()
async def call_tool(name: str, arguments: dict) -> List[TextContent]:
    handlers = {
        "get_inventory": lambda a: get_inventory(a.get("authorization")),
        "adjust_inventory": lambda a: adjust_inventory(a.get("authorization"), a["blood_group"], a["units_available"], a["price_per_unit"], a.get("expected_version")),
        "create_request": lambda a: create_request(a["request"]),
        "list_requests": lambda a: list_requests(a.get("authorization")),
        "triage_requests": lambda a: triage_requests(a.get("authorization"), a),
        "update_request_status": lambda a: update_request_status(a.get("authorization"), a["request_id"], a["status"]),
        "mark_request_delivered": lambda a: mark_request_delivered(a.get("authorization"), a["request_id"]),
        "delete_request": lambda a: delete_request(a.get("authorization"), a["request_id"]),
        "dashboard_stats": lambda a: dashboard_stats(a.get("authorization")),
        "recent_requests": lambda a: recent_requests(a.get("authorization"), a.get("limit", 5)),
    }
    handler = handlers.get(name)
    if not handler:
        raise ValueError(f"Unknown tool: {name}")
    return _result(handler(arguments))


# --- Implementation ---

def get_inventory(authorization: Optional[str] = None) -> Dict:
    return _guarded(lambda: {"success": True, **get_service().get_inventory(authorization)})


def adjust_inventory(authorization: Optional[str], blood_group: str, units_available: int,
                     price_per_unit: int, expected_version: Optional[int] = None) -> Dict:
    def run():
        record = get_service().adjust_inventory(
            authorization, blood_group, units_available, price_per_unit, expected_version
        )
        return {"success": True, "data": record.to_dict()}
    return _guarded(run)


def create_request(fields: Dict) -> Dict:
    def run():
        record = get_service().create_request(fields)
        return {"success": True, "status_code": 201, "data": record.to_dict()}
    return _guarded(run)


def list_requests(authorization: Optional[str]) -> Dict:
    def run():
        records = get_service().list_requests(authorization)
        return {"success": True, "count": len(records), "data": [r.to_dict() for r in records]}
    return _guarded(run)


def triage_requests(authorization: Optional[str], params: Dict) -> Dict:
    def run():
        page = get_service().triage_requests(authorization, TriageQuery.from_params(params))
        return {"success": True, **page.to_dict()}
    return _guarded(run)


def update_request_status(authorization: Optional[str], request_id: str, status: str) -> Dict:
    def run():
        record = get_service().update_request_status(authorization, request_id, status)
        return {"success": True, "data": record.to_dict()}
    return _guarded(run)


def mark_request_delivered(authorization: Optional[str], request_id: str) -> Dict:
    def run():
        record = get_service().mark_delivered(authorization, request_id)
        return {"success": True, "data": record.to_dict()}
    return _guarded(run)


def delete_request(authorization: Optional[str], request_id: str) -> Dict:
    def run():
        get_service().delete_request(authorization, request_id)
        return {"success": True, "status_code": 204}
    return _guarded(run)


def dashboard_stats(authorization: Optional[str]) -> Dict:
    return _guarded(lambda: {"success": True, "data": get_service().dashboard_stats(authorization).to_dict()})


def recent_requests(authorization: Optional[str], limit: int = 5) -> Dict:
    def run():
        records = get_service().recent_requests(authorization, limit)
        return {"success": True, "count": len(records), "data": [r.to_dict() for r in records]}
    return _guarded(run)


if __name__ == "__main__":
    import asyncio
    from mcp.server.stdio import stdio_server

    settings = Settings.from_env()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s [%(name)s] %(levelname)s: %(message)s")
    logging.getLogger("mcp").setLevel(logging.WARNING)
    _service = build_service(settings)

    async def run():
        async with stdio_server() as (read, write):
            await app.run(read, write, app.create_initialization_options())

    asyncio.run(run())
