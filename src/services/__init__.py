from src.services.access_gate import AccessGate, CallbackAccessGate, StaticTokenGate
from src.services.blood_bank_service import BloodBankService
from src.services.request_store import RequestStore
from src.services.stock_ledger import StockLedger
from src.services.storage import BaseStore, InMemoryStore
from src.services.triage import TriageQuery, TriageView

__all__ = [
    "AccessGate",
    "BaseStore",
    "BloodBankService",
    "CallbackAccessGate",
    "InMemoryStore",
    "RequestStore",
    "StaticTokenGate",
    "StockLedger",
    "TriageQuery",
    "TriageView",
]
