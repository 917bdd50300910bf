"""Response shape classification by key presence."""

from enum import Enum
from typing import Any


class Variant(str, Enum):
    PAGINATED = "PaginatedResponse"
    TRANSACTION = "Transaction"
    BALANCE = "BalanceResponse"
    CUSTOMER = "CustomerResponse"
    BILL = "Bill"
    DOCUMENT = "DocumentResponse"
    EXCHANGE_RATE = "ExchangeRate"
    BENEFICIARY = "Beneficiary"
    LOGIN = "LoginResponse"
    WORKFLOW = "WorkflowResponse"
    GENERIC = "Generic"


def _has(obj: dict, *keys: str) -> bool:
    return all(key in obj for key in keys)


# Order matters: the first matching predicate wins.
RULES = [
    (Variant.PAGINATED, lambda o: _has(o, "items", "total", "page", "total_pages")),
    (Variant.TRANSACTION, lambda o: _has(o, "TransactionId", "Amount")),
    (Variant.BALANCE, lambda o: _has(o, "AccountId", "CalculatedBalance")),
    (Variant.CUSTOMER, lambda o: _has(o, "CustomerId", "FirstName", "LastName")),
    (Variant.BILL, lambda o: _has(o, "BillId", "Amount", "DueDate")),
    (Variant.DOCUMENT, lambda o: _has(o, "DocumentId", "DocumentType")),
    (Variant.EXCHANGE_RATE, lambda o: _has(o, "FromCurrency", "ToCurrency", "Rate")),
    (Variant.BENEFICIARY, lambda o: _has(o, "BeneficiaryId") or _has(o, "BeneficiaryName", "AccountNumber")),
    (Variant.LOGIN, lambda o: _has(o, "SessionId", "ExpiryTime")),
    (Variant.WORKFLOW, lambda o: _has(o, "RequestId", "Status")),
]


def classify(obj: Any) -> Variant:
    """Return the response variant an object represents. Never raises."""
    if not isinstance(obj, dict):
        return Variant.GENERIC
    for variant, matches in RULES:
        if matches(obj):
            return variant
    return Variant.GENERIC
