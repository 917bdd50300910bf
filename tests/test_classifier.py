import pytest

from webhook_chat.classifier import Variant, classify


@pytest.mark.parametrize(
    "obj, expected",
    [
        ({"items": [], "total": 0, "page": 1, "total_pages": 0}, Variant.PAGINATED),
        ({"TransactionId": "T1", "Amount": -5}, Variant.TRANSACTION),
        ({"AccountId": "A1", "CalculatedBalance": 10}, Variant.BALANCE),
        ({"CustomerId": "C1", "FirstName": "Ada", "LastName": "Lovelace"}, Variant.CUSTOMER),
        ({"BillId": "B1", "Amount": 5, "DueDate": "2024-01-01"}, Variant.BILL),
        ({"DocumentId": "D1", "DocumentType": "pdf"}, Variant.DOCUMENT),
        ({"FromCurrency": "USD", "ToCurrency": "EUR", "Rate": 0.9}, Variant.EXCHANGE_RATE),
        ({"BeneficiaryId": "X"}, Variant.BENEFICIARY),
        ({"BeneficiaryName": "Bob", "AccountNumber": "123"}, Variant.BENEFICIARY),
        ({"SessionId": "S", "ExpiryTime": "later"}, Variant.LOGIN),
        ({"RequestId": "R", "Status": "done"}, Variant.WORKFLOW),
        ({"foo": 1}, Variant.GENERIC),
    ],
)
def test_classify_by_key_presence(obj, expected):
    assert classify(obj) is expected


def test_first_matching_rule_wins():
    obj = {"TransactionId": "T", "Amount": 1, "BillId": "B", "DueDate": "x", "AccountId": "A", "CalculatedBalance": 1}
    assert classify(obj) is Variant.TRANSACTION


def test_bill_needs_all_keys():
    assert classify({"BillId": "B", "Amount": 1}) is Variant.GENERIC


def test_null_values_still_count_as_present():
    assert classify({"TransactionId": None, "Amount": None}) is Variant.TRANSACTION


@pytest.mark.parametrize("value", [None, 3, "text", [1, 2], True])
def test_non_objects_are_generic(value):
    assert classify(value) is Variant.GENERIC


def test_transaction_beats_beneficiary():
    assert classify({"TransactionId": "T", "Amount": 1, "BeneficiaryId": "B"}) is Variant.TRANSACTION
