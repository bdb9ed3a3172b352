"""Translation between stored documents and domain records.

Stored documents use the field names the web client writes
(``vendorName``, ``defaultExpenseAccountId``, ...). Nothing outside this
module should depend on them.
"""

from typing import Any

from transactwise.models import (
    ChartOfAccount,
    Customer,
    ReviewedTransaction,
    Vendor,
)


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def vendor_from_document(document: dict[str, Any], company_id: str) -> Vendor:
    return Vendor(
        id=document["id"],
        company_id=document.get("companyId") or company_id,
        name=_text(document.get("vendorName")) or "",
        email=_text(document.get("vendorEmail")),
        default_expense_account=_text(document.get("defaultExpenseAccount")) or "",
        default_expense_account_id=_text(document.get("defaultExpenseAccountId")),
    )


def customer_from_document(document: dict[str, Any], company_id: str) -> Customer:
    return Customer(
        id=document["id"],
        company_id=document.get("companyId") or company_id,
        name=_text(document.get("customerName")) or "",
        email=_text(document.get("customerEmail")),
        default_revenue_account=_text(document.get("defaultRevenueAccount")) or "",
        default_revenue_account_id=_text(document.get("defaultRevenueAccountId")),
    )


def account_from_document(document: dict[str, Any], company_id: str) -> ChartOfAccount:
    return ChartOfAccount(
        id=document["id"],
        company_id=document.get("companyId") or company_id,
        account_name=_text(document.get("accountName")) or "",
        account_number=_text(document.get("accountNumber")),
        account_type=_text(document.get("accountType")),
        description=_text(document.get("description") or document.get("accountDescription")),
        sub_account_name=_text(document.get("subAccountName")),
        sub_account_number=_text(document.get("subAccountNumber")),
        default_vendor_id=_text(document.get("defaultVendorId")),
        default_customer_id=_text(document.get("defaultCustomerId")),
    )


def _without_none(data: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in data.items() if value is not None}


def vendor_to_document(vendor: Vendor) -> dict[str, Any]:
    return _without_none({
        "companyId": vendor.company_id,
        "vendorName": vendor.name,
        "vendorEmail": vendor.email,
        "defaultExpenseAccount": vendor.default_expense_account or None,
        "defaultExpenseAccountId": vendor.default_expense_account_id,
    })


def customer_to_document(customer: Customer) -> dict[str, Any]:
    return _without_none({
        "companyId": customer.company_id,
        "customerName": customer.name,
        "customerEmail": customer.email,
        "defaultRevenueAccount": customer.default_revenue_account or None,
        "defaultRevenueAccountId": customer.default_revenue_account_id,
    })


def account_to_document(account: ChartOfAccount) -> dict[str, Any]:
    return _without_none({
        "companyId": account.company_id,
        "accountName": account.account_name,
        "accountNumber": account.account_number,
        "accountType": account.account_type,
        "description": account.description,
        "subAccountName": account.sub_account_name,
        "subAccountNumber": account.sub_account_number,
        "defaultVendorId": account.default_vendor_id,
        "defaultCustomerId": account.default_customer_id,
    })


def record_to_document(record: Vendor | Customer | ChartOfAccount) -> dict[str, Any]:
    if isinstance(record, Vendor):
        return vendor_to_document(record)
    if isinstance(record, Customer):
        return customer_to_document(record)
    return account_to_document(record)


# Field written on each side of a default-account link
VENDOR_ACCOUNT_LINK_FIELD = "defaultExpenseAccountId"
CUSTOMER_ACCOUNT_LINK_FIELD = "defaultRevenueAccountId"
ACCOUNT_VENDOR_LINK_FIELD = "defaultVendorId"
ACCOUNT_CUSTOMER_LINK_FIELD = "defaultCustomerId"


def transaction_to_document(row: ReviewedTransaction, company_id: str) -> dict[str, Any]:
    """Durable form of a confirmed row, without review-only fields.

    The row id, status and denormalized display names stay in memory.
    """
    raw = row.raw
    return _without_none({
        "companyId": company_id,
        "date": raw.date.isoformat() if raw.date else None,
        "amount": float(raw.amount),
        "description": raw.matching_text,
        "memo": raw.memo,
        "category": raw.category,
        "paymentAccount": raw.payment_account,
        "vendorId": row.vendor_id,
        "customerId": row.customer_id,
        "chartOfAccountId": row.chart_of_account_id,
    })
