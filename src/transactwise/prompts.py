"""Prompt templates and response tools for the reasoning service.

Each request forces the model to answer through one tool whose input schema
is the response schema, so the answer arrives as structured arguments
rather than free text.
"""

import json
from typing import Any

# === Transaction matching ===

MATCH_TRANSACTIONS_SYSTEM_PROMPT = """You are an expert bookkeeper matching bank and card \
statement lines to a company's ledger records.

You receive:
- transactions: each with an "index", the statement "text", a "description", a signed \
"amount" (negative = money out) and a "date".
- vendors: id, vendorName and the free-text defaultExpenseAccount.
- customers: id, customerName and the free-text defaultRevenueAccount.
- chartOfAccounts: id, accountName, accountNumber, subAccountName, subAccountNumber.

For each transaction:
1. Match the text against vendor names and customer names. Prefer exact or substring \
keyword matches ("STARBUCKS COFFEE #123" matches vendor "Starbucks"). A transaction \
matches at most one vendor OR one customer, never both.
2. Only report a match you are confident about. If the text is ambiguous or could \
belong to several records, leave the vendorId and customerId out.
3. Choose a chartOfAccountId only when the transaction text or the matched entity \
name clearly points at one account by keyword. Otherwise leave it out.

Refer to transactions only by their "index". Use ids exactly as given. Report each \
index at most once; you may omit transactions that match nothing."""

SUBMIT_TRANSACTION_MATCHES_TOOL: dict[str, Any] = {
    "name": "submit_transaction_matches",
    "description": "Submit the vendor, customer and account matches for the transactions.",
    "input_schema": {
        "type": "object",
        "properties": {
            "matchedTransactions": {
                "type": "array",
                "description": "One entry per matched transaction",
                "items": {
                    "type": "object",
                    "properties": {
                        "rawTransactionIndex": {
                            "type": "integer",
                            "description": "The index of the transaction as given in the input",
                        },
                        "vendorId": {
                            "type": "string",
                            "description": "Id of the matched vendor, if any",
                        },
                        "customerId": {
                            "type": "string",
                            "description": "Id of the matched customer, if any",
                        },
                        "chartOfAccountId": {
                            "type": "string",
                            "description": "Id of the inferred chart of accounts entry, if any",
                        },
                    },
                    "required": ["rawTransactionIndex"],
                },
            },
        },
        "required": ["matchedTransactions"],
    },
}


# === Account interlinking ===

INTERLINK_ACCOUNTS_SYSTEM_PROMPT = """You are an expert accounting system assistant. Link \
vendors and customers to the company's chart of accounts (COA).

Each vendor carries the text of its default expense account and each customer the text \
of its default revenue account. Match that text to the most appropriate COA entry.

Matching priority:
1. First try to match the text with the subAccountName or subAccountNumber of a COA entry.
2. If no sub-account matches, match the text with the accountName or accountNumber.
3. When both a sub-account and a parent account would match, choose the sub-account entry.
4. The match should be as exact as possible.

If the text cannot be reliably matched to any COA entry, leave that vendor or customer \
out of the output. Use ids exactly as given."""

SUBMIT_ACCOUNT_LINKS_TOOL: dict[str, Any] = {
    "name": "submit_account_links",
    "description": "Submit links from vendors and customers to chart of accounts entries.",
    "input_schema": {
        "type": "object",
        "properties": {
            "vendorLinks": {
                "type": "array",
                "description": "Links from vendor ids to chart of account ids",
                "items": {
                    "type": "object",
                    "properties": {
                        "vendorId": {"type": "string"},
                        "chartOfAccountId": {"type": "string"},
                    },
                    "required": ["vendorId", "chartOfAccountId"],
                },
            },
            "customerLinks": {
                "type": "array",
                "description": "Links from customer ids to chart of account ids",
                "items": {
                    "type": "object",
                    "properties": {
                        "customerId": {"type": "string"},
                        "chartOfAccountId": {"type": "string"},
                    },
                    "required": ["customerId", "chartOfAccountId"],
                },
            },
        },
        "required": ["vendorLinks", "customerLinks"],
    },
}


# === Starting chart of accounts ===

ACCOUNT_TYPES = ["Asset", "Liability", "Equity", "Revenue", "Expense"]

STARTING_COA_SYSTEM_PROMPT = """You are an expert accounting consultant. Generate a basic \
chart of accounts for a small business in the given industry.

Give every account a name, an account type (Asset, Liability, Equity, Revenue or \
Expense) and a brief description."""

SUBMIT_CHART_OF_ACCOUNTS_TOOL: dict[str, Any] = {
    "name": "submit_chart_of_accounts",
    "description": "Submit the suggested chart of accounts.",
    "input_schema": {
        "type": "object",
        "properties": {
            "accounts": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "accountName": {"type": "string"},
                        "accountType": {"type": "string", "enum": ACCOUNT_TYPES},
                        "accountDescription": {"type": "string"},
                    },
                    "required": ["accountName", "accountType", "accountDescription"],
                },
            },
        },
        "required": ["accounts"],
    },
}


def render_request(title: str, payload: dict[str, Any]) -> str:
    """Lay out a request payload as labelled JSON sections."""
    sections = [title]
    for key, value in payload.items():
        sections.append(f"{key}:\n{json.dumps(value, ensure_ascii=False, default=str)}")
    return "\n\n".join(sections)
