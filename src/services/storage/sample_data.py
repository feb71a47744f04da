"""
Sample Ledger Data

Two accounts and twenty QuickBooks-style transactions, offered by
/connect so a new user can try the assistant before linking a bank.
All but the first transaction still need categorization and carry an
AI-suggested category.
"""

from datetime import date
from decimal import Decimal

from src.models.ledger import Account, AccountType, Transaction
from src.services.storage.interface import LedgerStoreInterface


# (account key, amount, description, merchant, date, suggested category)
SAMPLE_TRANSACTIONS = [
    # Income
    ("checking", "2250.00", "Consulting Services - XYZ LLC", "XYZ LLC", date(2024, 6, 17), "Consulting"),
    ("checking", "1800.00", "Monthly Retainer - Tech Solutions Inc", "Tech Solutions Inc", date(2024, 6, 15), "Consulting"),
    # Office & business expenses
    ("credit", "-89.99", "Microsoft 365 Business Premium", "Microsoft", date(2024, 6, 19), "Software"),
    ("credit", "-124.50", "Office Supplies - Staples Store #1234", "Staples", date(2024, 6, 18), "Office Supplies"),
    ("checking", "-450.00", "Monthly Office Rent - June 2024", "Downtown Properties LLC", date(2024, 6, 16), "Rent"),
    ("credit", "-67.89", "Business Cards - VistaPrint", "VistaPrint", date(2024, 6, 14), "Marketing"),
    # Travel & transportation
    ("credit", "-325.00", "Flight to Chicago - Business Travel", "United Airlines", date(2024, 6, 13), "Travel"),
    ("credit", "-189.00", "Hotel Stay - Chicago Marriott", "Marriott Hotels", date(2024, 6, 12), "Hotels"),
    ("credit", "-45.30", "Gas Station - Shell #5678", "Shell", date(2024, 6, 11), "Gas & Fuel"),
    # Meals & entertainment
    ("credit", "-78.45", "Client Lunch - The Steakhouse", "The Steakhouse", date(2024, 6, 10), "Meals & Entertainment"),
    ("credit", "-23.67", "Coffee Meeting - Starbucks #9876", "Starbucks", date(2024, 6, 9), "Food & Dining"),
    # Utilities & communications
    ("checking", "-125.60", "Business Internet - Comcast", "Comcast", date(2024, 6, 8), "Internet"),
    ("checking", "-89.50", "Business Phone - Verizon Wireless", "Verizon", date(2024, 6, 7), "Phone"),
    ("checking", "-156.78", "Electric Bill - June 2024", "ConEd", date(2024, 6, 6), "Utilities"),
    # Professional services
    ("checking", "-350.00", "Accounting Services - Smith & Associates CPA", "Smith & Associates", date(2024, 6, 5), "Professional Services"),
    ("checking", "-250.00", "Legal Consultation - Brown Law Firm", "Brown Law Firm", date(2024, 6, 4), "Legal & Professional"),
    # Insurance & banking
    ("checking", "-195.00", "Business Insurance Premium - State Farm", "State Farm", date(2024, 6, 3), "Insurance"),
    ("checking", "-25.00", "Bank Service Fee - Monthly Maintenance", "First National Bank", date(2024, 6, 2), "Bank Charges"),
    # Equipment & software
    ("credit", "-299.00", "Adobe Creative Suite - Annual Subscription", "Adobe", date(2024, 6, 1), "Software"),
]


def build_sample_accounts() -> dict[str, Account]:
    return {
        "checking": Account(
            name="Business Checking",
            account_type=AccountType.CHECKING,
            balance=Decimal("15750.25"),
            bank_name="First National Bank",
            account_number_last4="8943",
        ),
        "credit": Account(
            name="Business Credit Card",
            account_type=AccountType.CREDIT_CARD,
            balance=Decimal("-2847.92"),
            bank_name="Chase Bank",
            account_number_last4="5612",
        ),
    }


def build_sample_transactions(account_ids: dict[str, int]) -> list[Transaction]:
    """Build the twenty sample transactions for already-created accounts."""
    transactions = [
        # Already categorized and approved
        Transaction(
            account_id=account_ids["checking"],
            amount=Decimal("3500.00"),
            description="Payment from ABC Corp - Invoice #INV001",
            merchant_name="ABC Corp",
            transaction_date=date(2024, 6, 18),
            category="Sales",
            subcategory="Product Sales",
            ai_suggested_category="Income",
            needs_categorization=False,
            user_approved=True,
        ),
    ]
    for key, amount, description, merchant, tx_date, suggested in SAMPLE_TRANSACTIONS:
        transactions.append(Transaction(
            account_id=account_ids[key],
            amount=Decimal(amount),
            description=description,
            merchant_name=merchant,
            transaction_date=tx_date,
            ai_suggested_category=suggested,
            needs_categorization=True,
        ))
    return transactions


async def load_sample_data(store: LedgerStoreInterface) -> int:
    """
    Create the sample accounts and transactions in `store`.

    Returns the number of transactions created.
    Raises StorageError if the store rejects a write.
    """
    account_ids = {}
    for key, account in build_sample_accounts().items():
        created = await store.create_account(account)
        account_ids[key] = created.id

    created_count = 0
    for transaction in build_sample_transactions(account_ids):
        await store.create_transaction(transaction)
        created_count += 1

    return created_count
