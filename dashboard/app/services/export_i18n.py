"""Translation dictionary for report exports (en/ar)."""
from __future__ import annotations

TRANSLATIONS: dict[str, dict[str, str]] = {
    "en": {
        # Common
        "as_of": "As of",
        "period": "Period",
        "to": "to",
        "total": "Total",
        "date": "Date",
        "reference": "Reference",
        "type": "Type",
        "amount": "Amount",
        "balance": "Balance",

        # Aging
        "receivables_aging": "Receivables Aging",
        "payables_aging": "Payables Aging",
        "customer": "Customer",
        "supplier": "Supplier",
        "current": "Current",
        "days_1_to_30": "1-30 Days",
        "days_31_to_60": "31-60 Days",
        "days_61_to_90": "61-90 Days",
        "over_90": "90+ Days",
        "total_overdue": "Total Overdue",
        "no_outstanding": "No outstanding balances",

        # Statements
        "customer_statement": "Customer Statement",
        "supplier_statement": "Supplier Statement",
        "opening_balance": "Opening Balance",
        "closing_balance": "Closing Balance",
        "total_debits": "Total Debits",
        "total_credits": "Total Credits",

        # Transaction kinds
        "Invoice": "Invoice",
        "Payment": "Payment",
        "CreditNote": "Credit Note",
        "DebitNote": "Debit Note",
        "ManualEntry": "Manual Entry",
    },
    "ar": {
        # Common
        "as_of": "حتى تاريخ",
        "period": "الفترة",
        "to": "إلى",
        "total": "الإجمالي",
        "date": "التاريخ",
        "reference": "المرجع",
        "type": "النوع",
        "amount": "المبلغ",
        "balance": "الرصيد",

        # Aging
        "receivables_aging": "أعمار الذمم المدينة",
        "payables_aging": "أعمار الذمم الدائنة",
        "customer": "العميل",
        "supplier": "المورد",
        "current": "الحالي",
        "days_1_to_30": "1-30 يوم",
        "days_31_to_60": "31-60 يوم",
        "days_61_to_90": "61-90 يوم",
        "over_90": "أكثر من 90 يوم",
        "total_overdue": "إجمالي المتأخرات",
        "no_outstanding": "لا توجد أرصدة مستحقة",

        # Statements
        "customer_statement": "كشف حساب عميل",
        "supplier_statement": "كشف حساب مورد",
        "opening_balance": "الرصيد الافتتاحي",
        "closing_balance": "الرصيد الختامي",
        "total_debits": "إجمالي المدين",
        "total_credits": "إجمالي الدائن",

        # Transaction kinds
        "Invoice": "فاتورة",
        "Payment": "دفعة",
        "CreditNote": "إشعار دائن",
        "DebitNote": "إشعار مدين",
        "ManualEntry": "قيد يدوي",
    },
}


def t(lang: str, key: str) -> str:
    """Look up a translation, falling back to English then the raw key."""
    table = TRANSLATIONS.get(lang, TRANSLATIONS["en"])
    return table.get(key, TRANSLATIONS["en"].get(key, key))
