"""
Display Labels

Every table here is keyed by an Enum and checked for exhaustiveness at
import time, so adding a category or language without a label fails loudly.
"""

from enum import Enum

from nzbill.models.bill import BillCategory


class Language(str, Enum):
    """Languages the core can render labels in."""
    TH = "th"
    EN = "en"


CATEGORY_LABELS: dict[Language, dict[BillCategory, str]] = {
    Language.TH: {
        BillCategory.ELECTRICITY: "ค่าไฟ",
        BillCategory.WATER: "ค่าน้ำ",
        BillCategory.INTERNET: "ค่าเน็ต",
        BillCategory.CREDIT_CARD: "บัตรเครดิต",
        BillCategory.PHONE: "ค่าโทรศัพท์",
        BillCategory.RENT: "ค่าเช่า",
        BillCategory.INSURANCE: "ประกัน",
        BillCategory.SUBSCRIPTION: "สมาชิกรายเดือน",
        BillCategory.LOAN: "เงินกู้",
        BillCategory.OTHER: "อื่นๆ",
    },
    Language.EN: {
        BillCategory.ELECTRICITY: "Electricity",
        BillCategory.WATER: "Water",
        BillCategory.INTERNET: "Internet",
        BillCategory.CREDIT_CARD: "Credit card",
        BillCategory.PHONE: "Phone",
        BillCategory.RENT: "Rent",
        BillCategory.INSURANCE: "Insurance",
        BillCategory.SUBSCRIPTION: "Subscription",
        BillCategory.LOAN: "Loan",
        BillCategory.OTHER: "Other",
    },
}

INSTALLMENT_LABELS: dict[Language, str] = {
    Language.TH: "ผ่อนชำระ",
    Language.EN: "installment",
}

# Index 0 is January
MONTH_ABBREVIATIONS: dict[Language, tuple[str, ...]] = {
    Language.TH: (
        "ม.ค.", "ก.พ.", "มี.ค.", "เม.ย.", "พ.ค.", "มิ.ย.",
        "ก.ค.", "ส.ค.", "ก.ย.", "ต.ค.", "พ.ย.", "ธ.ค.",
    ),
    Language.EN: (
        "Jan", "Feb", "Mar", "Apr", "May", "Jun",
        "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
    ),
}


def category_label(category: BillCategory, language: Language = Language.TH) -> str:
    return CATEGORY_LABELS[language][category]


def installment_name(name: str, language: Language = Language.TH) -> str:
    """Display name for a bill generated from an installment template."""
    return f"{name} ({INSTALLMENT_LABELS[language]})"


def month_abbreviation(month: int, language: Language = Language.TH) -> str:
    """Short month name for a 1-based month number."""
    return MONTH_ABBREVIATIONS[language][month - 1]


def _check_exhaustive() -> None:
    for language in Language:
        missing = set(BillCategory) - set(CATEGORY_LABELS[language])
        if missing:
            raise RuntimeError(
                f"Missing {language.value} category labels: "
                f"{sorted(c.value for c in missing)}"
            )
        if language not in INSTALLMENT_LABELS:
            raise RuntimeError(f"Missing {language.value} installment label")
        if len(MONTH_ABBREVIATIONS[language]) != 12:
            raise RuntimeError(f"Expected 12 {language.value} month names")


_check_exhaustive()
