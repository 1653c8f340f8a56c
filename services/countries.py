"""
Per-country lending table: currency, identity document naming, governing law and loan limits.
Read-only; consumed by loan validation and by provider prompt construction.
"""
from __future__ import annotations

from schemas.country import CountryConfig
from services.errors import InvalidLoanParameters

_COUNTRY_DATA = [
    # Southeast Asia
    {
        "code": "SG", "name": "Singapore", "currency": "SGD", "currency_symbol": "S$", "phone_prefix": "+65",
        "id_label": "NRIC", "id_document": "Singapore NRIC", "legal_context": "MAS Act",
        "governing_law": "Monetary Authority of Singapore (MAS) Act & Moneylenders Act",
        "min_loan": 5_000, "max_loan": 250_000, "exchange_rate": 3.5,
    },
    {
        "code": "MY", "name": "Malaysia", "currency": "MYR", "currency_symbol": "RM", "phone_prefix": "+60",
        "id_label": "MyKad", "id_document": "MyKad", "legal_context": "Moneylenders Act",
        "governing_law": "Moneylenders Act 1951 (Malaysia)",
        "min_loan": 1_000, "max_loan": 100_000, "exchange_rate": 1,
    },
    {
        "code": "TH", "name": "Thailand", "currency": "THB", "currency_symbol": "฿", "phone_prefix": "+66",
        "id_label": "Thai ID", "id_document": "Thai ID Card", "legal_context": "Civil Code",
        "governing_law": "Civil and Commercial Code (Thailand) & Bank of Thailand Regulations",
        "min_loan": 10_000, "max_loan": 1_000_000, "exchange_rate": 7.5,
    },
    {
        "code": "ID", "name": "Indonesia", "currency": "IDR", "currency_symbol": "Rp", "phone_prefix": "+62",
        "id_label": "KTP", "id_document": "KTP (Kartu Tanda Penduduk)", "legal_context": "OJK Regs",
        "governing_law": "OJK (Otoritas Jasa Keuangan) Regulations",
        "min_loan": 3_000_000, "max_loan": 300_000_000, "exchange_rate": 3500,
    },
    {
        "code": "VN", "name": "Vietnam", "currency": "VND", "currency_symbol": "₫", "phone_prefix": "+84",
        "id_label": "CCCD", "id_document": "CCCD (Citizen ID)", "legal_context": "SBV Regs",
        "governing_law": "State Bank of Vietnam (SBV) Regulations & Civil Code 2015",
        "min_loan": 5_000_000, "max_loan": 500_000_000, "exchange_rate": 5500,
    },
    {
        "code": "PH", "name": "Philippines", "currency": "PHP", "currency_symbol": "₱", "phone_prefix": "+63",
        "id_label": "PhilSys ID", "id_document": "PhilSys ID / UMID", "legal_context": "RA 9474",
        "governing_law": "Lending Company Regulation Act of 2007 (R.A. 9474)",
        "min_loan": 5_000, "max_loan": 500_000, "exchange_rate": 12,
    },
    # South Asia
    {
        "code": "IN", "name": "India", "currency": "INR", "currency_symbol": "₹", "phone_prefix": "+91",
        "id_label": "Aadhaar", "id_document": "Aadhaar Card / PAN Card", "legal_context": "RBI Code",
        "governing_law": "Reserve Bank of India (RBI) Fair Practices Code & Contract Act 1872",
        "min_loan": 10_000, "max_loan": 1_000_000, "exchange_rate": 18,
    },
    {
        "code": "PK", "name": "Pakistan", "currency": "PKR", "currency_symbol": "₨", "phone_prefix": "+92",
        "id_label": "CNIC", "id_document": "CNIC (Computerized National ID)", "legal_context": "Financial Ordinance",
        "governing_law": "Financial Institutions (Recovery of Finances) Ordinance, 2001",
        "min_loan": 25_000, "max_loan": 2_500_000, "exchange_rate": 60,
    },
    {
        "code": "BD", "name": "Bangladesh", "currency": "BDT", "currency_symbol": "৳", "phone_prefix": "+880",
        "id_label": "NID", "id_document": "National ID (NID)", "legal_context": "MRA Act",
        "governing_law": "Microcredit Regulatory Authority Act, 2006",
        "min_loan": 10_000, "max_loan": 1_000_000, "exchange_rate": 25,
    },
    {
        "code": "LK", "name": "Sri Lanka", "currency": "LKR", "currency_symbol": "Rs", "phone_prefix": "+94",
        "id_label": "NIC", "id_document": "NIC (National Identity Card)", "legal_context": "Consumer Credit Act",
        "governing_law": "Consumer Credit Act & Central Bank of Sri Lanka Directions",
        "min_loan": 50_000, "max_loan": 5_000_000, "exchange_rate": 70,
    },
    {
        "code": "NP", "name": "Nepal", "currency": "NPR", "currency_symbol": "Rs", "phone_prefix": "+977",
        "id_label": "Citizenship ID", "id_document": "Citizenship Certificate", "legal_context": "Rastra Bank Act",
        "governing_law": "Nepal Rastra Bank Act & Banking Offence and Punishment Act",
        "min_loan": 15_000, "max_loan": 1_500_000, "exchange_rate": 28,
    },
]

COUNTRIES: dict[str, CountryConfig] = {c["code"]: CountryConfig(**c) for c in _COUNTRY_DATA}


def get_country(code: str) -> CountryConfig:
    """Look up a country by code (case-insensitive). Unknown codes are invalid loan parameters."""
    country = COUNTRIES.get((code or "").upper())
    if country is None:
        raise InvalidLoanParameters(f"Unsupported country code: {code!r}")
    return country


def list_countries() -> list[CountryConfig]:
    return list(COUNTRIES.values())
