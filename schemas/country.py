from pydantic import Field

from schemas.base import FrozenCamelModel


class CountryConfig(FrozenCamelModel):
    """Per-country lending configuration (read-only input to validation and prompts)."""
    code: str = Field(..., min_length=2, max_length=2)
    name: str
    currency: str
    currency_symbol: str
    phone_prefix: str
    id_label: str
    id_document: str = Field(..., description="ID document name used in biometric prompts")
    legal_context: str
    governing_law: str = Field(..., description="Full governing-law text used in contract prompts")
    min_loan: float = Field(..., gt=0)
    max_loan: float = Field(..., gt=0)
    exchange_rate: float = Field(..., gt=0, description="Units of local currency per reference unit (MYR)")
