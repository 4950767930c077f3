from .calculator import Tax, TaxCalculator
from .exemptions import TaxExemption, validate_tax_exemptions
from .long_term_ownership import (
    LtoDeductibleProfit,
    LtoDeduction,
    LtoDeductionCalculator,
    NetLtoDeduction,
    NetLtoDeductionCalculator,
    calculate_ownership_years,
    is_lto_eligible,
)
from .net_calculator import NetTax, NetTaxCalculator
from .payment_day import (
    Day,
    OnClose,
    TaxPaymentDay,
    TaxPaymentDaySpec,
    parse_tax_payment_day_spec,
)
from .rates import Country, IncomeType, Jurisdiction, round_tax

__all__ = [
    "Tax",
    "TaxCalculator",
    "TaxExemption",
    "validate_tax_exemptions",
    "LtoDeductibleProfit",
    "LtoDeduction",
    "LtoDeductionCalculator",
    "NetLtoDeduction",
    "NetLtoDeductionCalculator",
    "calculate_ownership_years",
    "is_lto_eligible",
    "NetTax",
    "NetTaxCalculator",
    "Day",
    "OnClose",
    "TaxPaymentDay",
    "TaxPaymentDaySpec",
    "parse_tax_payment_day_spec",
    "Country",
    "IncomeType",
    "Jurisdiction",
    "round_tax",
]
