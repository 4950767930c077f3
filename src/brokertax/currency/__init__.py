from .cash import (
    Cash,
    quantize_allocation,
    round_cost_piece,
    round_money,
    round_to,
)
from .converter import CurrencyConverter
from .fx import FxTable, min_rate_date

__all__ = [
    "Cash",
    "quantize_allocation",
    "round_cost_piece",
    "round_money",
    "round_to",
    "CurrencyConverter",
    "FxTable",
    "min_rate_date",
]
