from .domain import (
    BuyLot,
    CorporateAction,
    FifoDetails,
    SellDetails,
    SellSource,
    SpinOff,
    StockBuy,
    StockSell,
    StockSource,
    StockSplit,
    SymbolRename,
)
from .events import RecordedWarning, WarningRecorder
from .fees import Fee, FeeFilter, KeepAllFees, SuppressFeeReversals
from .fifo import FifoMatcher
from .positions import PositionBook
from .processor import (
    FeeRow,
    FifoRow,
    StockIncome,
    TradeRow,
    TradesProcessor,
    TradesSummary,
    YearTotals,
)
from .sell_calc import calculate_sell
from .statement import BrokerInfo, BrokerStatement, load_statement_csv

__all__ = [
    "BuyLot",
    "CorporateAction",
    "FifoDetails",
    "SellDetails",
    "SellSource",
    "SpinOff",
    "StockBuy",
    "StockSell",
    "StockSource",
    "StockSplit",
    "SymbolRename",
    "RecordedWarning",
    "WarningRecorder",
    "Fee",
    "FeeFilter",
    "KeepAllFees",
    "SuppressFeeReversals",
    "FifoMatcher",
    "PositionBook",
    "FeeRow",
    "FifoRow",
    "StockIncome",
    "TradeRow",
    "TradesProcessor",
    "TradesSummary",
    "YearTotals",
    "calculate_sell",
    "BrokerInfo",
    "BrokerStatement",
    "load_statement_csv",
]
