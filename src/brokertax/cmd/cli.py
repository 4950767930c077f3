"""
Calculate realized profit and trading tax from normalized broker statement CSVs
(FIFO, long-term ownership exemption, historical currency rates).

Usage
-----
    # Tax for a single year
    python -m brokertax.cmd.cli \
        --year 2023 \
        --fx-table ./rates.csv \
        --output ./tax_2023.xlsx \
        /path/to/statement.csv

    # Include prior years so FIFO has the buys
    python -m brokertax.cmd.cli \
        --year 2023 \
        --tax-exemption long-term-ownership \
        --fx-table ./rates.csv \
        /path/statement_2019.csv /path/statement_2023.csv

Forex CSV schema (base RUB):
    date,currency,rate,nominal
    2023-01-10,USD,69.3415,1
    2023-01-10,JPY,52.7591,100
"""

from __future__ import annotations

import argparse
import logging
from decimal import ROUND_HALF_UP, Decimal, getcontext
from pathlib import Path

from brokertax.currency import CurrencyConverter, FxTable
from brokertax.errors import BrokerTaxError
from brokertax.logging import configure_logging, level_for_verbosity
from brokertax.taxes import (
    Jurisdiction,
    TaxExemption,
    TaxPaymentDay,
    parse_tax_payment_day_spec,
)
from brokertax.trading import (
    BrokerInfo,
    KeepAllFees,
    SuppressFeeReversals,
    TradesProcessor,
    load_statement_csv,
)
from brokertax.trading.report_sink import ExcelReportSink

# Monetary precision and rounding
getcontext().prec = 28
getcontext().rounding = ROUND_HALF_UP


def parse_tax_rate(value: str) -> tuple[int, Decimal]:
    """Parse YEAR=PERCENT into (year, percent)."""
    year, sep, percent = value.partition("=")
    try:
        if not sep:
            raise ValueError(value)
        return int(year), Decimal(percent.strip())
    except (ValueError, ArithmeticError):
        raise argparse.ArgumentTypeError(
            f"Invalid tax rate {value!r}: expected YEAR=PERCENT"
        ) from None


def process_files(args: argparse.Namespace) -> Path:
    logger = logging.getLogger(__name__)

    jurisdiction = Jurisdiction(args.jurisdiction)
    trading_rates = dict(args.tax_rate or [])
    country = jurisdiction.country(trading=trading_rates or None)
    tax_exemptions = [TaxExemption.parse(e) for e in args.tax_exemption or []]
    tax_payment_day = TaxPaymentDay(
        jurisdiction,
        parse_tax_payment_day_spec(args.tax_payment_day) if args.tax_payment_day else None,
    )

    base_currency = args.base_currency or jurisdiction.currency
    if args.fx_table:
        fx = FxTable.from_csv(args.fx_table, base_currency)
    else:
        fx = FxTable(base_currency)
        logger.info("No FX table given: only %s amounts can be converted", base_currency)
    converter = CurrencyConverter(fx)

    broker = BrokerInfo(
        name=args.broker,
        fee_filter=SuppressFeeReversals() if args.suppress_fee_reversals else KeepAllFees(),
    )

    inputs = args.input if isinstance(args.input, list) else [args.input]
    logger.info("Reading %d file(s): %s", len(inputs), ", ".join(inputs))

    statement = load_statement_csv(inputs[0], broker)
    for path in inputs[1:]:
        statement.merge(load_statement_csv(path, broker))

    processor = TradesProcessor(
        jurisdiction,
        tax_payment_day,
        converter,
        country=country,
        tax_exemptions=tax_exemptions,
    )
    summary = processor.process(statement, year=args.year, tax_statement=args.tax_statement)

    if summary.total_tax_to_pay is not None:
        logger.info("Tax to pay: %s", summary.total_tax_to_pay)
    logger.info("Tax deduction: %s", summary.total_tax_deduction)
    if processor.recorder.warnings:
        logger.info("%d warning(s) reported", len(processor.recorder.warnings))

    # Determine output path
    if args.output:
        out_path = Path(args.output)
    else:
        out_path = Path(f"tax_{args.year}.xlsx" if args.year else "tax.xlsx")

    sink = ExcelReportSink(out_path=out_path, locale=args.locale)
    out_path = sink.write(summary)
    logger.info("Wrote workbook to %s", out_path)
    return out_path


def build_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        description="FIFO trading tax report from normalized broker statement CSV"
    )
    p.add_argument(
        "input",
        type=str,
        nargs="+",
        help="One or more statement CSV paths (include prior years for FIFO)",
    )
    p.add_argument(
        "--year",
        type=int,
        default=None,
        help="Report sells executed in this year only (YYYY); FIFO still uses all input",
    )
    p.add_argument(
        "--jurisdiction",
        type=str,
        default=Jurisdiction.RUSSIA.value,
        choices=[j.value for j in Jurisdiction],
        help="Tax jurisdiction",
    )
    p.add_argument(
        "--broker",
        type=str,
        default="Broker",
        help="Broker name used in tax statement descriptions",
    )
    p.add_argument(
        "--tax-payment-day",
        type=str,
        default=None,
        help="Tax payment day: 'DD.MM' (default 15.03) or 'on-close'",
    )
    p.add_argument(
        "--tax-exemption",
        type=str,
        action="append",
        choices=[e.value for e in TaxExemption],
        help="Tax exemption to apply to the portfolio (Russia only)",
    )
    p.add_argument(
        "--tax-rate",
        type=parse_tax_rate,
        action="append",
        metavar="YEAR=PERCENT",
        help="Trading tax rate effective from YEAR (repeatable)",
    )
    p.add_argument(
        "--fx-table",
        type=str,
        default=None,
        help=(
            "Forex rates CSV: 'date,currency,rate[,nominal]' where 'rate' is "
            "base currency units per nominal units"
        ),
    )
    p.add_argument(
        "--base-currency",
        type=str,
        default=None,
        help="Base currency of the FX table (defaults to the jurisdiction currency)",
    )
    p.add_argument(
        "--suppress-fee-reversals",
        action="store_true",
        help="Drop same-day fee and equal-and-opposite reversal pairs",
    )
    p.add_argument(
        "--tax-statement",
        action="store_true",
        help="Add tax statement income entries to the report",
    )
    p.add_argument(
        "--locale",
        type=str,
        default="EN",
        choices=["EN", "RU"],
        help="Locale for headers and sheet names",
    )
    p.add_argument(
        "--output",
        type=str,
        default=None,
        help="Output filename (e.g., tax.xlsx). If omitted, uses tax_<year>.xlsx",
    )
    p.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity: -v (INFO), -vv (DEBUG)",
    )
    return p


def main(argv: list[str] | None = None) -> None:
    parser = build_argparser()
    args = parser.parse_args(argv)

    configure_logging(level=level_for_verbosity(args.verbose))

    try:
        process_files(args)
    except BrokerTaxError as e:
        logging.getLogger(__name__).error("%s", e)
        raise SystemExit(2) from e


if __name__ == "__main__":
    main()
