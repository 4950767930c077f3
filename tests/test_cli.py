import argparse
from decimal import Decimal

import pytest
from openpyxl import load_workbook

from brokertax.cmd.cli import build_argparser, main, parse_tax_rate

STATEMENT = """kind,date,execution_date,symbol,new_symbol,quantity,price,currency,commission,volume,ratio,description
instrument,,,AAA,,,,,,,,Alpha Inc
buy,2022-01-10,,AAA,,10,100,RUB,,,,
sell,2023-03-01,,AAA,,10,130,RUB,,,,
fee,2023-03-01,,,,,,RUB,,5,,Custody
fee,2023-03-01,,,,,,RUB,,-5,,Custody reversal
"""


def _write_statement(tmp_path, text=STATEMENT):
    path = tmp_path / "statement.csv"
    path.write_text(text, encoding="utf-8")
    return path


def test_parse_tax_rate():
    assert parse_tax_rate("2021=15") == (2021, Decimal("15"))
    with pytest.raises(argparse.ArgumentTypeError):
        parse_tax_rate("15")
    with pytest.raises(argparse.ArgumentTypeError):
        parse_tax_rate("year=15")


def test_argparser_defaults():
    args = build_argparser().parse_args(["statement.csv"])
    assert args.input == ["statement.csv"]
    assert args.jurisdiction == "russia"
    assert args.locale == "EN"
    assert args.year is None
    assert not args.tax_statement


def test_main_writes_report(tmp_path):
    path = _write_statement(tmp_path)
    out = tmp_path / "tax_2023.xlsx"

    main(
        [
            str(path),
            "--year",
            "2023",
            "--broker",
            "My Broker",
            "--suppress-fee-reversals",
            "--tax-statement",
            "--output",
            str(out),
        ]
    )

    wb = load_workbook(out)
    assert wb.sheetnames == ["Summary", "Trades", "FIFO", "Tax Statement"]
    assert wb["Trades"]["B2"].value == "Alpha Inc (AAA)"
    assert wb["Tax Statement"]["A2"].value == "My Broker: Продажа Alpha Inc (AAA)"

    values = {
        row[0].value: row[1].value
        for row in wb["Summary"].iter_rows()
        if row[0].value in ("Total Tax to Pay", "Total Tax Deduction")
    }
    # 300 * 0.13
    assert values == {"Total Tax to Pay": 39, "Total Tax Deduction": 0}


def test_main_applies_tax_rate_override(tmp_path):
    path = _write_statement(tmp_path)
    out = tmp_path / "tax.xlsx"

    main([str(path), "--year", "2023", "--tax-rate", "2023=15", "--output", str(out)])

    values = {row[0].value: row[1].value for row in load_workbook(out)["Summary"].iter_rows()}
    # The fee and its refund cancel out: 300 at 15%
    assert values["Total Tax to Pay"] == 45


def test_main_fails_on_oversold_statement(tmp_path):
    path = _write_statement(
        tmp_path,
        "kind,date,symbol,quantity,price,currency\n"
        "sell,2023-03-01,AAA,10,130,RUB\n",
    )

    with pytest.raises(SystemExit) as exc_info:
        main([str(path), "--output", str(tmp_path / "tax.xlsx")])
    assert exc_info.value.code == 2
    assert not (tmp_path / "tax.xlsx").exists()
