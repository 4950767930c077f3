import datetime as dt

from openpyxl import load_workbook

from brokertax.taxes import Jurisdiction, TaxExemption, TaxPaymentDay
from brokertax.trading import Fee, TradesProcessor
from brokertax.trading.report_sink import ExcelReportSink
from fixtures import buy, make_converter, rub, sell, statement


def _summary(year=None, exemptions=(), tax_statement=False):
    trades = statement(
        buys=[
            buy("AAA", 10, rub(100), dt.date(2018, 1, 10)),
            buy("BBB", 10, rub(50), dt.date(2022, 1, 10)),
        ],
        sells=[
            sell("AAA", 10, rub(300), dt.date(2023, 3, 1)),
            sell("BBB", 5, rub(40), dt.date(2022, 6, 1)),
        ],
        fees=[Fee(dt.date(2023, 4, 1), rub(25), "Custody")],
        instrument_names={"AAA": "Alpha"},
    )
    processor = TradesProcessor(
        Jurisdiction.RUSSIA,
        TaxPaymentDay(Jurisdiction.RUSSIA),
        make_converter(),
        tax_exemptions=exemptions,
    )
    return processor.process(trades, year=year, tax_statement=tax_statement)


def test_excel_sink_writes_all_sheets(tmp_path):
    summary = _summary(
        exemptions=[TaxExemption.LONG_TERM_OWNERSHIP], tax_statement=True
    )
    out = ExcelReportSink(out_path=tmp_path / "report" / "tax.xlsx").write(summary)

    assert out.exists()
    wb = load_workbook(out)
    assert wb.sheetnames == [
        "Summary",
        "Trades",
        "FIFO",
        "Fees",
        "LTO Deductions",
        "Tax Statement",
    ]

    ws = wb["Summary"]
    assert ws["A1"].value == "Tax Year"
    assert ws["J1"].value == "Tax Deduction (per trade)"
    assert [ws.cell(row=r, column=1).value for r in (2, 3, 4)] == [2022, 2023, "Total"]
    # BBB: 5 * 40 - 5 * 50
    assert ws["F2"].value == -50
    assert ws["B4"].value == 2
    assert ws["E3"].value == 25
    assert ws["C2"].number_format == '#,##0.00 "₽"'

    ws = wb["Trades"]
    assert ws["A1"].value == "Symbol"
    assert ws["Q1"].value == "Tax Deduction (RUB)"
    rows = {ws.cell(row=r, column=1).value: r for r in range(2, ws.max_row + 1)}
    assert ws.cell(row=rows["AAA"], column=2).value == "Alpha (AAA)"
    assert ws.cell(row=rows["AAA"], column=18).value == "Yes"
    assert not ws.cell(row=rows["BBB"], column=18).value

    ws = wb["FIFO"]
    assert ws.max_row == 3
    assert ws["L1"].value == "Ownership Years (LTO)"

    ws = wb["Fees"]
    assert [c.value for c in ws[2]] == [dt.datetime(2023, 4, 1), "Custody", 25, 25]

    ws = wb["Tax Statement"]
    assert ws["A2"].value == "Test Broker: Продажа BBB"
    assert ws["A3"].value == "Test Broker: Продажа Alpha (AAA)"


def test_excel_sink_omits_empty_sheets_and_localizes(tmp_path):
    summary = _summary(year=2022)
    out = ExcelReportSink(out_path=tmp_path / "tax.xlsx", locale="RU").write(summary)

    wb = load_workbook(out)
    assert wb.sheetnames == ["Итоги", "Сделки", "FIFO"]

    ws = wb["Итоги"]
    assert ws["A1"].value == "Налоговый год"
    values = [ws.cell(row=r, column=1).value for r in range(1, ws.max_row + 1)]
    assert "Итого" not in values
    assert "Итого налог к уплате" in values
    assert wb["Сделки"]["C2"].number_format == "DD.MM.YYYY"
