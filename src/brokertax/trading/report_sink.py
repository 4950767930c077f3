from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from fractions import Fraction
from pathlib import Path

from openpyxl import Workbook
from openpyxl.utils import get_column_letter

from brokertax.currency import Cash

from .processor import TradesSummary, YearTotals


def _num(value: Cash | Decimal | Fraction | None) -> float | None:
    if value is None:
        return None
    if isinstance(value, Cash):
        value = value.amount
    return float(value)


@dataclass
class ExcelReportSink:
    out_path: Path
    locale: str = "EN"  # "EN" (default) or "RU"

    def _labels(self):
        loc = (self.locale or "EN").upper()
        if loc == "RU":
            return {
                "sheet": {
                    "summary": "Итоги",
                    "trades": "Сделки",
                    "fifo": "FIFO",
                    "fees": "Комиссии",
                    "lto": "ЛДВ",
                    "tax_statement": "Декларация",
                },
                "summary": {
                    "year": "Налоговый год",
                    "trades": "Сделок",
                    "revenue": "Выручка",
                    "cost": "Расходы",
                    "fees": "Комиссии",
                    "profit": "Прибыль",
                    "taxable": "Налогооблагаемая прибыль",
                    "lto": "Вычет ЛДВ",
                    "tax": "Налог (по сделкам)",
                    "deduction": "Налоговый вычет (по сделкам)",
                    "payment_date": "Дата уплаты",
                    "net_tax": "Налог к уплате",
                    "net_deduction": "Налоговый вычет",
                    "total": "Итого",
                    "total_tax": "Итого налог к уплате",
                    "total_deduction": "Итого налоговый вычет",
                },
                "trades": {
                    "symbol": "Тикер",
                    "name": "Инструмент",
                    "conclusion": "Дата сделки",
                    "execution": "Дата расчетов",
                    "quantity": "Количество",
                    "price": "Цена",
                    "revenue": "Выручка",
                    "commission": "Комиссия",
                    "cost": "Расходы",
                    "profit": "Прибыль",
                    "local_revenue": "Выручка ({cur})",
                    "local_cost": "Расходы ({cur})",
                    "local_profit": "Прибыль ({cur})",
                    "taxable": "Налогооблагаемая прибыль ({cur})",
                    "lto": "Вычет ЛДВ ({cur})",
                    "tax": "Налог ({cur})",
                    "deduction": "Налоговый вычет ({cur})",
                    "exempt": "Освобождение",
                    "real_profit": "Реальная доходность",
                },
                "fifo": {
                    "symbol": "Тикер",
                    "sell_date": "Дата продажи",
                    "conclusion": "Дата покупки",
                    "execution": "Дата расчетов",
                    "quantity": "Количество",
                    "multiplier": "Множитель",
                    "price": "Цена",
                    "cost": "Стоимость",
                    "commission": "Комиссия",
                    "local_total": "Расходы ({cur})",
                    "exempt": "Освобождение",
                    "lto_years": "Лет владения (ЛДВ)",
                },
                "fees": {
                    "date": "Дата",
                    "desc": "Описание",
                    "amount": "Сумма",
                    "local_amount": "Сумма ({cur})",
                },
                "lto": {
                    "year": "Налоговый год",
                    "deduction": "Вычет",
                    "limit": "Лимит",
                    "applied": "Применено",
                    "above_limit": "Сверх лимита",
                    "loss": "Потеря",
                },
                "tax_statement": {
                    "desc": "Описание",
                    "date": "Дата",
                    "currency": "Валюта",
                    "rate": "Курс",
                    "revenue": "Доход",
                    "local_revenue": "Доход ({cur})",
                    "cost": "Расходы ({cur})",
                },
                "yes": "Да",
            }
        return {
            "sheet": {
                "summary": "Summary",
                "trades": "Trades",
                "fifo": "FIFO",
                "fees": "Fees",
                "lto": "LTO Deductions",
                "tax_statement": "Tax Statement",
            },
            "summary": {
                "year": "Tax Year",
                "trades": "Trades",
                "revenue": "Revenue",
                "cost": "Expenses",
                "fees": "Fees",
                "profit": "Profit",
                "taxable": "Taxable Profit",
                "lto": "LTO Deduction",
                "tax": "Tax (per trade)",
                "deduction": "Tax Deduction (per trade)",
                "payment_date": "Tax Payment Date",
                "net_tax": "Tax to Pay",
                "net_deduction": "Tax Deduction",
                "total": "Total",
                "total_tax": "Total Tax to Pay",
                "total_deduction": "Total Tax Deduction",
            },
            "trades": {
                "symbol": "Symbol",
                "name": "Instrument",
                "conclusion": "Conclusion Date",
                "execution": "Execution Date",
                "quantity": "Quantity",
                "price": "Price",
                "revenue": "Revenue",
                "commission": "Commission",
                "cost": "Expenses",
                "profit": "Profit",
                "local_revenue": "Revenue ({cur})",
                "local_cost": "Expenses ({cur})",
                "local_profit": "Profit ({cur})",
                "taxable": "Taxable Profit ({cur})",
                "lto": "LTO Deduction ({cur})",
                "tax": "Tax to Pay ({cur})",
                "deduction": "Tax Deduction ({cur})",
                "exempt": "Tax Exemption",
                "real_profit": "Real Profit Ratio",
            },
            "fifo": {
                "symbol": "Symbol",
                "sell_date": "Sell Date",
                "conclusion": "Buy Date",
                "execution": "Execution Date",
                "quantity": "Quantity",
                "multiplier": "Multiplier",
                "price": "Price",
                "cost": "Cost",
                "commission": "Commission",
                "local_total": "Expenses ({cur})",
                "exempt": "Tax Exemption",
                "lto_years": "Ownership Years (LTO)",
            },
            "fees": {
                "date": "Date",
                "desc": "Description",
                "amount": "Amount",
                "local_amount": "Amount ({cur})",
            },
            "lto": {
                "year": "Tax Year",
                "deduction": "Deduction",
                "limit": "Limit",
                "applied": "Applied",
                "above_limit": "Applied Above Limit",
                "loss": "Loss",
            },
            "tax_statement": {
                "desc": "Description",
                "date": "Date",
                "currency": "Currency",
                "rate": "Rate",
                "revenue": "Income",
                "local_revenue": "Income ({cur})",
                "cost": "Expenses ({cur})",
            },
            "yes": "Yes",
        }

    def write(self, summary: TradesSummary) -> Path:
        out_path = Path(self.out_path)
        wb = Workbook()

        # Remove the default sheet
        ws_default = wb.active
        wb.remove(ws_default)

        labels = self._labels()
        cur = summary.currency
        date_fmt = "DD.MM.YYYY" if self.locale.upper() == "RU" else "YYYY-MM-DD"
        qty_fmt = "0.########"
        ratio_fmt = "0.00%"

        def money_fmt_for_currency(ccy: str) -> str:
            loc = self.locale.upper()
            code = (ccy or "").upper()
            symbols = {"USD": "$", "EUR": "€", "GBP": "£", "RUB": "₽"}
            sym = symbols.get(code)
            if sym:
                if code == "RUB" or loc == "RU":
                    return f'#,##0.00 "{sym}"'
                return f"{sym}#,##0.00"
            if loc == "RU":
                return f'#,##0.00 "{code}"'
            return f'"{code}" #,##0.00'

        local_fmt = money_fmt_for_currency(cur)

        def fmt_row(ws, columns, number_format) -> None:
            r = ws.max_row
            for c in columns:
                ws.cell(row=r, column=c).number_format = number_format

        # Summary sheet
        ws = wb.create_sheet(title=labels["sheet"]["summary"])
        sl = labels["summary"]
        ws.append(
            [
                sl["year"],
                sl["trades"],
                sl["revenue"],
                sl["cost"],
                sl["fees"],
                sl["profit"],
                sl["taxable"],
                sl["lto"],
                sl["tax"],
                sl["deduction"],
            ]
        )

        def totals_row(title, totals: YearTotals) -> None:
            ws.append(
                [
                    title,
                    totals.trades,
                    _num(totals.local_revenue),
                    _num(totals.total_local_cost),
                    _num(totals.fees),
                    _num(totals.local_profit),
                    _num(totals.taxable_local_profit),
                    _num(totals.lto_deduction),
                    _num(totals.tax_to_pay),
                    _num(totals.tax_deduction),
                ]
            )
            fmt_row(ws, range(3, 11), local_fmt)

        for tax_year, totals in sorted(summary.years.items()):
            totals_row(tax_year, totals)
        if summary.total is not None and len(summary.years) > 1:
            totals_row(sl["total"], summary.total)

        if summary.net_taxes:
            ws.append([])
            ws.append([sl["year"], sl["payment_date"], sl["net_tax"], sl["net_deduction"]])
            for payment_date, net_tax in sorted(summary.net_taxes.items()):
                ws.append(
                    [
                        net_tax.tax_year,
                        payment_date,
                        _num(net_tax.tax_to_pay),
                        _num(net_tax.tax_deduction),
                    ]
                )
                fmt_row(ws, (2,), date_fmt)
                fmt_row(ws, (3, 4), local_fmt)

        ws.append([])
        if summary.total_tax_to_pay is not None:
            ws.append([sl["total_tax"], _num(summary.total_tax_to_pay)])
            fmt_row(ws, (2,), local_fmt)
        ws.append([sl["total_deduction"], _num(summary.total_tax_deduction)])
        fmt_row(ws, (2,), local_fmt)

        # Trades
        ws = wb.create_sheet(title=labels["sheet"]["trades"])
        tl = labels["trades"]
        ws.append(
            [
                tl["symbol"],
                tl["name"],
                tl["conclusion"],
                tl["execution"],
                tl["quantity"],
                tl["price"],
                tl["revenue"],
                tl["commission"],
                tl["cost"],
                tl["profit"],
                tl["local_revenue"].format(cur=cur),
                tl["local_cost"].format(cur=cur),
                tl["local_profit"].format(cur=cur),
                tl["taxable"].format(cur=cur),
                tl["lto"].format(cur=cur),
                tl["tax"].format(cur=cur),
                tl["deduction"].format(cur=cur),
                tl["exempt"],
                tl["real_profit"],
            ]
        )
        for row in summary.trades:
            trade, details = row.trade, row.details
            ws.append(
                [
                    trade.symbol,
                    row.name,
                    trade.conclusion_date,
                    trade.execution_date,
                    _num(trade.quantity),
                    _num(trade.price),
                    _num(details.revenue),
                    _num(details.commission),
                    _num(details.total_cost),
                    _num(details.profit),
                    _num(details.local_revenue),
                    _num(details.total_local_cost),
                    _num(details.local_profit),
                    _num(details.taxable_local_profit),
                    _num(details.lto_deduction),
                    _num(details.tax_to_pay),
                    _num(details.tax_deduction),
                    labels["yes"] if details.tax_exemption_applied else "",
                    _num(details.real_profit_ratio),
                ]
            )
            fmt_row(ws, (3, 4), date_fmt)
            fmt_row(ws, (5,), qty_fmt)
            fmt_row(ws, range(6, 11), money_fmt_for_currency(trade.price.currency))
            fmt_row(ws, range(11, 18), local_fmt)
            fmt_row(ws, (19,), ratio_fmt)

        # FIFO breakdown
        ws = wb.create_sheet(title=labels["sheet"]["fifo"])
        fl = labels["fifo"]
        ws.append(
            [
                fl["symbol"],
                fl["sell_date"],
                fl["conclusion"],
                fl["execution"],
                fl["quantity"],
                fl["multiplier"],
                fl["price"],
                fl["cost"],
                fl["commission"],
                fl["local_total"].format(cur=cur),
                fl["exempt"],
                fl["lto_years"],
            ]
        )
        for row in summary.fifo:
            fifo = row.details
            lto = fifo.long_term_ownership_deductible
            ws.append(
                [
                    fifo.symbol,
                    row.sell_date,
                    fifo.conclusion_date,
                    fifo.execution_date,
                    _num(fifo.quantity),
                    _num(fifo.multiplier),
                    _num(fifo.price),
                    _num(fifo.cost),
                    _num(fifo.commission),
                    _num(fifo.total_local_cost),
                    labels["yes"] if fifo.tax_exemption_applied else "",
                    None if lto is None else lto.years,
                ]
            )
            fmt_row(ws, (2, 3, 4), date_fmt)
            fmt_row(ws, (5, 6), qty_fmt)
            fmt_row(ws, (7, 8, 9), money_fmt_for_currency(fifo.price.currency))
            fmt_row(ws, (10,), local_fmt)

        # Fees
        if summary.fees:
            ws = wb.create_sheet(title=labels["sheet"]["fees"])
            el = labels["fees"]
            ws.append(
                [el["date"], el["desc"], el["amount"], el["local_amount"].format(cur=cur)]
            )
            for row in summary.fees:
                ws.append(
                    [
                        row.fee.date,
                        row.fee.description,
                        _num(row.fee.amount),
                        _num(row.local_amount),
                    ]
                )
                fmt_row(ws, (1,), date_fmt)
                fmt_row(ws, (3,), money_fmt_for_currency(row.fee.amount.currency))
                fmt_row(ws, (4,), local_fmt)

        # Long-term ownership deductions
        if summary.lto_deductions:
            ws = wb.create_sheet(title=labels["sheet"]["lto"])
            ll = labels["lto"]
            ws.append(
                [
                    ll["year"],
                    ll["deduction"],
                    ll["limit"],
                    ll["applied"],
                    ll["above_limit"],
                    ll["loss"],
                ]
            )
            for tax_year, lto in sorted(summary.lto_deductions.items()):
                ws.append(
                    [
                        tax_year,
                        _num(lto.deduction),
                        _num(lto.limit),
                        _num(lto.applied),
                        _num(lto.applied_above_limit),
                        _num(lto.loss),
                    ]
                )
                fmt_row(ws, range(2, 7), local_fmt)

        # Tax statement entries
        if summary.tax_statement:
            ws = wb.create_sheet(title=labels["sheet"]["tax_statement"])
            xl = labels["tax_statement"]
            ws.append(
                [
                    xl["desc"],
                    xl["date"],
                    xl["currency"],
                    xl["rate"],
                    xl["revenue"],
                    xl["local_revenue"].format(cur=cur),
                    xl["cost"].format(cur=cur),
                ]
            )
            for income in summary.tax_statement:
                ws.append(
                    [
                        income.description,
                        income.date,
                        income.currency,
                        _num(income.rate),
                        _num(income.revenue),
                        _num(income.local_revenue),
                        _num(income.cost),
                    ]
                )
                fmt_row(ws, (2,), date_fmt)
                fmt_row(ws, (4,), "0.0000")
                fmt_row(ws, (5,), money_fmt_for_currency(income.currency))
                fmt_row(ws, (6, 7), local_fmt)

        def autosize(sheet, max_width: int = 60, min_width: int = 10) -> None:
            for col in range(1, sheet.max_column + 1):
                max_len = 0
                for row in range(1, sheet.max_row + 1):
                    v = sheet.cell(row=row, column=col).value
                    if v is None:
                        continue
                    # Approximate display width using string conversion
                    if hasattr(v, "strftime"):
                        s = v.strftime("%d.%m.%Y")
                    else:
                        s = str(v)
                    max_len = max(max_len, len(s))
                width = min(max_width, max(min_width, max_len + 2))
                sheet.column_dimensions[get_column_letter(col)].width = width

        for _ws in wb.worksheets:
            autosize(_ws)

        out_path.parent.mkdir(parents=True, exist_ok=True)
        wb.save(out_path)
        return out_path
