from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from brokertax.currency import Cash, CurrencyConverter
from brokertax.errors import with_context
from brokertax.taxes import (
    Country,
    IncomeType,
    LtoDeductibleProfit,
    LtoDeductionCalculator,
    TaxExemption,
    is_lto_eligible,
)

from .domain import FifoDetails, SellDetails, SellSource, StockSell


def calculate_sell(
    trade: StockSell,
    sources: Sequence[SellSource],
    country: Country,
    tax_year: int,
    tax_exemptions: Sequence[TaxExemption],
    converter: CurrencyConverter,
) -> SellDetails:
    """Cost basis, profit and tax of a sell matched against ``sources``.

    Revenue is converted at the execution date rate and commissions at the
    conclusion date rate; each lot slice uses its own dates.
    """
    try:
        return _calculate_sell(trade, sources, country, tax_year, tax_exemptions, converter)
    except (ValueError, ArithmeticError) as e:
        raise with_context(e, sell_error_context(trade)) from e


def sell_error_context(trade: StockSell) -> str:
    return (
        f"Failed to calculate results of {trade.symbol} selling order "
        f"from {trade.conclusion_date}"
    )


def _calculate_sell(
    trade: StockSell,
    sources: Sequence[SellSource],
    country: Country,
    tax_year: int,
    tax_exemptions: Sequence[TaxExemption],
    converter: CurrencyConverter,
) -> SellDetails:
    currency = trade.price.currency
    local_currency = country.currency

    def local_conclusion(value: Cash) -> Cash:
        return converter.convert_to_cash_rounding(trade.conclusion_date, value, local_currency)

    def local_execution(value: Cash) -> Cash:
        return converter.convert_to_cash_rounding(trade.execution_date, value, local_currency)

    tax_free = TaxExemption.TAX_FREE in tax_exemptions
    long_term_ownership = TaxExemption.LONG_TERM_OWNERSHIP in tax_exemptions

    purchase_cost = Cash.zero(currency)
    purchase_local_cost = country.zero()
    deductible_purchase_local_cost = country.zero()
    lto_profit = country.zero()

    fifo: list[FifoDetails] = []
    total_quantity = Decimal("0")
    tax_free_quantity = Decimal("0")

    for source in sources:
        details = FifoDetails.from_source(source, local_currency, converter)

        if tax_free:
            details.tax_exemption_applied = True
        elif long_term_ownership:
            eligible, years = is_lto_eligible(source.conclusion_date, trade.conclusion_date)
            if eligible:
                source_local_revenue = local_execution(trade.price * source.quantity)
                source_local_commission = local_conclusion(
                    trade.commission * source.quantity / trade.quantity
                )
                source_local_profit = (
                    source_local_revenue - source_local_commission - details.total_local_cost
                )

                if source_local_profit.is_positive():
                    details.tax_exemption_applied = True
                    details.long_term_ownership_deductible = LtoDeductibleProfit(
                        profit=source_local_profit.amount, years=years
                    )
                    lto_profit += source_local_profit

        total_quantity += source.quantity
        if details.tax_exemption_applied:
            tax_free_quantity += source.quantity

        purchase_cost += details.total_cost(currency, converter)
        purchase_local_cost += details.total_local_cost
        if not details.tax_exemption_applied:
            deductible_purchase_local_cost += details.total_local_cost

        fifo.append(details)

    if total_quantity != trade.quantity:
        raise ValueError(
            f"{trade.symbol} sell of {trade.quantity} on {trade.conclusion_date} "
            f"is matched against {total_quantity} shares"
        )
    taxable_ratio = (total_quantity - tax_free_quantity) / total_quantity

    revenue = trade.revenue.round()
    local_revenue = local_execution(revenue)
    taxable_local_revenue = local_execution(revenue * taxable_ratio)

    commission = trade.commission.round()
    local_commission = local_conclusion(commission)
    deductible_local_commission = local_conclusion(commission * taxable_ratio)

    total_cost = purchase_cost + converter.convert_to_cash_rounding(
        trade.conclusion_date, commission, currency
    )
    total_local_cost = purchase_local_cost + local_commission
    deductible_total_local_cost = deductible_purchase_local_cost + deductible_local_commission

    profit = revenue - total_cost
    local_profit = local_revenue - total_local_cost
    taxable_local_profit = taxable_local_revenue - deductible_total_local_cost + lto_profit
    taxable_local_profit_before_lto = taxable_local_profit

    lto_deduction = country.zero()
    lto_deductibles = [
        details.long_term_ownership_deductible
        for details in fifo
        if details.long_term_ownership_deductible is not None
    ]
    if lto_deductibles:
        lto_calc = LtoDeductionCalculator()
        for deductible in lto_deductibles:
            lto_calc.add(deductible.profit, deductible.years)
        lto = lto_calc.calculate()

        lto_deduction = country.cash(lto.deduction)
        taxable_local_profit = min(taxable_local_profit - lto_deduction, local_profit)

    tax_without_deduction = country.tax_to_pay(IncomeType.TRADING, tax_year, local_profit)
    tax_to_pay = country.tax_to_pay(IncomeType.TRADING, tax_year, taxable_local_profit)
    tax_deduction = max(tax_without_deduction - tax_to_pay, country.zero())

    real_tax_ratio = None
    if not profit.is_zero():
        real_tax_ratio = (
            converter.convert_to(trade.execution_date, tax_to_pay, currency) / profit.amount
        )

    real_profit = profit - converter.convert_to_cash_rounding(
        trade.execution_date, tax_to_pay, currency
    )
    real_profit_ratio = None if purchase_cost.is_zero() else real_profit / purchase_cost

    real_local_profit = local_profit - tax_to_pay
    real_local_profit_ratio = (
        None if purchase_local_cost.is_zero() else real_local_profit / purchase_local_cost
    )

    return SellDetails(
        revenue=revenue,
        local_revenue=local_revenue,
        commission=commission,
        local_commission=local_commission,
        purchase_cost=purchase_cost,
        purchase_local_cost=purchase_local_cost,
        total_cost=total_cost,
        total_local_cost=total_local_cost,
        profit=profit,
        local_profit=local_profit,
        taxable_local_profit=taxable_local_profit,
        taxable_local_profit_before_lto=taxable_local_profit_before_lto,
        lto_deduction=lto_deduction,
        tax_to_pay=tax_to_pay,
        tax_deduction=tax_deduction,
        real_tax_ratio=real_tax_ratio,
        real_profit_ratio=real_profit_ratio,
        real_local_profit_ratio=real_local_profit_ratio,
        fifo=fifo,
    )
