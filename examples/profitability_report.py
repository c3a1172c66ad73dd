"""Example: Monthly profitability report from the ERP

This example demonstrates the full reconciliation pipeline:
1. Fetch paid orders, lines and product costs from the ERP
2. Reconcile every sold line (net vs gross revenue, cost, profit)
3. Print global and per-branch totals
4. Export the period to an Excel workbook

Prerequisites:
- Set ERP_URL, ERP_DB, ERP_UID, ERP_API_KEY environment variables
- Optionally ERP_COMPANY_ID / ERP_COMPANY_NAME to scope a single company
"""

import logging

from pos_profit import ErpSession, ProfitReport
from pos_profit.sales.aggregate import by_product

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

session = ErpSession.from_env()
report = ProfitReport()

# Current business month up to today
result = report.fetch_period(session, "month_to_date")
print(f"Fetch status: {result.status.value} - {result.message}")

if report.period is not None:
    start_date, end_date = report.period.start, report.period.end

    for category, stats in report.branch_stats().items():
        name = category.value if category else "TOTAL GLOBAL"
        print(
            f"{name:<14} net={stats.net_revenue:>12,.2f} gross={stats.gross_revenue:>12,.2f} "
            f"cost={stats.total_cost:>12,.2f} profit={stats.net_profit:>12,.2f} "
            f"margin={stats.profit_rate_percent}% missing_cost={stats.missing_cost_count}"
        )

    print("\nTop products by net profit:")
    print(by_product(report.sales).head(10))

    out_path = report.save_export(start_date, end_date)
    print(f"\n✓ Report written to {out_path}")
