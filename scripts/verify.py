"""
Sales Workbook Verification Script

Checks an exported sales ledger workbook (see POST
/sales/reports/export-excel): expected sheets and columns, duplicate
bill numbers, and that the Summary sheet matches the Bills sheet.
Run from project root: python scripts/verify.py [filename.xlsx]

Author: Khalil Bannouri
Version: 1.0.0
"""

import os
import sys
from datetime import datetime

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pandas as pd

from restaurant_pos.services.report_exporter import ReportExporter


def latest_workbook() -> str | None:
    files = ReportExporter.list_workbooks()
    return files[0]["filename"] if files else None


def verify_workbook(filename: str) -> bool:
    path = ReportExporter.data_dir() / filename

    print("=" * 60)
    print("🔍 SALES WORKBOOK VERIFICATION")
    print("=" * 60)
    print(f"⏰ Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"📄 File: {path}")
    print("=" * 60)

    if not path.exists():
        print("\n❌ Workbook not found!")
        return False

    try:
        bills = pd.read_excel(path, sheet_name="Bills", engine="openpyxl")
        summary = pd.read_excel(path, sheet_name="Summary", engine="openpyxl")
    except ValueError as e:
        print(f"\n❌ Could not read workbook: {e}")
        return False

    ok = True
    missing = [col for col in ReportExporter.LEDGER_COLUMNS if col not in bills.columns]
    if missing:
        print(f"\n⚠️ Missing Columns: {missing}")
        ok = False
    else:
        print("\n✅ All ledger columns present")

    duplicates = int(bills["Bill Number"].duplicated().sum()) if "Bill Number" in bills.columns else 0
    if duplicates:
        print(f"⚠️ {duplicates} duplicate bill numbers found!")
        ok = False
    else:
        print("✅ No duplicate bill numbers")

    totals = pd.to_numeric(bills.get("Total Amount"), errors="coerce").fillna(0)
    reported = dict(zip(summary["Metric"], summary["Value"]))
    billed = round(float(totals.sum()), 2)
    if round(float(reported.get("Total billed", 0)), 2) != billed:
        print(f"⚠️ Summary total {reported.get('Total billed')} does not match ledger total {billed}")
        ok = False
    else:
        print(f"✅ Summary matches ledger ({len(bills)} bills, ${billed:.2f})")

    if len(bills) > 0:
        print("\n📋 RECENT BILLS:")
        print("-" * 60)
        cols = ["Bill Number", "Table", "Total Amount", "Payment Status"]
        print(bills[[c for c in cols if c in bills.columns]].head(5).to_string(index=False))

    print("\n" + "=" * 60)
    print("✅ VERIFICATION COMPLETE" if ok else "❌ VERIFICATION FAILED")
    print("=" * 60)
    return ok


if __name__ == "__main__":
    target = sys.argv[1] if len(sys.argv) > 1 else latest_workbook()
    if target is None:
        print("❌ No exported workbooks found. Queue one with POST /sales/reports/export-excel")
        sys.exit(1)
    sys.exit(0 if verify_workbook(target) else 1)
