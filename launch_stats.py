#!/usr/bin/env python3
"""
LaunchMint Launch Log Stats Tool
Stats viewer and CSV exporter for the SQLite launch log
"""

import os
import csv
import sys
import asyncio
from datetime import datetime

from dotenv import load_dotenv

from launchmint.database import SqliteLaunchStore
from launchmint.models import Platform

# ANSI color codes (disable on Windows if issues)
ENABLE_COLORS = os.name != 'nt' or os.environ.get('ANSICON')


class Colors:
    if ENABLE_COLORS:
        GREEN = '\033[92m'
        YELLOW = '\033[93m'
        RED = '\033[91m'
        CYAN = '\033[96m'
        BOLD = '\033[1m'
        ENDC = '\033[0m'
    else:
        GREEN = YELLOW = RED = CYAN = BOLD = ENDC = ''


EXPORT_FIELDS = ['platform', 'name', 'symbol', 'tokenAddress', 'txHash', 'url',
                 'poolAddress', 'creatorWallet', 'launchedAt']


def print_section(title: str):
    """Print section header"""
    print(f"\n{Colors.CYAN}{Colors.BOLD}{title}{Colors.ENDC}")
    print("-" * 40)


def open_store(db_path: str):
    if not os.path.exists(db_path):
        print(f"{Colors.RED}❌ Database not found: {db_path}{Colors.ENDC}")
        return None
    return SqliteLaunchStore(db_path)


def quick_stats(db_path: str):
    """Display launch totals and the most recent launches"""
    store = open_store(db_path)
    if store is None:
        return

    records = asyncio.run(store.list())
    by_platform = store.count_by_platform()

    print(f"\n{Colors.BOLD}{'='*60}{Colors.ENDC}")
    print(f"{Colors.BOLD}LAUNCHMINT - QUICK STATS{Colors.ENDC}".center(60))
    print(f"{Colors.BOLD}{'='*60}{Colors.ENDC}")

    print_section("📊 LAUNCHES")
    parts = [f"{p.label}: {by_platform.get(p.value, 0)}" for p in Platform]
    print(f"Total: {len(records):,} | " + " | ".join(parts))

    print_section("🚀 RECENT LAUNCHES")
    if not records:
        print("No launches yet")
    for record in records[-5:][::-1]:
        date = datetime.fromisoformat(record['launchedAt']).strftime("%m/%d %H:%M")
        symbol = record['symbol'] or '?'
        print(f"${symbol:<8} on {record['platform']:<8} {record['tokenAddress']} ({date})")


def export_data(db_path: str):
    """Export the launch log to CSV"""
    store = open_store(db_path)
    if store is None:
        return

    records = asyncio.run(store.list())
    if not records:
        print(f"{Colors.YELLOW}⚠️  No data to export{Colors.ENDC}")
        return

    filename = f"launches_{datetime.now().strftime('%Y%m%d_%H%M%S')}.csv"
    with open(filename, 'w', newline='', encoding='utf-8') as f:
        writer = csv.DictWriter(f, fieldnames=EXPORT_FIELDS, extrasaction='ignore')
        writer.writeheader()
        writer.writerows(records)
    print(f"✅ {filename} - {len(records)} rows")


def main(db_path: str):
    """Main menu"""
    while True:
        print(f"\n{Colors.BOLD}📊 LAUNCHMINT LAUNCH STATS{Colors.ENDC}")
        print("="*35)
        print("1. Quick Stats")
        print("2. Export to CSV")
        print("0. Exit")

        choice = input(f"\n{Colors.CYAN}Select option: {Colors.ENDC}")

        if choice == "1":
            quick_stats(db_path)
        elif choice == "2":
            export_data(db_path)
        elif choice == "0":
            print(f"{Colors.GREEN}Goodbye!{Colors.ENDC}")
            break
        else:
            print(f"{Colors.RED}Invalid option!{Colors.ENDC}")

        if choice in ["1", "2"]:
            input(f"\n{Colors.YELLOW}Press Enter to continue...{Colors.ENDC}")


if __name__ == "__main__":
    load_dotenv()
    path = os.getenv('LAUNCH_DB_PATH', 'launches.db')
    # If run with argument, do quick stats and exit
    if len(sys.argv) > 1 and sys.argv[1] == "--quick":
        quick_stats(path)
    else:
        main(path)
