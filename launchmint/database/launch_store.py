"""
Append-only log of launched tokens
"""

import sqlite3
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import List, Dict, Any

from launchmint.models import LaunchResult, Platform


class LaunchStore(ABC):
    """Append-only record of successful launches. No eviction, no dedupe."""

    @abstractmethod
    async def append(self, result: LaunchResult) -> None:
        ...

    @abstractmethod
    async def list(self) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    async def count(self) -> int:
        ...


class MemoryLaunchStore(LaunchStore):
    """In-process launch log"""

    def __init__(self):
        self._records: List[Dict[str, Any]] = []
        self._lock = asyncio.Lock()

    async def append(self, result: LaunchResult) -> None:
        async with self._lock:
            self._records.append(result.to_record())

    async def list(self) -> List[Dict[str, Any]]:
        async with self._lock:
            return list(self._records)

    async def count(self) -> int:
        return len(self._records)


class SqliteLaunchStore(LaunchStore):
    """Launch log persisted to SQLite"""

    def __init__(self, db_path: str = 'launches.db'):
        self.db_path = db_path
        self.logger = logging.getLogger('launchmint.database')
        self._lock = asyncio.Lock()
        self._setup_database()

    def _setup_database(self):
        """Setup SQLite table for launched tokens"""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute('''
                CREATE TABLE IF NOT EXISTS launches (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    platform TEXT NOT NULL,
                    name TEXT,
                    symbol TEXT,
                    token_address TEXT NOT NULL,
                    tx_hash TEXT NOT NULL,
                    url TEXT,
                    pool_address TEXT,
                    creator_wallet TEXT,
                    launched_at TEXT
                )
            ''')

            conn.execute('''
                CREATE INDEX IF NOT EXISTS idx_launches_platform
                ON launches(platform, launched_at)
            ''')

        self.logger.info(f"Launch log database ready at {self.db_path}")

    async def append(self, result: LaunchResult) -> None:
        async with self._lock:
            with sqlite3.connect(self.db_path) as conn:
                conn.execute('''
                    INSERT INTO launches
                    (platform, name, symbol, token_address, tx_hash, url,
                     pool_address, creator_wallet, launched_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ''', (
                    result.platform.value, result.name, result.symbol, result.token_address,
                    result.tx_hash, result.url, result.pool_address, result.creator_wallet,
                    result.launched_at
                ))

    async def list(self) -> List[Dict[str, Any]]:
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute('''
                SELECT platform, name, symbol, token_address, tx_hash, url,
                       pool_address, creator_wallet, launched_at
                FROM launches ORDER BY id
            ''')
            rows = cursor.fetchall()

        return [
            LaunchResult(
                platform=Platform(row[0]),
                name=row[1],
                symbol=row[2],
                token_address=row[3],
                tx_hash=row[4],
                url=row[5],
                pool_address=row[6],
                creator_wallet=row[7],
                launched_at=row[8],
            ).to_record()
            for row in rows
        ]

    async def count(self) -> int:
        with sqlite3.connect(self.db_path) as conn:
            return conn.execute("SELECT COUNT(*) FROM launches").fetchone()[0]

    def count_by_platform(self) -> Dict[str, int]:
        """Launch counts per platform"""
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute(
                "SELECT platform, COUNT(*) FROM launches GROUP BY platform ORDER BY platform"
            )
            return {platform: count for platform, count in cursor.fetchall()}
