"""SQLite data store for kcuchart."""

import sqlite3
from pathlib import Path
from typing import Optional

from kcuchart.models import Candle, GammaLevel, PriceLevel


class DataStore:
    """SQLite-based store for historical candles and level snapshots."""

    REQUIRED_TABLES = [
        "candles",
        "levels",
    ]

    def __init__(self, db_path: Path):
        """Initialize the data store.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = db_path
        self._ensure_db_dir()
        self._init_schema()

    def _ensure_db_dir(self) -> None:
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_schema(self) -> None:
        """Initialize database schema on first run."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS candles (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    symbol TEXT NOT NULL,
                    timeframe TEXT NOT NULL,
                    time INTEGER NOT NULL,
                    open REAL NOT NULL,
                    high REAL NOT NULL,
                    low REAL NOT NULL,
                    close REAL NOT NULL,
                    volume REAL,
                    UNIQUE(symbol, timeframe, time)
                )
            """)

            # One row per level; a snapshot is replaced wholesale.
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS levels (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    symbol TEXT NOT NULL,
                    position INTEGER NOT NULL,
                    is_gamma INTEGER NOT NULL DEFAULT 0,
                    kind TEXT NOT NULL,
                    price REAL NOT NULL,
                    label TEXT,
                    color TEXT,
                    line_style TEXT,
                    line_width INTEGER,
                    strength REAL
                )
            """)

            conn.commit()
        finally:
            conn.close()

    def get_tables(self) -> list[str]:
        """Get list of all tables in the database."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
            )
            return [row["name"] for row in cursor.fetchall()]
        finally:
            conn.close()

    # ==================== Candles ====================

    def save_candles(self, symbol: str, timeframe: str, candles: list[Candle]) -> None:
        """Save candles to the database.

        Args:
            symbol: Trading symbol.
            timeframe: Candle timeframe (e.g., '1min', '5min').
            candles: List of candles to save. Existing bars with the same
                time are overwritten.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.executemany(
                """
                INSERT OR REPLACE INTO candles
                (symbol, timeframe, time, open, high, low, close, volume)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        symbol,
                        timeframe,
                        candle.time,
                        candle.open,
                        candle.high,
                        candle.low,
                        candle.close,
                        candle.volume,
                    )
                    for candle in candles
                ],
            )
            conn.commit()
        finally:
            conn.close()

    def get_candles(
        self,
        symbol: str,
        timeframe: str,
        limit: Optional[int] = None,
    ) -> list[Candle]:
        """Get candles from the database, oldest first.

        Args:
            symbol: Trading symbol.
            timeframe: Candle timeframe.
            limit: Only return the most recent ``limit`` bars.

        Returns:
            List of candles in ascending time order.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            query = """
                SELECT time, open, high, low, close, volume
                FROM candles
                WHERE symbol = ? AND timeframe = ?
                ORDER BY time DESC
            """
            params: tuple = (symbol, timeframe)
            if limit is not None:
                query += " LIMIT ?"
                params += (limit,)
            cursor.execute(query, params)
            rows = cursor.fetchall()
            return [
                Candle(
                    time=row["time"],
                    open=row["open"],
                    high=row["high"],
                    low=row["low"],
                    close=row["close"],
                    volume=row["volume"],
                )
                for row in reversed(rows)
            ]
        finally:
            conn.close()

    def get_symbols(self) -> list[tuple[str, str, int]]:
        """List stored (symbol, timeframe, bar count) combinations."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT symbol, timeframe, COUNT(*) AS bars
                FROM candles
                GROUP BY symbol, timeframe
                ORDER BY symbol, timeframe
                """
            )
            return [(row["symbol"], row["timeframe"], row["bars"]) for row in cursor.fetchall()]
        finally:
            conn.close()

    # ==================== Levels ====================

    def save_levels(
        self,
        symbol: str,
        levels: list[PriceLevel],
        gamma_levels: Optional[list[GammaLevel]] = None,
    ) -> None:
        """Replace the stored level snapshot for a symbol.

        Args:
            symbol: Trading symbol.
            levels: Regular levels, in display order.
            gamma_levels: Gamma levels, in display order.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM levels WHERE symbol = ?", (symbol,))
            rows = [
                (
                    symbol,
                    position,
                    0,
                    level.kind,
                    level.price,
                    level.label,
                    level.color,
                    level.line_style,
                    level.line_width,
                    level.strength,
                )
                for position, level in enumerate(levels)
            ]
            rows += [
                (
                    symbol,
                    position,
                    1,
                    level.kind,
                    level.price,
                    level.label,
                    level.color,
                    None,
                    None,
                    level.strength,
                )
                for position, level in enumerate(gamma_levels or [])
            ]
            cursor.executemany(
                """
                INSERT INTO levels
                (symbol, position, is_gamma, kind, price, label, color,
                 line_style, line_width, strength)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                rows,
            )
            conn.commit()
        finally:
            conn.close()

    def get_levels(self, symbol: str) -> tuple[list[PriceLevel], list[GammaLevel]]:
        """Get the stored level snapshot for a symbol.

        Returns:
            Tuple of (regular levels, gamma levels), each in saved order.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT is_gamma, kind, price, label, color, line_style, line_width, strength
                FROM levels
                WHERE symbol = ?
                ORDER BY is_gamma, position
                """,
                (symbol,),
            )
            levels: list[PriceLevel] = []
            gamma_levels: list[GammaLevel] = []
            for row in cursor.fetchall():
                if row["is_gamma"]:
                    gamma_levels.append(
                        GammaLevel(
                            price=row["price"],
                            kind=row["kind"],
                            label=row["label"],
                            strength=row["strength"],
                            color=row["color"],
                        )
                    )
                else:
                    levels.append(
                        PriceLevel(
                            price=row["price"],
                            label=row["label"] or "",
                            kind=row["kind"],
                            color=row["color"],
                            line_style=row["line_style"],
                            line_width=row["line_width"],
                            strength=row["strength"],
                        )
                    )
            return levels, gamma_levels
        finally:
            conn.close()
