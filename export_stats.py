#!/usr/bin/env python3
"""
Export summary statistics of a generated messenger database to Excel.

Usage:
    python export_stats.py [path_to_db] [output.xlsx]

One sheet per query; stats_dashboard.py turns the workbook into charts.
"""

import sqlite3
import sys
from pathlib import Path
from typing import Dict, Optional, Sequence

import pandas as pd

DB_PATH = "mock_messenger.db"
OUTPUT_XLSX = "messenger_stats.xlsx"

# -----------------------------
#    Queries, keyed by sheet name
# -----------------------------
STATS_QUERIES = {
    # Messages per day (created_at is stored as YYYY-MM-DDTHH:MM:SSZ)
    "Messages_daily": """
        SELECT
            substr(created_at, 1, 10) AS day,
            COUNT(*) AS messages
        FROM Messages
        GROUP BY day
        ORDER BY day;
    """,
    # Members of every chat, empty chats included
    "Chat_sizes": """
        SELECT
            c.id AS chat_id,
            c.name AS chat_name,
            COUNT(uc.user_id) AS members
        FROM Chats c
        LEFT JOIN Users_Chats uc ON uc.chat_id = c.id
        GROUP BY c.id, c.name
        ORDER BY c.id;
    """,
    # How many chats have N members
    "Chat_size_hist": """
        SELECT members, COUNT(*) AS chats
        FROM (
            SELECT c.id, COUNT(uc.user_id) AS members
            FROM Chats c
            LEFT JOIN Users_Chats uc ON uc.chat_id = c.id
            GROUP BY c.id
        )
        GROUP BY members
        ORDER BY members;
    """,
    "Messages_per_chat": """
        SELECT
            c.id AS chat_id,
            COUNT(m.id) AS messages
        FROM Chats c
        LEFT JOIN Messages m ON m.chat_id = c.id
        GROUP BY c.id
        ORDER BY c.id;
    """,
    # Authors do not have to be members of the chat they write to;
    # member_chats vs. chats_written_to makes that visible.
    "Top_authors": """
        SELECT
            u.id AS user_id,
            u.name AS user_name,
            COUNT(m.id) AS messages,
            COUNT(DISTINCT m.chat_id) AS chats_written_to,
            (SELECT COUNT(*) FROM Users_Chats uc WHERE uc.user_id = u.id) AS member_chats
        FROM Users u
        JOIN Messages m ON m.author_id = u.id
        GROUP BY u.id, u.name
        ORDER BY messages DESC, u.id
        LIMIT 20;
    """,
}


def load_stats(conn: sqlite3.Connection) -> Dict[str, pd.DataFrame]:
    return {sheet: pd.read_sql_query(sql, conn) for sheet, sql in STATS_QUERIES.items()}


def export_stats(db_path, output_xlsx) -> Dict[str, pd.DataFrame]:
    """Query every statistic and write them to one workbook, one sheet each."""
    db_path = Path(db_path)
    if not db_path.exists():
        raise FileNotFoundError(f"Database file not found: {db_path}")

    conn = sqlite3.connect(str(db_path))
    try:
        frames = load_stats(conn)
    finally:
        conn.close()

    with pd.ExcelWriter(output_xlsx, engine="xlsxwriter") as writer:
        for sheet, df in frames.items():
            df.to_excel(writer, sheet_name=sheet, index=False)
    return frames


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    db_path = args[0] if args else DB_PATH
    output = args[1] if len(args) > 1 else OUTPUT_XLSX

    frames = export_stats(db_path, output)
    for sheet, df in frames.items():
        print(f"{sheet}: {len(df)} row(s)")
    print(f"Stats Excel generated: {output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
