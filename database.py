import sqlite3
import pandas as pd
from datetime import datetime

DB_FILE = 'bill_helper.db'

def setup_database():
    conn = sqlite3.connect(DB_FILE)
    cursor = conn.cursor()

    cursor.execute('''
    CREATE TABLE IF NOT EXISTS action_log (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        timestamp TEXT NOT NULL,
        actor TEXT NOT NULL,
        action TEXT NOT NULL
    )
    ''')

    conn.commit()
    conn.close()

def db_query(query, params=()):
    conn = sqlite3.connect(DB_FILE)
    cursor = conn.cursor()
    try:
        cursor.execute(query, params)
        conn.commit()
    except Exception as e:
        print(f"DB Query Error: {e}")
    finally:
        conn.close()

def db_query_to_df(query, params=()):
    conn = sqlite3.connect(DB_FILE)
    try:
        df = pd.read_sql_query(query, conn, params=params)
    except Exception as e:
        print(f"DB Read Error: {e}")
        df = pd.DataFrame()
    finally:
        conn.close()
    return df

def log_action(actor, action):
    now = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    try:
        db_query("INSERT INTO action_log (timestamp, actor, action) VALUES (?, ?, ?)", (now, actor, action))
    except Exception as e:
        print(f"Failed to log action: {e}")

def recent_actions(actor=None, limit=200):
    """Newest-first slice of the action log, optionally for a single actor."""
    query = "SELECT timestamp, actor, action FROM action_log"
    params = []
    if actor:
        query += " WHERE actor = ?"
        params.append(actor)
    query += " ORDER BY id DESC LIMIT ?"
    params.append(limit)
    return db_query_to_df(query, params=params)

def known_actors():
    df = db_query_to_df("SELECT DISTINCT actor FROM action_log ORDER BY actor")
    if df.empty:
        return []
    return list(df['actor'])
