"""
Database initialization script
Creates the bookings table and adds any columns missing from older deploys
Run: python init_db.py
"""
import sys
sys.path.insert(0, '.')

from agentlyne.database import engine
from agentlyne.services.storage import ensure_schema


def init_schema():
    """Bring the bookings table up to date"""
    print(f"Checking bookings schema on {engine.url.render_as_string(hide_password=True)}...")
    added = ensure_schema(engine)
    if added:
        print(f"Added columns: {', '.join(added)}")
    else:
        print("Schema already up to date, nothing to do")


if __name__ == "__main__":
    init_schema()
    print("\nInitialization complete!")
    print("Start the server: python -m uvicorn agentlyne.main:app --reload")
