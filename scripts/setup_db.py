"""
Database setup script for the ComplaintDesk backend.
Creates the database tables; run scripts/seed_db.py afterwards for sample data.
"""
import asyncio
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.core.database import init_db


async def main():
    """Main setup function"""
    print("=" * 60)
    print("ComplaintDesk Database Setup")
    print("=" * 60)

    try:
        print("Creating database tables...")
        await init_db()
        print("✅ Tables created successfully!")
        print("\n✅ Setup complete! Seed sample data with: python scripts/seed_db.py")
    except Exception as e:
        print(f"\n❌ Error during setup: {e}")
        raise


if __name__ == "__main__":
    asyncio.run(main())
