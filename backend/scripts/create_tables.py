"""Create the transactions table if it doesn't exist."""

import asyncio
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy.exc import SQLAlchemyError

from paygate.core.config import settings
from paygate.core.database import create_tables, engine


async def main() -> int:
    """Create all tables on the configured database."""
    print("=" * 50)
    print("Creating payment gateway tables")
    print("=" * 50)
    print()
    print(f"  Database: {engine.url.render_as_string(hide_password=True)}")
    print()

    try:
        await create_tables()
    except SQLAlchemyError as e:
        print(f"✗ Error: {e}")
        return 1
    finally:
        await engine.dispose()

    print("✓ Tables are in place.")
    print()
    print("Next steps:")
    print(f"  Start the server: uvicorn paygate.main:app --port 8000  (prefix: '{settings.API_PREFIX}')")
    print()
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
