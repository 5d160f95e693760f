import asyncio
import os
import sys

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from dotenv import load_dotenv
load_dotenv()

from clinic_notifications.core.db import SessionLocal, init_models
from clinic_notifications.core.logging import setup_logging
from clinic_notifications.modules.notifications.defaults import SYSTEM_TEMPLATES, seed_system_templates

async def main():
    """
    Creates the system default template for every (event_code, channel) pair
    that does not have one yet. Templates already in the table are not touched.
    """
    setup_logging()
    await init_models()
    async with SessionLocal() as db:
        created = await seed_system_templates(db)
    print(f"Seeded {created} of {len(SYSTEM_TEMPLATES)} system templates.")

if __name__ == "__main__":
    asyncio.run(main())
