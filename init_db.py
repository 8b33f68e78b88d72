# init_db.py
import asyncio
import logging

from clinic.db.sql import engine, init_db

logging.basicConfig(level=logging.INFO)


async def init_models():
    # drop + create every table registered in clinic.models
    await init_db(drop=True)
    await engine.dispose()

    print("Database schema recreated successfully!")


if __name__ == "__main__":
    asyncio.run(init_models())
