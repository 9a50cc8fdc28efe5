import asyncio
import os
import sys

# Ensure backend path is in sys.path
if os.path.exists("backend"):
    sys.path.append(os.path.join(os.getcwd(), "backend"))
    migration_dir = os.path.join(os.getcwd(), "backend", "migrations")
else:
    sys.path.append(os.getcwd())
    migration_dir = os.path.join(os.getcwd(), "migrations")

from hackmatch.infra.postgres import close_pool, get_pool


async def main() -> int:
    if not os.path.exists(migration_dir):
        print("Migrations directory not found.")
        return 1

    files = sorted(f for f in os.listdir(migration_dir) if f.endswith(".sql"))
    pool = await get_pool()
    try:
        async with pool.acquire() as conn:
            for filename in files:
                print(f"Executing {filename}...")
                with open(os.path.join(migration_dir, filename), "r") as f:
                    sql = f.read()
                # Every statement is idempotent (IF NOT EXISTS), so reruns are safe.
                async with conn.transaction():
                    await conn.execute(sql)
                print(f"Finished {filename}")
    finally:
        await close_pool()
    return 0


if __name__ == "__main__":
    if sys.platform == 'win32':
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
    sys.exit(asyncio.run(main()))
